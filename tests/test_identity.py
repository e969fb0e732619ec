"""
Unit tests for identity resolution.
"""

import hashlib
import tempfile
from datetime import datetime
from pathlib import Path

from project_consolidator.crawler import find_marker
from project_consolidator.identity import (
    hash_bytes,
    manifest_name,
    resolve_identity,
    synthetic_identity,
)


def make_project(base: Path, name: str, files: dict) -> Path:
    project = base / name
    project.mkdir(parents=True)
    for file_name, content in files.items():
        (project / file_name).write_bytes(content.encode("utf-8"))
    return project


class TestManifestName:
    """Tests for manifest_name function."""

    def test_reads_name(self):
        assert manifest_name(b'{"name": "foo", "version": "1.0.0"}') == "foo"

    def test_strips_whitespace(self):
        assert manifest_name(b'{"name": "  foo  "}') == "foo"

    def test_missing_name(self):
        assert manifest_name(b'{"version": "1.0.0"}') is None

    def test_empty_name(self):
        assert manifest_name(b'{"name": ""}') is None

    def test_non_string_name(self):
        assert manifest_name(b'{"name": 42}') is None

    def test_invalid_json(self):
        assert manifest_name(b'{"name": "foo",') is None

    def test_not_an_object(self):
        assert manifest_name(b'["foo"]') is None

    def test_utf8_bom(self):
        assert manifest_name('\ufeff{"name": "bom"}'.encode("utf-8")) == "bom"


class TestResolveIdentity:
    """Tests for resolve_identity function."""

    def test_package_name_is_identity(self):
        with tempfile.TemporaryDirectory() as tmp:
            project = make_project(Path(tmp), "p", {"package.json": '{"name": "foo"}'})
            assert resolve_identity(project, find_marker(project)) == "foo"

    def test_renamed_copies_share_identity(self):
        """Different folder names and manifests, same declared name."""
        with tempfile.TemporaryDirectory() as tmp:
            a = make_project(Path(tmp), "foo", {"package.json": '{"name": "foo", "version": "1.0.0"}'})
            b = make_project(Path(tmp), "foo-copy", {"package.json": '{"name": "foo", "version": "2.0.0"}'})

            assert resolve_identity(a, find_marker(a)) == resolve_identity(b, find_marker(b))

    def test_package_without_name_hashed(self):
        with tempfile.TemporaryDirectory() as tmp:
            content = '{"private": true}'
            project = make_project(Path(tmp), "p", {"package.json": content})

            expected = hashlib.sha256(content.encode()).hexdigest()
            assert resolve_identity(project, find_marker(project)) == expected

    def test_dependency_list_hashed(self):
        with tempfile.TemporaryDirectory() as tmp:
            content = "flask==2.0\nrequests\n"
            project = make_project(Path(tmp), "p", {"requirements.txt": content})

            key = resolve_identity(project, find_marker(project))
            assert key == hashlib.sha256(content.encode()).hexdigest()
            assert len(key) == 64

    def test_identical_markers_share_identity(self):
        with tempfile.TemporaryDirectory() as tmp:
            a = make_project(Path(tmp), "a", {"README.md": "# Tool\n"})
            b = make_project(Path(tmp), "b", {"README.md": "# Tool\n"})
            c = make_project(Path(tmp), "c", {"README.md": "# Other\n"})

            key_a = resolve_identity(a, find_marker(a))
            assert key_a == resolve_identity(b, find_marker(b))
            assert key_a != resolve_identity(c, find_marker(c))

    def test_unreadable_marker_gets_synthetic_key(self, monkeypatch, caplog):
        with tempfile.TemporaryDirectory() as tmp:
            project = make_project(Path(tmp), "broken", {"package.json": '{"name": "foo"}'})

            def fail(path):
                raise PermissionError(13, "Permission denied", path)

            monkeypatch.setattr("project_consolidator.identity._read_marker", fail)

            key = resolve_identity(project, find_marker(project))
            assert key.startswith("broken@")
            assert key != "foo"
            assert any(r.levelname == "ERROR" for r in caplog.records)


class TestHelpers:
    """Tests for hashing and synthetic key helpers."""

    def test_hash_bytes_fixed_length(self):
        assert hash_bytes(b"") == hashlib.sha256(b"").hexdigest()
        assert len(hash_bytes(b"x" * 10000)) == 64

    def test_synthetic_identity_format(self):
        key = synthetic_identity("/data/My Project/", datetime(2024, 3, 5, 14, 30, 1, 250))
        assert key == "My Project@20240305143001000250"
