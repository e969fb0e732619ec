"""
Unit tests for the project crawler.
"""

import inspect
import os
import tempfile
from pathlib import Path

import pytest

from project_consolidator.crawler import (
    DEFAULT_IGNORE_PATTERNS,
    crawl_projects,
    find_marker,
    is_ignored,
    iter_files,
)


def create_test_tree(structure: dict, base_path: Path) -> None:
    """
    Create a directory tree from a nested dict structure.

    Args:
        structure: Dict where keys are names; dict values are folders,
                   string values are file contents
        base_path: Base path to create the tree under
    """
    base_path.mkdir(parents=True, exist_ok=True)
    for name, children in structure.items():
        path = base_path / name
        if isinstance(children, dict):
            path.mkdir(parents=True, exist_ok=True)
            create_test_tree(children, path)
        else:
            path.write_text(children)


def crawl_names(root, **kwargs):
    """Project paths relative to root, in crawl order."""
    return [
        os.path.relpath(path, root).replace(os.sep, "/")
        for path, _ in crawl_projects(root, **kwargs)
    ]


class TestIsIgnored:
    """Tests for is_ignored function."""

    def test_vcs_folder_ignored(self):
        assert is_ignored(".git", DEFAULT_IGNORE_PATTERNS) == ".git"

    def test_case_insensitive(self):
        assert is_ignored("Node_Modules", DEFAULT_IGNORE_PATTERNS) == "node_modules"

    def test_glob_pattern(self):
        assert is_ignored("foo.egg-info", ["*.egg-info"]) == "*.egg-info"

    def test_regular_folder_not_ignored(self):
        assert is_ignored("src", DEFAULT_IGNORE_PATTERNS) is None

    def test_no_substring_matching(self):
        """Patterns match whole names, not substrings."""
        assert is_ignored("my.git.notes", DEFAULT_IGNORE_PATTERNS) is None


class TestFindMarker:
    """Tests for find_marker function."""

    def test_no_marker(self):
        assert find_marker("/p", ["main.py", "notes.docx"]) is None

    def test_package_manifest_wins(self):
        """Earlier patterns take priority regardless of listing order."""
        marker = find_marker("/p", ["README.md", "requirements.txt", "package.json"])
        assert marker.pattern == "package.json"
        assert marker.name == "package.json"

    def test_dependency_list_before_readme(self):
        marker = find_marker("/p", ["README.md", "requirements.txt"])
        assert marker.pattern == "requirements.txt"

    def test_solution_file_by_extension(self):
        marker = find_marker("/p", ["Program.cs", "MyApp.sln", "README.md"])
        assert marker.pattern == "*.sln"
        assert marker.name == "MyApp.sln"

    def test_glob_picks_first_name(self):
        marker = find_marker("/p", ["Zeta.sln", "Alpha.sln"])
        assert marker.name == "Alpha.sln"

    def test_readme_case_insensitive(self):
        marker = find_marker("/p", ["readme.md"])
        assert marker.pattern == "README.md"
        assert marker.name == "readme.md"

    def test_marker_path_is_inside_directory(self):
        marker = find_marker("/p", ["package.json"])
        assert marker.path == os.path.join("/p", "package.json")

    def test_lists_directory_when_names_not_given(self):
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "requirements.txt").write_text("requests\n")
            (Path(tmp) / "package.json").mkdir()  # A folder is not a marker

            marker = find_marker(tmp)
            assert marker.pattern == "requirements.txt"


class TestCrawlProjects:
    """Tests for crawl_projects function."""

    def test_empty_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            assert list(crawl_projects(tmp)) == []

    def test_is_lazy(self):
        with tempfile.TemporaryDirectory() as tmp:
            assert inspect.isgenerator(crawl_projects(tmp))

    def test_finds_nested_projects(self):
        with tempfile.TemporaryDirectory() as tmp:
            create_test_tree({
                "A": {
                    "old": {"package.json": '{"name": "foo"}'},
                    "new": {"package.json": '{"name": "foo"}'},
                },
                "B": {"deep": {"er": {"requirements.txt": "flask\n"}}},
                "notes": {"todo.txt": "nothing here"},
            }, Path(tmp))

            assert crawl_names(tmp) == ["A/new", "A/old", "B/deep/er"]

    def test_yields_absolute_paths_and_markers(self):
        with tempfile.TemporaryDirectory() as tmp:
            create_test_tree({"proj": {"README.md": "# proj"}}, Path(tmp))

            (path, marker), = list(crawl_projects(tmp))
            assert os.path.isabs(path)
            assert path.endswith("proj")
            assert marker.pattern == "README.md"

    def test_does_not_descend_into_projects(self):
        """A project's internal structure is opaque."""
        with tempfile.TemporaryDirectory() as tmp:
            create_test_tree({
                "app": {
                    "package.json": '{"name": "app"}',
                    "client": {"package.json": '{"name": "client"}'},
                    "docs": {"README.md": "docs"},
                },
            }, Path(tmp))

            assert crawl_names(tmp) == ["app"]

    def test_root_can_be_a_project(self):
        with tempfile.TemporaryDirectory() as tmp:
            create_test_tree({
                "package.json": '{"name": "root"}',
                "sub": {"package.json": '{"name": "sub"}'},
            }, Path(tmp))

            assert crawl_names(tmp) == ["."]

    def test_ignored_directories_pruned(self):
        with tempfile.TemporaryDirectory() as tmp:
            create_test_tree({
                "node_modules": {"lodash": {"package.json": '{"name": "lodash"}'}},
                ".git": {"hooks": {"README": "hooks"}},
                ".vscode": {"README.md": "settings"},
                "work": {
                    "__pycache__": {"README.md": "cache"},
                    "tool": {"requirements.txt": "click\n"},
                },
            }, Path(tmp))

            names = crawl_names(tmp)
            assert names == ["work/tool"]
            for name in names:
                parts = name.split("/")
                assert not any(is_ignored(p, DEFAULT_IGNORE_PATTERNS) for p in parts)

    def test_custom_ignore_patterns(self):
        with tempfile.TemporaryDirectory() as tmp:
            create_test_tree({
                "archive_2019": {"p1": {"README.md": "one"}},
                "live": {"p2": {"README.md": "two"}},
            }, Path(tmp))

            names = crawl_names(tmp, ignore_patterns=["archive_*"])
            assert names == ["live/p2"]

    def test_exclude_paths(self):
        with tempfile.TemporaryDirectory() as tmp:
            create_test_tree({
                "out": {"2024": {"p1": {"README.md": "one"}}},
                "p2": {"README.md": "two"},
            }, Path(tmp))

            names = crawl_names(tmp, exclude_paths=[Path(tmp) / "out"])
            assert names == ["p2"]

    def test_nonexistent_raises(self):
        with pytest.raises(FileNotFoundError):
            list(crawl_projects("/nonexistent/path/that/does/not/exist"))

    def test_file_raises(self):
        fd, path = tempfile.mkstemp()
        os.close(fd)
        try:
            with pytest.raises(NotADirectoryError):
                list(crawl_projects(path))
        finally:
            Path(path).unlink(missing_ok=True)

    def test_deep_tree_does_not_hit_recursion_limit(self):
        """The walk uses an explicit stack."""
        with tempfile.TemporaryDirectory() as tmp:
            current = Path(tmp)
            for i in range(60):
                current = current / f"d{i}"
            current.mkdir(parents=True)
            (current / "README.md").write_text("deep")

            (path, _), = list(crawl_projects(tmp))
            assert path == str(current)

    def test_unreadable_directory_skipped(self, monkeypatch, caplog):
        """A directory that cannot be listed is logged and skipped."""
        with tempfile.TemporaryDirectory() as tmp:
            create_test_tree({
                "locked": {"p1": {"README.md": "one"}},
                "open": {"p2": {"README.md": "two"}},
            }, Path(tmp))

            real_scandir = os.scandir
            locked = os.path.join(os.path.abspath(tmp), "locked")

            def fake_scandir(path="."):
                if str(path) == locked:
                    raise PermissionError(13, "Permission denied", str(path))
                return real_scandir(path)

            monkeypatch.setattr("project_consolidator.crawler.os.scandir", fake_scandir)

            assert crawl_names(tmp) == ["open/p2"]
            assert "Cannot scan directory" in caplog.text


class TestIterFiles:
    """Tests for iter_files function."""

    def test_lists_all_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            create_test_tree({
                "a.txt": "a",
                "sub": {"b.txt": "b", "deeper": {"c.txt": "c"}},
            }, Path(tmp))

            names = sorted(entry.name for entry in iter_files(tmp))
            assert names == ["a.txt", "b.txt", "c.txt"]

    def test_skips_ignored_subtrees(self):
        with tempfile.TemporaryDirectory() as tmp:
            create_test_tree({
                "index.js": "x",
                "node_modules": {"dep.js": "y"},
                ".git": {"HEAD": "ref"},
            }, Path(tmp))

            names = sorted(entry.name for entry in iter_files(tmp))
            assert names == ["index.js"]

    def test_skips_excluded_paths(self):
        with tempfile.TemporaryDirectory() as tmp:
            create_test_tree({
                "README.md": "# share",
                "Out": {"manifest.json": "{}", "2020": {"app": {"x.txt": "x"}}},
            }, Path(tmp))

            names = sorted(
                entry.name for entry in iter_files(tmp, exclude_paths=[Path(tmp) / "Out"])
            )
            assert names == ["README.md"]
