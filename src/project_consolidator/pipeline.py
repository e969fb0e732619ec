"""
Run orchestration: crawl, resolve, group, select, plan, transfer, record.

A ConsolidationRun owns the ProjectIndex for one invocation and drives each
stage in order. All filesystem validation happens before the first stage,
so a rejected configuration never mutates anything.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from . import __version__
from .crawler import DEFAULT_IGNORE_PATTERNS, crawl_projects
from .dates import DateStrategy, resolve_date, to_day
from .decisions import AutoDecisionProvider, DecisionProvider
from .identity import resolve_identity
from .index import ProjectIndex
from .manifest import Manifest, ManifestWriter
from .planner import DestinationPlanner, choose_layout
from .progress import NullProgressSink, ProgressSink
from .report import ReportWriter
from .selector import select_primaries
from .transfer import DEFAULT_PROGRESS_DEPTH, Transferer
from .types import LayoutMode, ProjectInstance, TransferResult, TransferStatus

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"

LAYOUT_CHOICES = ("dated", "flat", "ask")


class RunValidationError(Exception):
    """Raised when the run configuration is rejected before any change is made."""
    pass


@dataclass
class RunConfig:
    """Settings for one consolidation run."""
    source_root: Path
    output_root: Path
    map_only: bool = False
    copy_only: bool = False
    layout: str = "dated"
    interactive: bool = False
    date_strategy: DateStrategy = "filesystem"
    ignore_patterns: Tuple[str, ...] = DEFAULT_IGNORE_PATTERNS
    manifest_path: Optional[Path] = None
    report_path: Optional[Path] = None
    overwrite: bool = False
    progress_depth: int = DEFAULT_PROGRESS_DEPTH

    def __post_init__(self):
        self.source_root = Path(self.source_root)
        self.output_root = Path(self.output_root)
        if self.manifest_path is None:
            self.manifest_path = self.output_root / MANIFEST_NAME
        else:
            self.manifest_path = Path(self.manifest_path)
        if self.report_path is not None:
            self.report_path = Path(self.report_path)

    @property
    def mode(self) -> str:
        if self.map_only:
            return "map-only"
        return "copy" if self.copy_only else "move"

    def parameters(self) -> Dict[str, str]:
        """Run parameters for traceability in logs and reports."""
        return {
            "version": __version__,
            "source_root": str(self.source_root.resolve()),
            "output_root": str(self.output_root.resolve()),
            "mode": self.mode,
            "layout": self.layout,
            "interactive": str(self.interactive),
            "date_strategy": self.date_strategy,
            "ignore_patterns": ",".join(self.ignore_patterns),
            "manifest": str(self.manifest_path.resolve()),
            "report": str(self.report_path.resolve()) if self.report_path else "",
            "overwrite": str(self.overwrite),
        }


@dataclass
class RunSummary:
    """Outcome counts of a run."""
    projects: int = 0
    groups: int = 0
    duplicate_groups: int = 0
    migrated: int = 0
    partial: int = 0
    failed: int = 0
    skipped: int = 0
    layout: Optional[LayoutMode] = None
    manifest_path: Optional[Path] = None
    results: List[TransferResult] = field(default_factory=list)


def _is_within(path: Path, parent: Path) -> bool:
    try:
        path.resolve().relative_to(parent.resolve())
        return True
    except ValueError:
        return False


def validate_config(config: RunConfig) -> None:
    """
    Reject configurations that would be unsafe to run.

    Raises:
        RunValidationError: Describing every problem found
    """
    errors = []
    source, output = config.source_root, config.output_root

    if not source.exists():
        errors.append(f"Source root not found: {source}")
    elif not source.is_dir():
        errors.append(f"Source root is not a directory: {source}")

    if output.exists() and not output.is_dir():
        errors.append(f"Output root is not a directory: {output}")
    elif source.exists() and output.exists() and source.resolve() == output.resolve():
        errors.append(f"Output root must differ from source root: {output}")
    elif source.exists() and _is_within(source, output):
        errors.append(f"Output root must not contain the source root: {output}")
    elif (
        not config.map_only
        and output.is_dir()
        and any(output.iterdir())
        and not config.overwrite
    ):
        errors.append(f"Output root is not empty (use --overwrite to allow): {output}")

    if config.manifest_path.exists() and not config.overwrite:
        errors.append(f"Manifest already exists (use --overwrite to replace): {config.manifest_path}")

    if config.layout not in LAYOUT_CHOICES:
        errors.append(f"Unknown layout: {config.layout}")

    if config.progress_depth < 0:
        errors.append(f"Progress depth must not be negative: {config.progress_depth}")

    if errors:
        raise RunValidationError("; ".join(errors))


class ConsolidationRun:
    """
    Drives one consolidation run.

    Args:
        config: Run settings
        decisions: Provider for primary choices and layout confirmation
        progress: Sink for transfer progress events
    """

    def __init__(
        self,
        config: RunConfig,
        decisions: Optional[DecisionProvider] = None,
        progress: Optional[ProgressSink] = None
    ):
        self.config = config
        self.decisions = decisions or AutoDecisionProvider()
        self.progress = progress or NullProgressSink()
        self.index = ProjectIndex()
        self.summary = RunSummary()
        self._excluded: List[Path] = []

    def _exclude_paths(self) -> List[Path]:
        """
        Output root as seen from the crawl, when it lies under the source root.

        The crawl walks absolute, unresolved paths, so the output is mapped
        onto the source root as given (which may be a symlink).
        """
        source, output = self.config.source_root, self.config.output_root
        if not _is_within(output, source):
            return []
        relative = output.resolve().relative_to(source.resolve())
        excluded = source.absolute() / relative
        logger.info(f"Output root is inside source root, excluding it from the crawl: {excluded}")
        return [excluded]

    def check_output_placement(self) -> None:
        """
        Reject transfers into a folder that lies inside a discovered project.

        Raises:
            RunValidationError: If a project would be moved into itself
        """
        for excluded in self._excluded:
            excluded_str = os.path.normcase(str(excluded))
            for instance in self.index.instances():
                project = os.path.normcase(instance.source_path)
                if excluded_str.startswith(project.rstrip(os.sep) + os.sep):
                    raise RunValidationError(
                        f"Output root {self.config.output_root} lies inside project "
                        f"{instance.source_path}; choose an output outside it or use --map-only"
                    )

    def discover(self) -> ProjectIndex:
        """Crawl the source root and group every project found."""
        exclude_paths = self._excluded = self._exclude_paths()
        for path, marker in crawl_projects(
            self.config.source_root,
            ignore_patterns=self.config.ignore_patterns,
            exclude_paths=exclude_paths
        ):
            identity_key = resolve_identity(path, marker)
            try:
                date = resolve_date(
                    path,
                    self.config.date_strategy,
                    self.config.ignore_patterns,
                    exclude_paths
                )
            except OSError as e:
                date = to_day(time.time())
                logger.error(f"Cannot date {path}: {e}. Using today's date")

            self.index.add(ProjectInstance(
                source_path=path,
                identity_key=identity_key,
                representative_date=date,
                marker=marker
            ))

        self.summary.projects = self.index.instance_count()
        self.summary.groups = len(self.index)
        self.summary.duplicate_groups = len(self.index.duplicate_groups())
        logger.info(
            f"Discovered {self.summary.projects} projects in {self.summary.groups} groups "
            f"({self.summary.duplicate_groups} with duplicates)"
        )
        return self.index

    def select(self) -> None:
        select_primaries(self.index, self.decisions, self.config.interactive)

    def resolve_layout(self) -> LayoutMode:
        if self.config.layout == "ask":
            layout = choose_layout(self.decisions)
        else:
            layout = LayoutMode(self.config.layout)
        self.summary.layout = layout
        return layout

    def plan(self, layout: LayoutMode) -> None:
        DestinationPlanner(self.config.output_root, layout).plan_all(self.index)

    def transfer(self) -> List[TransferResult]:
        transferer = Transferer(
            copy_only=self.config.copy_only,
            progress=self.progress,
            max_depth=self.config.progress_depth
        )
        results = transferer.transfer_all(self.index)

        stats = transferer.get_stats()
        self.summary.results = results
        self.summary.migrated = stats[TransferStatus.SUCCESS.value]
        self.summary.partial = stats[TransferStatus.PARTIAL.value]
        self.summary.failed = stats[TransferStatus.ERROR.value]
        self.summary.skipped = (
            stats[TransferStatus.SKIPPED_MISSING.value]
            + stats[TransferStatus.SKIPPED_EXISTS.value]
            + stats[TransferStatus.SKIPPED_NO_DEST.value]
        )

        if self.config.report_path is not None:
            with ReportWriter(self.config.report_path, self.config.copy_only) as writer:
                writer.write_parameters(self.config.parameters())
                for result in results:
                    writer.write_result(result)
                counts = ", ".join(f"{status}: {n}" for status, n in sorted(writer.get_stats().items()))
                logger.info(
                    f"Report {self.config.report_path}: {writer.get_row_count()} rows ({counts})"
                )

        return results

    def write_manifest(self) -> Manifest:
        writer = ManifestWriter(self.config.manifest_path, overwrite=self.config.overwrite)
        manifest = writer.write(self.index, include_destinations=not self.config.map_only)
        self.summary.manifest_path = self.config.manifest_path
        return manifest

    def run(self) -> RunSummary:
        """
        Run every stage in order.

        Raises:
            RunValidationError: If the configuration is rejected
            PrimarySelectionError: If primary selection breaks its invariant
        """
        validate_config(self.config)

        self.discover()
        if not self.config.map_only:
            self.check_output_placement()
        self.select()

        if not self.config.map_only:
            self.plan(self.resolve_layout())
            self.transfer()
            if self.summary.failed or self.summary.partial:
                logger.warning(
                    f"{self.summary.failed} transfer(s) failed and "
                    f"{self.summary.partial} partially completed; see log for details"
                )

        self.write_manifest()
        return self.summary
