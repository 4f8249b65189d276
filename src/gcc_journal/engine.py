"""Core GCC journal engine implementing all domain operations."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .bootstrap import ensure_branch_storage, ensure_context_structure
from .constants import DEFAULT_BRANCH, JOURNAL_ANCHOR, STATUS_MERGED
from .errors import ErrorCode, GCCError
from .file_manager import FileManager
from .journal import (
    CONCLUSION_PLACEHOLDER_PATTERN,
    CommitRecord,
    latest_commit,
    next_commit_id,
    render_conclusion,
)
from .layout import ContextLayout
from .migration import LayoutMigrator, MigrationReport
from .models import (
    BranchHistoryEntry,
    BranchRequest,
    BranchResponse,
    CommitRequest,
    CommitResponse,
    ContextRequest,
    ContextResponse,
    InitRequest,
    InitResponse,
    MergeRequest,
    MergeResponse,
    MigrateResponse,
    StatusRequest,
    StatusResponse,
)
from .reader import MAX_LEVEL, MIN_LEVEL, ContextReader
from .registry import BranchRegistry
from .runtime import JournalSettings, configure_error_log, load_settings, resolve_project_dir
from .summary import ProjectSummary

logger = logging.getLogger(__name__)

BRANCH_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")
MERGE_WHY = "Consolidate findings from exploration."
MERGE_NEXT = "Continue on main with findings applied."


@dataclass
class _Project:
    layout: ContextLayout
    settings: JournalSettings
    registry: BranchRegistry
    summary: ProjectSummary
    migration: MigrationReport | None = None


class JournalEngine:
    """Main service implementing GCC journal operations.

    Every public operation re-reads the documents it needs, checks all of
    its guards, and only then starts writing.
    """

    def __init__(
        self,
        file_manager: FileManager | None = None,
        env: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.file_manager = file_manager or FileManager()
        self._env = env
        self._clock = clock or datetime.now

    def initialize(self, request: InitRequest) -> InitResponse:
        """Create (or repair) the journal tree, migrating a legacy layout first."""
        project = self._prepare(request.directory)
        ready = all(
            path.exists()
            for path in (
                project.layout.summary_path,
                project.layout.registry_path,
                project.layout.commits_path(DEFAULT_BRANCH),
            )
        )
        return InitResponse(
            status="success",
            message=f"GCC context ready in {project.layout.context_root}",
            context_root=str(project.layout.context_root),
            structure_ready=ready,
            migrated=project.migration is not None,
        )

    def commit(self, request: CommitRequest) -> CommitResponse:
        """Record a milestone at the top of the active branch's journal."""
        project = self._prepare(request.directory)
        layout = project.layout
        branch = project.registry.get_active()
        self._require_branch(layout, branch)

        now = self._clock()
        timestamp = _minute_stamp(now)
        journal_path = layout.commits_path(branch)
        record = CommitRecord(
            commit_id=next_commit_id(self.file_manager.read_text(journal_path)),
            timestamp=timestamp,
            branch=branch,
            title=request.title,
            what=request.what,
            why=request.why,
            files=tuple(request.files_changed),
            next_step=request.next_step,
        )

        self.file_manager.insert_after_anchor(
            journal_path, JOURNAL_ANCHOR, record.render(), default=JOURNAL_ANCHOR
        )
        project.summary.add_milestone(
            _day_stamp(now), branch, request.title, cap=project.settings.milestones_kept
        )
        self._append_log(project, branch, f"[{timestamp}] COMMIT {record.commit_id}: {request.title}")
        logger.info("Committed %s on branch %s", record.commit_id, branch)

        return CommitResponse(
            status="success",
            message=f"Committed {record.commit_id} on branch:{branch} - {request.title}",
            commit_id=record.commit_id,
            branch=branch,
            timestamp=timestamp,
        )

    def branch(self, request: BranchRequest) -> BranchResponse:
        """Open an exploration branch off main and make it active."""
        project = self._prepare(request.directory)
        layout = project.layout
        name = request.name

        if not BRANCH_NAME_PATTERN.match(name):
            raise GCCError(
                ErrorCode.INVALID_BRANCH_NAME,
                f"Invalid branch name: {name}",
                "Use kebab-case: lowercase letters and digits separated by single hyphens. "
                "Example: explore-caching",
                {"branch_name": name},
            )
        active = project.registry.get_active()
        if active != DEFAULT_BRANCH:
            raise GCCError(
                ErrorCode.WRONG_ACTIVE_BRANCH,
                f"Must be on main to create a branch. Currently on: {active}",
                "Merge the active branch first with gcc_merge.",
                {"active_branch": active},
            )
        if layout.branch_dir(name).exists():
            raise GCCError(
                ErrorCode.BRANCH_EXISTS,
                f"Branch '{name}' already exists",
                "Branch names are never reused; choose a different name.",
                {"branch_name": name},
            )

        now = self._clock()
        day = _day_stamp(now)
        ensure_branch_storage(layout, self.file_manager, name, request.purpose, request.hypothesis)
        project.summary.add_open_branch(name)
        project.registry.record_created(name, day)
        project.registry.set_active(name)
        self._append_log(project, name, f"[{day}] BRANCH created: {name} - {request.purpose}")
        logger.info("Created branch %s", name)

        return BranchResponse(
            status="success",
            message=(
                f"Created branch '{name}'. Now on branch:{name}. "
                "Use gcc_commit to record milestones, gcc_merge when done."
            ),
            branch=name,
            branch_path=str(layout.branch_dir(name)),
        )

    def merge(self, request: MergeRequest) -> MergeResponse:
        """Close the active exploration branch and summarise it on main.

        The registry status flip is the final state write, so an interrupted
        merge never reports a branch as merged without its main commit.
        """
        project = self._prepare(request.directory)
        layout = project.layout
        name = request.branch_name
        outcome = request.outcome.value

        if name == DEFAULT_BRANCH:
            raise GCCError(
                ErrorCode.INVALID_INPUT,
                "Cannot merge main into itself",
                "Only exploration branches can be merged.",
                {"branch_name": name},
            )
        active = project.registry.get_active()
        if active != name:
            raise GCCError(
                ErrorCode.WRONG_ACTIVE_BRANCH,
                f"Must be on branch '{name}' to merge it. Currently on: {active}",
                "Only the active branch can be merged.",
                {"branch_name": name, "active_branch": active},
            )
        if not layout.branch_exists(name):
            logger.warning("Branch %s has no storage; merging without its header", name)

        now = self._clock()
        timestamp = _minute_stamp(now)
        title = f"Merge: {name} ({outcome})"

        patched = self.file_manager.substitute(
            layout.commits_path(name),
            CONCLUSION_PLACEHOLDER_PATTERN,
            render_conclusion(outcome, request.conclusion),
        )
        if not patched:
            logger.info("Branch %s has no conclusion placeholder; header left as is", name)

        main_journal = layout.commits_path(DEFAULT_BRANCH)
        record = CommitRecord(
            commit_id=next_commit_id(self.file_manager.read_text(main_journal)),
            timestamp=timestamp,
            branch=DEFAULT_BRANCH,
            title=title,
            what=f"Merged exploration branch '{name}'. {request.conclusion}",
            why=MERGE_WHY,
            files=(layout.relative_branch_dir(name),),
            next_step=MERGE_NEXT,
        )
        self.file_manager.insert_after_anchor(
            main_journal, JOURNAL_ANCHOR, record.render(), default=JOURNAL_ANCHOR
        )
        project.summary.add_milestone(
            _day_stamp(now), DEFAULT_BRANCH, title, cap=project.settings.milestones_kept
        )
        project.summary.remove_open_branch(name)
        project.registry.set_active(DEFAULT_BRANCH)
        project.registry.set_status(name, STATUS_MERGED)

        self._append_log(project, name, f"[{timestamp}] MERGE {outcome}: {request.conclusion}")
        self._append_log(
            project, DEFAULT_BRANCH, f"[{timestamp}] MERGE {record.commit_id}: {name} ({outcome})"
        )
        logger.info("Merged branch %s (%s) as %s", name, outcome, record.commit_id)

        return MergeResponse(
            status="success",
            message=f"Merged '{name}' ({outcome}) into main as {record.commit_id}. Back on branch:main.",
            merge_commit_id=record.commit_id,
            merged_branch=name,
            outcome=request.outcome,
            active_branch=DEFAULT_BRANCH,
        )

    def get_context(self, request: ContextRequest) -> ContextResponse:
        """Render layered context for the requested (or active) branch."""
        if not MIN_LEVEL <= request.level <= MAX_LEVEL:
            raise GCCError(
                ErrorCode.INVALID_LEVEL,
                f"level must be between {MIN_LEVEL} and {MAX_LEVEL}",
                "Use 1 for the summary only and 5 for commit lookup and search.",
                {"level": request.level},
            )
        project = self._prepare(request.directory)
        layout = project.layout
        active = project.registry.get_active()
        branch = request.branch.strip() or active
        self._require_branch(layout, branch)
        if not layout.summary_path.exists():
            raise GCCError(
                ErrorCode.GCC_NOT_FOUND,
                f"No GCC context found in {layout.context_root}",
                "Run gcc-journal init to create the journal.",
            )

        reader = ContextReader(layout, self.file_manager, project.settings)
        rendered = reader.render(
            request.level,
            branch,
            active,
            commit_id=request.commit_id.strip(),
            search_term=request.search_term.strip(),
        )
        return ContextResponse(
            status="success",
            message=f"Context level {request.level} for branch:{branch}",
            level=request.level,
            branch=branch,
            active_branch=active,
            rendered=rendered,
        )

    def get_status(self, request: StatusRequest) -> StatusResponse:
        """Summarise journal state without migrating or creating anything."""
        layout = ContextLayout(self._resolve_directory(request.directory))
        if not layout.context_root.is_dir():
            raise GCCError(
                ErrorCode.GCC_NOT_FOUND,
                f"No GCC context found in {layout.project_dir}",
                "Run gcc-journal init to create the journal.",
                {"context_root": str(layout.context_root)},
            )

        registry = BranchRegistry(layout.registry_path, self.file_manager)
        summary = ProjectSummary(layout.summary_path, self.file_manager)
        active = registry.get_active()
        latest = latest_commit(self.file_manager.read_text(layout.commits_path(active)))
        last_id, last_title = latest if latest else ("", "")

        return StatusResponse(
            status="success",
            message=f"On branch:{active}",
            active_branch=active,
            open_branches=summary.open_branches(),
            branches=[
                BranchHistoryEntry(name=row.name, status=row.status, created=row.created)
                for row in registry.history()
            ],
            last_commit_id=last_id,
            last_commit_title=last_title,
            migration_pending=LayoutMigrator(layout, self.file_manager).needs_migration(),
        )

    def migrate(self, request: StatusRequest) -> MigrateResponse:
        """Run the layout migration on demand."""
        layout = ContextLayout(self._resolve_directory(request.directory))
        migrator = LayoutMigrator(layout, self.file_manager)
        if not migrator.needs_migration():
            return MigrateResponse(
                status="success",
                message=f"Nothing to migrate in {layout.context_root}",
            )
        report = self._run_migration(migrator)
        ensure_context_structure(layout, self.file_manager)
        return MigrateResponse(
            status="success",
            message=f"Migrated legacy layout in {layout.context_root}",
            migrated=True,
            journal=report.journal,
            log=report.log,
            branches=report.branches,
            backups=report.backups,
        )

    def _prepare(self, directory: str) -> _Project:
        layout = ContextLayout(self._resolve_directory(directory))
        migrator = LayoutMigrator(layout, self.file_manager)
        report = self._run_migration(migrator) if migrator.needs_migration() else None
        if not ensure_context_structure(layout, self.file_manager):
            logger.warning("Journal structure under %s is incomplete", layout.context_root)
        configure_error_log(layout.gcc_root)
        return _Project(
            layout=layout,
            settings=load_settings(layout.config_path, env=self._env, file_manager=self.file_manager),
            registry=BranchRegistry(layout.registry_path, self.file_manager),
            summary=ProjectSummary(layout.summary_path, self.file_manager),
            migration=report,
        )

    def _run_migration(self, migrator: LayoutMigrator) -> MigrationReport:
        try:
            return migrator.migrate()
        except GCCError as exc:
            raise GCCError(
                ErrorCode.MIGRATION_FAILED,
                f"Layout migration failed: {exc.message}",
                "Legacy files are kept in place or as .v1-backup copies; fix the cause and retry.",
                {"cause": exc.code.value, "context_root": str(migrator.layout.context_root)},
            ) from exc

    def _resolve_directory(self, directory: str) -> Path:
        requested = resolve_project_dir(directory, env=self._env)
        path = Path(requested).expanduser()
        if not path.is_dir():
            raise GCCError(
                ErrorCode.INVALID_DIRECTORY,
                f"Directory does not exist: {requested}",
                "Pass an existing project directory or set GCC_PROJECT_DIR.",
                {"requested_directory": requested},
            )
        return path.resolve()

    def _require_branch(self, layout: ContextLayout, branch: str) -> None:
        if not layout.branch_exists(branch):
            raise GCCError(
                ErrorCode.BRANCH_NOT_FOUND,
                f"Branch '{branch}' has no storage under {layout.branches_dir}",
                "Merge the active branch with gcc_merge to return to main.",
                {"branch_name": branch},
            )

    def _append_log(self, project: _Project, branch: str, line: str) -> None:
        self.file_manager.append_rotating(
            project.layout.log_path(branch),
            line,
            max_lines=project.settings.log_max_lines,
            keep_lines=project.settings.log_keep_lines,
        )


def _minute_stamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M")


def _day_stamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d")
