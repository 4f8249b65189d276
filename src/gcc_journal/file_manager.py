"""Low-level document store used by the GCC journal engine."""

from __future__ import annotations

import logging
import os
import re
import stat
import tempfile
from pathlib import Path
from typing import Any

import yaml

from . import sections
from .errors import ErrorCode, GCCError

logger = logging.getLogger(__name__)


class FileManager:
    """Safe creation and surgical modification of journal documents.

    Every rewrite goes to a temporary sibling first and is moved into place
    with ``os.replace``, so a crash mid-write leaves either the old or the new
    document, never a torn one. Parent directories are the caller's job.
    """

    def read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except PermissionError as exc:
            raise GCCError(
                ErrorCode.PERMISSION_DENIED,
                f"Permission denied while reading {path}",
                "Check directory permissions and try again.",
            ) from exc
        except OSError as exc:
            raise GCCError(
                ErrorCode.STORAGE_ERROR,
                f"Unable to read {path}: {exc}",
                "Check the file system and try again.",
            ) from exc

    def write_text(self, path: Path, content: str) -> None:
        tmp_name = ""
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.chmod(tmp_name, _target_mode(path))
            os.replace(tmp_name, path)
        except PermissionError as exc:
            self._discard(tmp_name)
            raise GCCError(
                ErrorCode.PERMISSION_DENIED,
                f"Permission denied while writing {path}",
                "Check directory permissions and try again.",
            ) from exc
        except OSError as exc:
            self._discard(tmp_name)
            raise GCCError(
                ErrorCode.STORAGE_ERROR,
                f"Unable to write {path}: {exc}",
                "Check free disk space and that the parent directory exists.",
            ) from exc
        logger.debug("Wrote %s (%d chars)", path, len(content))

    def ensure_text(self, path: Path, template: str) -> bool:
        """Create ``path`` from ``template`` unless it already exists.

        Never raises: returns ``False`` when the file could not be created.
        """
        if path.exists():
            return True
        try:
            with path.open("x", encoding="utf-8") as handle:
                handle.write(template)
        except FileExistsError:
            return True
        except OSError:
            logger.warning("Unable to create %s", path, exc_info=True)
            return False
        logger.debug("Created %s from template", path)
        return True

    def insert_after_anchor(self, path: Path, anchor: str, text: str, default: str = "") -> None:
        """Insert ``text`` after ``anchor``; a missing file starts as ``default``."""
        existing = self.read_text(path) if path.exists() else default
        if anchor not in existing:
            logger.warning("Anchor %r not found in %s; using blank-line fallback", anchor, path)
        self.write_text(path, sections.insert_after_anchor(existing, anchor, text))

    def replace_section(
        self,
        path: Path,
        heading: str,
        entry: str,
        cap: int,
        placeholder: str = "",
    ) -> list[str]:
        """Prepend ``entry`` to a bullet section, keeping at most ``cap`` lines.

        Bullets containing ``placeholder`` are dropped once a real entry exists.
        Returns the retained bullets, newest first.
        """
        content = self.read_text(path)
        prior = sections.section_bullets(content, heading)
        if placeholder:
            prior = [line for line in prior if placeholder not in line]
        retained = [entry, *prior][: max(1, cap)]
        if sections.find_section(content, heading) is None:
            logger.warning("Section %r missing in %s; appending it", heading, path)
        self.write_text(path, sections.replace_section_lines(content, heading, retained))
        return retained

    def add_section_item(self, path: Path, heading: str, item: str, empty_line: str) -> bool:
        """Append ``item`` to a bullet section unless already listed."""
        content = self.read_text(path)
        bullets = [line for line in sections.section_bullets(content, heading) if line != empty_line]
        if item in bullets:
            return False
        self.write_text(path, sections.replace_section_lines(content, heading, [*bullets, item]))
        return True

    def remove_section_item(self, path: Path, heading: str, item: str, empty_line: str) -> bool:
        """Remove ``item`` from a bullet section, leaving ``empty_line`` if none remain."""
        content = self.read_text(path)
        bullets = sections.section_bullets(content, heading)
        if item not in bullets:
            return False
        remaining = [line for line in bullets if line != item] or [empty_line]
        self.write_text(path, sections.replace_section_lines(content, heading, remaining))
        return True

    def substitute(self, path: Path, pattern: re.Pattern[str], replacement: str) -> bool:
        """Replace the first match of ``pattern``; returns whether anything changed."""
        content = self.read_text(path)
        updated, count = pattern.subn(lambda _match: replacement, content, count=1)
        if not count or updated == content:
            return False
        self.write_text(path, updated)
        return True

    def append_rotating(self, path: Path, line: str, max_lines: int, keep_lines: int) -> bool:
        """Append ``line`` to a log, trimming to the newest ``keep_lines`` past ``max_lines``.

        Fire-and-forget: failures are logged and reported as ``False``.
        """
        try:
            lines = self.read_text(path).splitlines()
            lines.append(line)
            if len(lines) > max_lines:
                lines = lines[-keep_lines:]
            self.write_text(path, "\n".join(lines) + "\n")
        except GCCError:
            logger.warning("Unable to append to log %s", path, exc_info=True)
            return False
        return True

    def rename_aside(self, path: Path, suffix: str) -> Path:
        """Rename ``path`` to a backup name that does not clobber older backups."""
        target = path.with_name(path.name + suffix)
        counter = 1
        while target.exists():
            target = path.with_name(f"{path.name}{suffix}.{counter}")
            counter += 1
        try:
            path.rename(target)
        except OSError as exc:
            raise GCCError(
                ErrorCode.STORAGE_ERROR,
                f"Unable to back up {path}: {exc}",
                "Check directory permissions and try again.",
            ) from exc
        logger.debug("Renamed %s aside to %s", path, target)
        return target

    def move(self, source: Path, target: Path) -> None:
        try:
            os.replace(source, target)
        except OSError as exc:
            raise GCCError(
                ErrorCode.STORAGE_ERROR,
                f"Unable to move {source} to {target}: {exc}",
                "Check directory permissions and try again.",
            ) from exc

    def make_dirs(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except PermissionError as exc:
            raise GCCError(
                ErrorCode.PERMISSION_DENIED,
                f"Permission denied while creating {path}",
                "Check directory permissions and try again.",
            ) from exc
        except OSError as exc:
            raise GCCError(
                ErrorCode.STORAGE_ERROR,
                f"Unable to create {path}: {exc}",
                "Check the file system and try again.",
            ) from exc

    def read_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle)
        except PermissionError as exc:
            raise GCCError(
                ErrorCode.PERMISSION_DENIED,
                f"Permission denied while reading {path}",
                "Check directory permissions and try again.",
            ) from exc
        if isinstance(loaded, dict):
            return loaded
        return {}

    def _discard(self, tmp_name: str) -> None:
        if not tmp_name:
            return
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Unable to remove temporary file %s", tmp_name, exc_info=True)


def _target_mode(path: Path) -> int:
    """Mode a rewrite of ``path`` should carry: the current one, or the umask default."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask
