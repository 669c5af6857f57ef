"""Git source — tracked files of a local repository.

Only files reported by ``git ls-files`` are considered, filtered by an
extension allow-list and a deny-list of directory fragments / glob patterns.
``git`` always runs with shell=False.
"""

from __future__ import annotations

import fnmatch
import subprocess
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from contextor.config import DEFAULT_EXTENSIONS, DEFAULT_IGNORE
from contextor.db.models import Project
from contextor.errors import SourceReadError
from contextor.ingest.base import BaseSource, Document

_DOCS_EXTS = {".md", ".mdx", ".txt"}
_CONFIG_EXTS = {".json", ".yaml", ".yml", ".env"}
_CONFIG_NAMES = {"package.json", "tsconfig.json", "next.config.js"}


def classify(path: str) -> str:
    """Return the source type of a tracked file: docs, config, or code."""
    p = PurePosixPath(path)
    ext = p.suffix.lower()
    if ext in _DOCS_EXTS:
        return "docs"
    if ext in _CONFIG_EXTS or p.name in _CONFIG_NAMES:
        return "config"
    return "code"


class GitSource(BaseSource):
    """Yield one Document per tracked, allow-listed file of *repo_path*.

    Args:
        repo_path: Working tree of a git repository.
        extensions: File extensions to include (with leading dot).
        ignore: Deny-list. Entries ending in ``/`` match a directory anywhere
            in the path; entries containing ``*`` are globs matched against the
            file name; anything else matches the file name exactly.
    """

    name = "git"

    def __init__(
        self,
        repo_path: Path | str,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        ignore: Iterable[str] = DEFAULT_IGNORE,
    ) -> None:
        super().__init__()
        self.repo_path = Path(repo_path).resolve()
        self.extensions = {e.lower() for e in extensions}
        self.ignore = list(ignore)

    def discover(self, project: Project) -> list[str]:
        return [f for f in self._tracked_files() if self.should_process(f)]

    def load(self, ref: str) -> Document | None:
        full_path = self.repo_path / ref
        try:
            text = full_path.read_text(encoding="utf-8")
            mtime = full_path.stat().st_mtime
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceReadError(ref, str(exc)) from exc
        if not text.strip():
            return None
        modified = datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()
        return Document(
            text=text,
            source_type=classify(ref),
            path=ref,
            modified_at=modified,
            metadata={"file_type": PurePosixPath(ref).suffix},
        )

    def should_process(self, path: str) -> bool:
        """Apply the deny-list, then the extension allow-list."""
        p = PurePosixPath(path)
        for pattern in self.ignore:
            if pattern.endswith("/"):
                if f"/{path}".find(f"/{pattern}") != -1:
                    return False
            elif "*" in pattern or "?" in pattern:
                if fnmatch.fnmatch(p.name, pattern):
                    return False
            elif p.name == pattern:
                return False
        return p.suffix.lower() in self.extensions

    # ------------------------------------------------------------------
    # git
    # ------------------------------------------------------------------

    def _tracked_files(self) -> list[str]:
        if not self.repo_path.is_dir():
            raise ValueError(f"Repository path does not exist: {self.repo_path}")
        try:
            result = subprocess.run(
                ["git", "ls-files", "-z"],
                cwd=self.repo_path,
                shell=False,
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as exc:
            raise RuntimeError("git executable not found on PATH") from exc
        except subprocess.CalledProcessError as exc:
            raise ValueError(
                f"Not a git repository: {self.repo_path} ({(exc.stderr or '').strip()})"
            ) from None
        return [f for f in result.stdout.split("\0") if f]
