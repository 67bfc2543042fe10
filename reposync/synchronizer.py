"""
Repository synchronizer for reposync.

Clones a list of companion Git repositories into sibling directories of
the current project, skipping any that are already present, and reports
how many were cloned, skipped or failed.

Missing git or a missing target directory stops the whole run before
anything is touched. A failed clone only costs you that one repository.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from reposync.config import SyncConfig

logger = logging.getLogger(__name__)

DEFAULT_REPOSITORIES = (
    "https://github.com/reposync-dev/shared-config.git",
    "https://github.com/reposync-dev/dev-tools.git",
)

GIT_SUFFIX = ".git"

ProgressCallback = Callable[[str, str, int, int], None]


class SyncError(Exception):
    """Base class for reposync errors."""


class GitNotFoundError(SyncError):
    """Raised when the git executable cannot be found on PATH."""

    def __init__(self, executable: str):
        self.executable = executable
        super().__init__(f"'{executable}' was not found on PATH. Install Git and try again.")


class TargetDirectoryError(SyncError):
    """Raised when the clone destination does not exist."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Target directory does not exist: {path}")


class InvalidRepositoryURL(SyncError):
    """Raised when no folder name can be derived from a repository URL."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Cannot derive a folder name from URL: {url!r}")


def extract_folder_name(url: str) -> str:
    """Derive the clone folder name from a Git URL.

    Handles HTTPS, SSH and local path URLs:
        https://github.com/org/repo.git -> repo
        git@github.com:org/repo.git -> repo
        /srv/git/repo.git -> repo

    Surrounding whitespace and trailing slashes are ignored and a single
    ``.git`` suffix is stripped.

    Raises:
        InvalidRepositoryURL: If the result would be empty, ``.`` or ``..``.
    """
    cleaned = url.strip().rstrip("/")

    if cleaned.endswith(GIT_SUFFIX):
        cleaned = cleaned[: -len(GIT_SUFFIX)]

    if "://" in cleaned:
        path = urlparse(cleaned).path.strip("/")
        name = path.split("/")[-1]
    else:
        # scp-like syntax (git@host:org/repo) or a plain path
        name = cleaned.split("/")[-1].split(":")[-1]

    if name in ("", ".", "..") or "\\" in name:
        raise InvalidRepositoryURL(url)
    return name


def find_git(executable: str = "git") -> str:
    """Resolve the git executable on PATH.

    Returns:
        Absolute path to the executable.

    Raises:
        GitNotFoundError: If it cannot be resolved.
    """
    resolved = shutil.which(executable)
    if not resolved:
        raise GitNotFoundError(executable)
    return resolved


def _run_git(
    args: List[str],
    cwd: Optional[Path] = None,
    timeout: Optional[int] = 600,
    executable: str = "git",
) -> subprocess.CompletedProcess:
    """Run a git command with stdout and stderr merged.

    Args:
        args: Git command arguments (without the executable).
        cwd: Working directory.
        timeout: Command timeout in seconds.
        executable: Git executable name or path.

    Returns:
        CompletedProcess result; combined output is in ``stdout``.
    """
    cmd = [executable] + args
    logger.debug("Running: %s (cwd=%s)", " ".join(cmd), cwd)

    return subprocess.run(
        cmd,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        timeout=timeout,
    )


class CloneFailure:
    """A single repository that could not be cloned."""

    def __init__(self, url: str, folder: Optional[str], message: str):
        self.url = url
        self.folder = folder
        self.message = message

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"url": self.url, "folder": self.folder, "message": self.message}

    def __repr__(self) -> str:
        return f"CloneFailure(url={self.url!r}, folder={self.folder!r})"


class SyncSummary:
    """Counters for one synchronizer run."""

    def __init__(self) -> None:
        self.processed = 0
        self.cloned = 0
        self.skipped = 0
        self.errored = 0
        self.errors: List[CloneFailure] = []
        self.empty = False

    @property
    def ok(self) -> bool:
        return self.errored == 0

    @property
    def status(self) -> str:
        if self.empty:
            return "empty"
        return "success" if self.ok else "completed_with_errors"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "processed": self.processed,
            "cloned": self.cloned,
            "skipped": self.skipped,
            "errored": self.errored,
            "errors": [e.to_dict() for e in self.errors],
        }

    def __repr__(self) -> str:
        return (
            f"SyncSummary(processed={self.processed}, cloned={self.cloned}, "
            f"skipped={self.skipped}, errored={self.errored})"
        )


class RepositorySynchronizer:
    """Clones missing companion repositories into the target directory.

    Runs strictly one repository at a time, in input order.
    """

    def __init__(
        self,
        config: Optional[SyncConfig] = None,
        target_dir: Optional[Path] = None,
        verbose: Optional[bool] = None,
    ):
        self.config = config or SyncConfig()
        self.target_dir = Path(target_dir) if target_dir else self.config.target_dir
        self.verbose = self.config.verbose if verbose is None else verbose

    def _progress(self, msg: str, *args: Any) -> None:
        logger.log(logging.INFO if self.verbose else logging.DEBUG, msg, *args)

    def resolve_urls(self, urls: Optional[Iterable[str]] = None) -> List[str]:
        """Return the URLs to process.

        Explicit URLs win, then the configured repository list, then the
        built-in defaults.
        """
        if urls is not None:
            return list(urls)
        configured = self.config.load_repositories()
        if configured:
            return configured
        return list(DEFAULT_REPOSITORIES)

    def check_preconditions(self) -> None:
        """Fail fast before any repository is processed.

        Raises:
            GitNotFoundError: If git is not on PATH.
            TargetDirectoryError: If the target directory is missing.
        """
        find_git(self.config.git_executable)
        if not self.target_dir.is_dir():
            raise TargetDirectoryError(self.target_dir)

    def clone_one(
        self, url: str, on_start: Optional[Callable[[str], None]] = None
    ) -> Tuple[str, Optional[str], str]:
        """Clone a single repository unless its folder already exists.

        Args:
            url: Repository URL.
            on_start: Called with the folder name right before git runs.

        Returns:
            ``(event, folder, message)`` where event is ``"skip"``,
            ``"cloned"`` or ``"error"``. Failures are returned, not raised.
        """
        try:
            folder = extract_folder_name(url)
        except InvalidRepositoryURL as e:
            return "error", None, str(e)

        if (self.target_dir / folder).is_dir():
            return "skip", folder, f"{folder}: Already exists"

        if on_start:
            on_start(folder)

        try:
            result = _run_git(
                ["clone", url],
                cwd=self.target_dir,
                timeout=self.config.clone_timeout,
                executable=self.config.git_executable,
            )
        except subprocess.TimeoutExpired:
            return "error", folder, f"{folder}: Clone timed out after {self.config.clone_timeout}s"
        except Exception as e:
            return "error", folder, f"{folder}: Clone error - {e}"

        if result.returncode != 0:
            output = (result.stdout or "").strip()
            return "error", folder, f"{folder}: Clone failed (exit {result.returncode}) - {output}"

        return "cloned", folder, f"{folder}: Cloned successfully"

    def sync(
        self,
        urls: Optional[Sequence[str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SyncSummary:
        """Clone every repository in ``urls`` that is not already present.

        Args:
            urls: Repository URLs. None means the configured list, or the
                built-in defaults when nothing is configured.
            on_progress: Optional callback ``(event, message, index, total)``
                called before each clone and after each item.

        Returns:
            SyncSummary for this run.

        Raises:
            GitNotFoundError: git is not installed. Nothing is processed.
            TargetDirectoryError: the target directory is missing.
        """
        repos = self.resolve_urls(urls)
        summary = SyncSummary()

        if not repos:
            logger.warning("No repositories to synchronize")
            summary.empty = True
            return summary

        self.check_preconditions()

        total = len(repos)
        self._progress("Synchronizing %d repositories into %s", total, self.target_dir)

        for index, url in enumerate(repos, start=1):
            summary.processed += 1

            def on_start(folder: str) -> None:
                self._progress("[%d/%d] Cloning %s", index, total, url)
                if on_progress:
                    on_progress("clone", f"{folder}: Cloning {url}", index, total)

            event, folder, message = self.clone_one(url, on_start=on_start)

            if event == "skip":
                summary.skipped += 1
                self._progress("[%d/%d] %s", index, total, message)
            elif event == "cloned":
                summary.cloned += 1
                self._progress("[%d/%d] %s", index, total, message)
            else:
                summary.errored += 1
                summary.errors.append(CloneFailure(url, folder, message))
                logger.error("[%d/%d] %s", index, total, message)

            if on_progress:
                on_progress(event, message, index, total)

        self._progress(
            "Processed: %d | Cloned: %d | Skipped: %d | Errors: %d",
            summary.processed, summary.cloned, summary.skipped, summary.errored,
        )
        if not summary.ok:
            logger.warning("Completed with %d error(s)", summary.errored)

        return summary

    def get_status(self, urls: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        """Report which repositories are present in the target directory."""
        repos = self.resolve_urls(urls)
        status: Dict[str, Any] = {
            "target_dir": str(self.target_dir),
            "target_exists": self.target_dir.is_dir(),
            "git": shutil.which(self.config.git_executable),
            "repositories": [],
        }

        for url in repos:
            entry: Dict[str, Any] = {"url": url}
            try:
                folder = extract_folder_name(url)
            except InvalidRepositoryURL as e:
                entry["error"] = str(e)
                status["repositories"].append(entry)
                continue

            path = self.target_dir / folder
            entry["folder"] = folder
            entry["present"] = path.is_dir()
            entry["is_git"] = (path / ".git").exists()
            status["repositories"].append(entry)

        return status
