"""
Configuration management for reposync.

Handles reading/writing the INI configuration file and the optional
repository list, with cross-platform path handling and type-safe accessors.

The base path is the project you are bootstrapping; its siblings live
one level up.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "reposync.ini"
REPOS_FILENAME = "repos.txt"


def _find_base_path() -> Path:
    """Find the reposync base path.

    Resolution order:
    1. REPOSYNC_HOME environment variable
    2. Current working directory
    """
    env_path = os.environ.get("REPOSYNC_HOME")
    if env_path:
        return Path(env_path).resolve()

    return Path.cwd().resolve()


def _strip_comment(line: str) -> str:
    line = line.strip()
    if not line or line.startswith("#"):
        return ""
    if "#" in line:
        line = line[: line.index("#")].strip()
    return line


class SyncConfig:
    """Configuration manager for reposync.

    Reads configuration from an INI file and provides type-safe accessors
    with default value fallbacks.
    """

    DEFAULTS = {
        "sync": {
            "git_executable": "git",
            "clone_timeout": "600",
            "verbose": "true",
            "target_dir": "",
        },
        "workspace": {
            "filename": "",
        },
    }

    def __init__(self, base_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            base_path: Project directory. If None, auto-detected.
        """
        self.base_path = Path(base_path).resolve() if base_path else _find_base_path()

        self.config_path = self.base_path / CONFIG_FILENAME
        self.repos_file = self.base_path / REPOS_FILENAME

        self._config = configparser.ConfigParser()
        self._load_defaults()
        self._load_user_config()

    def _load_defaults(self) -> None:
        """Load default configuration values."""
        for section, values in self.DEFAULTS.items():
            if not self._config.has_section(section):
                self._config.add_section(section)
            for key, value in values.items():
                self._config.set(section, key, value)

    def _load_user_config(self) -> None:
        """Load user configuration from reposync.ini if it exists."""
        if self.config_path.exists():
            self._config.read(str(self.config_path))
            logger.debug("Loaded configuration from %s", self.config_path)

    def save(self) -> None:
        """Save current configuration to reposync.ini."""
        with open(self.config_path, "w") as f:
            self._config.write(f)

    # --- Type-safe property accessors ---

    @property
    def git_executable(self) -> str:
        return self._config.get("sync", "git_executable", fallback="git") or "git"

    @property
    def clone_timeout(self) -> int:
        return self._config.getint("sync", "clone_timeout", fallback=600)

    @property
    def verbose(self) -> bool:
        return self._config.getboolean("sync", "verbose", fallback=True)

    @property
    def target_dir(self) -> Path:
        """Directory the sibling repositories are cloned into.

        Relative values are resolved against the base path. When unset,
        this is the parent of the base path.
        """
        raw = self._config.get("sync", "target_dir", fallback="").strip()
        if not raw:
            return self.base_path.parent
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = self.base_path / path
        return path.resolve()

    @property
    def workspace_path(self) -> Path:
        raw = self._config.get("workspace", "filename", fallback="").strip()
        if not raw:
            raw = f"{self.base_path.name}.code-workspace"
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = self.base_path / path
        return path

    # --- Repository list ---

    def load_repositories(self) -> List[str]:
        """Load repository URLs from repos.txt, in file order.

        Comment lines, inline comments and blank lines are ignored;
        duplicate URLs are dropped.
        """
        if not self.repos_file.exists():
            return []

        repos: List[str] = []
        seen: set = set()
        try:
            with open(self.repos_file) as f:
                for line in f:
                    url = _strip_comment(line)
                    if url and url not in seen:
                        seen.add(url)
                        repos.append(url)
        except OSError as e:
            logger.error("Failed to read repository file %s: %s", self.repos_file, e)

        return repos

    def add_repository(self, url: str) -> bool:
        """Append a URL to repos.txt. Returns False if already listed."""
        url = url.strip()
        if url in self.load_repositories():
            return False

        needs_newline = False
        if self.repos_file.exists():
            content = self.repos_file.read_text()
            needs_newline = bool(content) and not content.endswith("\n")

        with open(self.repos_file, "a") as f:
            if needs_newline:
                f.write("\n")
            f.write(f"{url}\n")
        return True

    def get(self, section: str, key: str, fallback: str = "") -> str:
        return self._config.get(section, key, fallback=fallback)

    def set(self, section: str, key: str, value: str) -> None:
        if not self._config.has_section(section):
            self._config.add_section(section)
        self._config.set(section, key, value)

    def get_status(self) -> Dict[str, Any]:
        return {
            "base_path": str(self.base_path),
            "config_exists": self.config_path.exists(),
            "repos_file_exists": self.repos_file.exists(),
            "target_dir": str(self.target_dir),
            "git_executable": self.git_executable,
            "clone_timeout": self.clone_timeout,
            "verbose": self.verbose,
            "workspace_path": str(self.workspace_path),
        }
