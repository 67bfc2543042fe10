"""
Editor workspace generation for reposync.

Builds a VS Code ``.code-workspace`` file that opens the current project
together with its sibling repositories.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from reposync.synchronizer import InvalidRepositoryURL, extract_folder_name

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "files.exclude": {
        "**/.git": True,
        "**/__pycache__": True,
    },
}


class WorkspaceError(Exception):
    """Raised when a workspace file cannot be read."""


def build_workspace(
    project_dir: Path,
    urls: Iterable[str],
    settings: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build a workspace document for the project and its siblings.

    Folder paths are relative to ``project_dir``: the project itself is
    ``.`` and each sibling is ``../<folder>``.
    """
    folders: List[Dict[str, str]] = [{"path": "."}]
    seen = {Path(project_dir).name}

    for url in urls:
        try:
            name = extract_folder_name(url)
        except InvalidRepositoryURL as e:
            logger.warning("Skipping workspace folder: %s", e)
            continue
        if name in seen:
            continue
        seen.add(name)
        folders.append({"path": f"../{name}"})

    return {
        "folders": folders,
        "settings": dict(settings) if settings is not None else dict(DEFAULT_SETTINGS),
    }


def load_workspace(path: Path) -> Dict[str, Any]:
    """Read an existing workspace file."""
    try:
        with open(path) as f:
            document = json.load(f)
    except json.JSONDecodeError as e:
        raise WorkspaceError(f"{path}: invalid JSON - {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get("folders"), list):
        raise WorkspaceError(f"{path}: missing 'folders' list")
    return document


def merge_folders(existing: Dict[str, Any], generated: Dict[str, Any]) -> Dict[str, Any]:
    """Add generated folders to an existing document.

    The existing document keeps its settings, extra keys and folder order.
    """
    merged = dict(existing)
    folders = list(existing.get("folders", []))
    known = {f.get("path") for f in folders if isinstance(f, dict)}

    for folder in generated.get("folders", []):
        if folder["path"] not in known:
            folders.append(folder)
            known.add(folder["path"])

    merged["folders"] = folders
    if "settings" not in merged and "settings" in generated:
        merged["settings"] = generated["settings"]
    return merged


def write_workspace(path: Path, document: Dict[str, Any]) -> Path:
    """Write a workspace document as indented JSON."""
    path = Path(path)
    with open(path, "w") as f:
        json.dump(document, f, indent=2)
        f.write("\n")
    logger.debug("Wrote workspace file %s", path)
    return path
