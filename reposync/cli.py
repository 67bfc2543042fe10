"""
Command-line interface for reposync.

Provides the user-facing commands for cloning sibling repositories,
managing the repository list and generating the editor workspace.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from reposync import __version__
from reposync.config import SyncConfig

logger = logging.getLogger(__name__)

_ICONS = {
    "skip": "⏭️ ",
    "clone": "⬇️ ",
    "cloned": "✅",
    "error": "❌",
}

_VALID_URL_PREFIXES = ("http://", "https://", "ssh://", "git://", "git@", "file://")


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for CLI output."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s" if not verbose else "%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _get_config(args: argparse.Namespace) -> SyncConfig:
    """Build SyncConfig from CLI args."""
    base_path = getattr(args, "base_path", None)
    if base_path:
        return SyncConfig(base_path=Path(base_path))
    return SyncConfig()


def _print_json(data: object) -> None:
    """Print data as formatted JSON to stdout."""
    print(json.dumps(data, indent=2, default=str))


def _print_summary(summary) -> None:
    """Print the final tally of a sync run."""
    print(
        f"\n  Processed: {summary.processed} | Cloned: {summary.cloned} | "
        f"Skipped: {summary.skipped} | Errors: {summary.errored}"
    )
    if summary.ok:
        print("  ✅ All repositories are in place.")
    else:
        print("  ⚠️  Completed with errors:")
        for failure in summary.errors:
            print(f"     {failure.url}")
            for line in failure.message.splitlines():
                print(f"       {line}")


# ─── Command Handlers ────────────────────────────────────────────────

def cmd_sync(args: argparse.Namespace) -> int:
    """Clone missing sibling repositories."""
    from reposync.synchronizer import RepositorySynchronizer, SyncError

    config = _get_config(args)
    quiet = getattr(args, "quiet", False)
    json_output = getattr(args, "json_output", False)
    target = getattr(args, "target", None)

    # Per-item lines are printed here; library progress logs stay at debug
    synchronizer = RepositorySynchronizer(
        config=config,
        target_dir=Path(target) if target else None,
        verbose=False,
    )
    show_items = config.verbose and not quiet and not json_output

    urls = getattr(args, "urls", None) or None

    def on_progress(event, message, index, total):
        if not show_items:
            return
        first_line = message.splitlines()[0] if message else ""
        print(f"  {_ICONS.get(event, '•')} [{index}/{total}] {first_line}")

    try:
        summary = synchronizer.sync(urls, on_progress=on_progress)
    except SyncError as e:
        if json_output:
            _print_json({"status": "fatal", "error": str(e)})
        else:
            print(f"❌ {e}")
        return 1

    if json_output:
        _print_json(summary.to_dict())
    elif summary.empty:
        print("No repositories to synchronize.")
    else:
        _print_summary(summary)

    if not summary.ok and getattr(args, "strict", False):
        return 1
    return 0


def cmd_add_repo(args: argparse.Namespace) -> int:
    """Add a repository URL to repos.txt."""
    from reposync.synchronizer import InvalidRepositoryURL, extract_folder_name

    config = _get_config(args)
    url = args.url.strip()

    if not url.startswith(_VALID_URL_PREFIXES):
        print(f"❌ Invalid URL. Must start with one of: {', '.join(_VALID_URL_PREFIXES)}")
        return 1

    try:
        extract_folder_name(url)
    except InvalidRepositoryURL as e:
        print(f"❌ {e}")
        return 1

    if not config.add_repository(url):
        print(f"❌ Repository already configured: {url}")
        return 1

    print(f"✅ Added: {url}")
    return 0


def cmd_workspace(args: argparse.Namespace) -> int:
    """Generate the editor workspace file."""
    from reposync.synchronizer import RepositorySynchronizer
    from reposync.workspace import (
        build_workspace,
        load_workspace,
        merge_folders,
        write_workspace,
    )

    config = _get_config(args)
    synchronizer = RepositorySynchronizer(config=config)
    output = Path(args.output) if getattr(args, "output", None) else config.workspace_path

    document = build_workspace(config.base_path, synchronizer.resolve_urls())

    if getattr(args, "merge", False) and output.exists():
        document = merge_folders(load_workspace(output), document)

    write_workspace(output, document)
    print(f"✅ Wrote {output} ({len(document['folders'])} folders)")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show configuration and per-repository presence."""
    from reposync.synchronizer import RepositorySynchronizer

    config = _get_config(args)
    synchronizer = RepositorySynchronizer(config=config)
    config_status = config.get_status()
    repo_status = synchronizer.get_status()

    if getattr(args, "json_output", False):
        _print_json({"config": config_status, "sync": repo_status})
        return 0

    print("🔄 reposync Status")
    print("=" * 50)
    print(f"\n  Base Path:       {config_status['base_path']}")
    print(f"  Config Exists:   {'✅' if config_status['config_exists'] else '❌'}")
    print(f"  Target Dir:      {repo_status['target_dir']}"
          f" {'✅' if repo_status['target_exists'] else '❌'}")
    print(f"  Git:             {repo_status['git'] or '❌ not found'}")

    print("\n  Repositories:")
    for entry in repo_status["repositories"]:
        if "error" in entry:
            print(f"    ❌ {entry['url']} ({entry['error']})")
            continue
        icon = "✅" if entry["present"] else "⬜"
        print(f"    {icon} {entry['folder']:25s} {entry['url']}")

    print()
    return 0


def _split_key(dotted: str):
    """Split ``section.key`` into its parts, or return None."""
    section, _, key = dotted.partition(".")
    if not section or not key:
        return None
    return section, key


def cmd_config(args: argparse.Namespace) -> int:
    """Show or change settings in reposync.ini."""
    config = _get_config(args)

    subcmd = getattr(args, "config_command", None)
    if not subcmd:
        print("No config subcommand specified. Use 'reposync config --help' for options.")
        return 1

    if subcmd == "show":
        _print_json(config.get_status())
        return 0

    parts = _split_key(args.key)
    if not parts:
        print(f"  ❌ Key must look like section.key: {args.key}")
        return 1
    section, key = parts

    if subcmd == "get":
        value = config.get(section, key)
        if not value:
            print(f"  ⬜ {args.key} is not set")
            return 1
        print(value)

    elif subcmd == "set":
        config.set(section, key, args.value)
        config.save()
        print(f"  ✅ {args.key} = {args.value}")

    else:
        print(f"Unknown config command: {subcmd}")
        return 1

    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="reposync",
        description="Clone companion repositories into sibling directories.",
    )
    parser.add_argument(
        "--version", action="version", version=f"reposync {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "-b", "--base-path", dest="base_path",
        help="Project directory (default: $REPOSYNC_HOME or current directory)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ─── sync ─────────────────────────────────
    sync_parser = subparsers.add_parser("sync", help="Clone missing sibling repositories")
    sync_parser.add_argument(
        "urls", nargs="*", help="Repository URLs (default: repos.txt or built-in list)"
    )
    sync_parser.add_argument(
        "-t", "--target", help="Directory to clone into (default: parent of project)"
    )
    sync_parser.add_argument(
        "-q", "--quiet", action="store_true", help="Only print the final tally"
    )
    sync_parser.add_argument(
        "--strict", action="store_true", help="Exit 1 if any clone failed"
    )
    sync_parser.add_argument("-j", "--json", dest="json_output", action="store_true")

    # ─── add-repo ─────────────────────────────
    add_parser = subparsers.add_parser("add-repo", help="Add a repository URL")
    add_parser.add_argument("url", help="Git repository URL")

    # ─── workspace ────────────────────────────
    ws_parser = subparsers.add_parser("workspace", help="Generate the editor workspace file")
    ws_parser.add_argument(
        "-o", "--output", help="Workspace file path (default: <project>.code-workspace)"
    )
    ws_parser.add_argument(
        "--merge", action="store_true", help="Keep an existing file's settings and folders"
    )

    # ─── status ───────────────────────────────
    status_parser = subparsers.add_parser("status", help="Show repository status")
    status_parser.add_argument("-j", "--json", dest="json_output", action="store_true")

    # ─── config ───────────────────────────────
    config_parser = subparsers.add_parser("config", help="Show or change settings")
    config_sub = config_parser.add_subparsers(dest="config_command", help="Config commands")

    config_sub.add_parser("show", help="Print effective settings")

    get_parser = config_sub.add_parser("get", help="Print one setting")
    get_parser.add_argument("key", help="Setting as section.key (e.g. sync.clone_timeout)")

    set_parser = config_sub.add_parser("set", help="Store a setting in reposync.ini")
    set_parser.add_argument("key", help="Setting as section.key (e.g. sync.target_dir)")
    set_parser.add_argument("value", help="New value")

    return parser


# ─── Main Entry Point ────────────────────────────────────────────────

def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    _setup_logging(verbose=getattr(args, "verbose", False))

    command = args.command

    if not command:
        parser.print_help()
        return 0

    handlers = {
        "sync": cmd_sync,
        "add-repo": cmd_add_repo,
        "workspace": cmd_workspace,
        "status": cmd_status,
        "config": cmd_config,
    }

    handler = handlers.get(command)
    if not handler:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except KeyboardInterrupt:
        print("\n\nInterrupted.")
        return 130
    except Exception as e:
        if getattr(args, "verbose", False):
            logger.exception("Error: %s", e)
        else:
            print(f"\n❌ Error: {e}")
            print("   Run with -v for details.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
