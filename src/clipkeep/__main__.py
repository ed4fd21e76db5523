import argparse
import logging
import subprocess
import sys
from pathlib import Path

from clipkeep.config import PREVIEW_LENGTH, AppConfig, load_config
from clipkeep.models import ContentType
from clipkeep.storage import HistoryStore, StorageError
from clipkeep.utils import ensure_dirs, truncate_text

logger = logging.getLogger("clipkeep")

PLIST_LABEL = "com.clipkeep.app"
PLIST_NAME = f"{PLIST_LABEL}.plist"
LAUNCHAGENT_DIR = Path.home() / "Library" / "LaunchAgents"
PLIST_PATH = LAUNCHAGENT_DIR / PLIST_NAME


def get_clipkeep_path() -> str:
    """Get the path to the clipkeep executable."""
    import shutil

    clipkeep_path = shutil.which("clipkeep")
    if clipkeep_path:
        return clipkeep_path
    return f"{sys.executable} -m clipkeep"


def create_plist(clipkeep_path: str, log_path: Path) -> str:
    """Generate the LaunchAgent plist content."""
    arguments = "".join(f"\n        <string>{part}</string>" for part in clipkeep_path.split())
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
    <key>Label</key>
    <string>{PLIST_LABEL}</string>
    <key>ProgramArguments</key>
    <array>{arguments}
        <string>run</string>
    </array>
    <key>RunAtLoad</key>
    <true/>
    <key>KeepAlive</key>
    <true/>
    <key>StandardOutPath</key>
    <string>{log_path}</string>
    <key>StandardErrorPath</key>
    <string>{log_path}</string>
</dict>
</plist>
"""


def install_launchagent(config: AppConfig) -> int:
    """Install and start the LaunchAgent."""
    ensure_dirs(config)

    clipkeep_path = get_clipkeep_path()
    print(f"Installing LaunchAgent for: {clipkeep_path}")

    LAUNCHAGENT_DIR.mkdir(parents=True, exist_ok=True)

    if PLIST_PATH.exists():
        subprocess.run(["launchctl", "unload", str(PLIST_PATH)], capture_output=True)

    PLIST_PATH.write_text(create_plist(clipkeep_path, config.log_path))
    print(f"Created: {PLIST_PATH}")

    result = subprocess.run(
        ["launchctl", "load", str(PLIST_PATH)],
        capture_output=True,
        text=True,
    )

    if result.returncode == 0:
        print("Clipkeep is now running in the background.")
        print("It will start automatically on login.")
        return 0
    print(f"Failed to load LaunchAgent: {result.stderr}")
    return 1


def uninstall_launchagent() -> int:
    """Stop and remove the LaunchAgent."""
    if not PLIST_PATH.exists():
        print("LaunchAgent not installed.")
        return 0

    subprocess.run(["launchctl", "unload", str(PLIST_PATH)], capture_output=True)

    PLIST_PATH.unlink()
    print("LaunchAgent uninstalled.")
    return 0


def check_status() -> int:
    """Check if Clipkeep is running."""
    result = subprocess.run(
        ["launchctl", "list", PLIST_LABEL],
        capture_output=True,
        text=True,
    )

    if result.returncode == 0:
        print("Clipkeep is running.")
        return 0
    print("Clipkeep is not running.")
    if PLIST_PATH.exists():
        print(f"LaunchAgent installed but not loaded: {PLIST_PATH}")
    else:
        print("LaunchAgent not installed. Run: clipkeep install")
    return 1


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(config.log_path),
            logging.StreamHandler(sys.stderr),
        ],
    )


def open_store(config: AppConfig) -> HistoryStore:
    ensure_dirs(config)
    return HistoryStore(config.db_path, timeout=config.store_timeout)


def run_app(config: AppConfig) -> int:
    """Run the Clipkeep service. Initialization failures are fatal."""
    try:
        ensure_dirs(config)
    except OSError as exc:
        print(f"Cannot create data directory {config.data_dir}: {exc}", file=sys.stderr)
        return 1

    configure_logging(config)

    try:
        store = open_store(config)
    except (OSError, StorageError):
        logger.exception("An error occurred during initialization")
        return 1

    from clipkeep.app import ClipkeepApp

    logger.info("Clipkeep started, history at %s", config.db_path)
    app = ClipkeepApp(config, store)
    app.run()
    return 0


def list_history(config: AppConfig, limit: int | None = None) -> int:
    try:
        store = open_store(config)
        entries = store.list_recent(limit) if limit else store.list_all()
    except (OSError, StorageError) as exc:
        print(f"Cannot read history: {exc}", file=sys.stderr)
        return 1

    if not entries:
        print("(No clipboard history)")
        return 0
    for entry in entries:
        if entry.kind == ContentType.IMAGE:
            preview = f"[Image] {entry.image_ref}"
        else:
            preview = truncate_text(entry.text_content or "", PREVIEW_LENGTH)
        print(f"{entry.id:>6}  {entry.last_seen_at:%Y-%m-%d %H:%M:%S}  {preview}")
    return 0


def delete_entry(config: AppConfig, entry_id: int) -> int:
    try:
        deleted = open_store(config).delete_by_id(entry_id)
    except (OSError, StorageError) as exc:
        print(f"Cannot delete entry: {exc}", file=sys.stderr)
        return 1
    if not deleted:
        print(f"No entry with id {entry_id}")
        return 1
    print(f"Deleted entry {entry_id}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Clipkeep - clipboard history service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  clipkeep install      # Install and start as background service
  clipkeep list -n 20   # Show the 20 most recent entries
  clipkeep delete 42    # Remove entry 42 from history
""",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Run Clipkeep in the foreground (default)")
    subparsers.add_parser("install", help="Install as LaunchAgent (runs on login)")
    subparsers.add_parser("uninstall", help="Remove LaunchAgent")
    subparsers.add_parser("status", help="Check if Clipkeep is running")
    list_parser = subparsers.add_parser("list", help="Print history, most recent first")
    list_parser.add_argument("-n", "--limit", type=int, default=None, help="Maximum entries to show")
    delete_parser = subparsers.add_parser("delete", help="Delete a history entry")
    delete_parser.add_argument("entry_id", type=int, help="Id shown by 'clipkeep list'")

    args = parser.parse_args()
    config = load_config()

    if args.command == "install":
        sys.exit(install_launchagent(config))
    elif args.command == "uninstall":
        sys.exit(uninstall_launchagent())
    elif args.command == "status":
        sys.exit(check_status())
    elif args.command == "list":
        sys.exit(list_history(config, args.limit))
    elif args.command == "delete":
        sys.exit(delete_entry(config, args.entry_id))
    else:
        sys.exit(run_app(config))


if __name__ == "__main__":
    main()
