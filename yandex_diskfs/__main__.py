"""
yandex-diskfs - Main Entry Point

Command-line host for the Yandex Disk adapter: builds the backend
registry, loads configuration and runs one filesystem command.
"""

import argparse
import logging
import shutil
import sys
from datetime import datetime, timezone
from pathlib import Path

from . import register
from .config import load_config
from .logger import setup_logging
from .registry import BackendRegistry

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="yandex-diskfs - Yandex Disk as a flat object store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  yandex-diskfs ls --config yandex.ini
  yandex-diskfs put report.pdf docs/2024/report.pdf --config yandex.ini
  yandex-diskfs cat docs/2024/report.pdf --token-file ~/.yandex-token.json > report.pdf
  yandex-diskfs rm docs/2024/report.pdf --config yandex.ini --root backup
        """,
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="Path to configuration file")
    common.add_argument("--root", help="Directory on the disk to work under")
    common.add_argument("--token-file", help="Path to the stored OAuth token")
    common.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("ls", parents=[common], help="List objects under the root")
    subparsers.add_parser("mkdir", parents=[common], help="Create the root directory")

    put_parser = subparsers.add_parser("put", parents=[common], help="Upload a local file")
    put_parser.add_argument("local", help="Local file to upload")
    put_parser.add_argument("remote", help="Destination, relative to the root")

    cat_parser = subparsers.add_parser("cat", parents=[common], help="Write an object to stdout")
    cat_parser.add_argument("remote", help="Object name, relative to the root")

    rm_parser = subparsers.add_parser("rm", parents=[common], help="Delete an object")
    rm_parser.add_argument("remote", help="Object name, relative to the root")

    return parser.parse_args(argv)


def cmd_ls(fs, args):
    """Print size and name of every object under the root."""
    count = 0
    with fs.list() as stream:
        for obj in stream:
            print(f"{obj.size():>12} {obj.remote}")
            count += 1
    if stream.error is not None:
        print(f"[ERROR] Listing stopped after {count} objects: {stream.error}")
        return 1
    logger.info("Listed %d objects", count)
    return 0


def cmd_mkdir(fs, args):
    fs.mkdir()
    print(f"[OK] {fs.disk_root} exists")
    return 0


def cmd_put(fs, args):
    local = Path(args.local)
    st = local.stat()
    mod_time = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
    with local.open("rb") as f:
        obj = fs.put(f, args.remote, mod_time, st.st_size)
    print(f"[OK] Uploaded {local} to {obj.remote_path()}")
    return 0


def cmd_cat(fs, args):
    src = fs.new_object(args.remote).open()
    try:
        shutil.copyfileobj(src, sys.stdout.buffer)
    finally:
        src.close()
    return 0


def cmd_rm(fs, args):
    obj = fs.new_object(args.remote)
    obj.remove()
    print(f"[OK] Deleted {obj.remote_path()}")
    return 0


COMMANDS = {
    "ls": cmd_ls,
    "mkdir": cmd_mkdir,
    "put": cmd_put,
    "cat": cmd_cat,
    "rm": cmd_rm,
}


def open_fs(args):
    """
    Load configuration, set up logging and build the filesystem.

    Raises:
        ValueError: If the configuration or stored token is invalid.
        FileNotFoundError: If the config or token file is missing.
    """
    config = load_config(
        config_path=args.config,
        root=args.root,
        token_file=args.token_file,
        debug=args.verbose,
    )
    setup_logging(config.logging)

    registry = BackendRegistry()
    register(registry)
    return registry.get("yandex").new_fs(config)


def run(args):
    """
    Open the filesystem and run one command.

    Returns the process exit code.
    """
    try:
        fs = open_fs(args)
    except ValueError as e:
        print(f"[ERROR] Configuration error: {e}")
        return 1
    except FileNotFoundError as e:
        print(f"[ERROR] {e}")
        return 1

    try:
        return COMMANDS[args.command](fs, args)
    except FileNotFoundError as e:
        print(f"[ERROR] {e}")
        return 1
    except PermissionError as e:
        logger.error("Access denied: %s", e)
        print(f"[ERROR] Access denied: {e}")
        return 1
    except TimeoutError as e:
        logger.error("Request timed out: %s", e)
        print(f"[ERROR] Request timed out: {e}")
        return 1
    except OSError as e:
        logger.error("Command failed: %s", e)
        print(f"[ERROR] {e}")
        return 1
    except ValueError as e:
        # Malformed data in an API response
        logger.error("Unexpected response: %s", e)
        print(f"[ERROR] Unexpected response: {e}")
        return 1
    finally:
        fs.close()


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    if args.command in COMMANDS:
        return run(args)

    print("Usage: yandex-diskfs <command> [options]")
    print()
    print("Commands:")
    print("  ls       List objects under the root")
    print("  mkdir    Create the root directory")
    print("  put      Upload a local file")
    print("  cat      Write an object to stdout")
    print("  rm       Delete an object")
    print()
    print("Run 'yandex-diskfs <command> --help' for more information.")
    return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
