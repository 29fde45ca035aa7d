#!/usr/bin/env python3
"""
One-shot or periodic Drive JSON backup from the command line (cron / systemd / CI).

Usage:
  python scripts/run_backup.py                          # upload DATA_PATH
  python scripts/run_backup.py --file stats.json        # a file under DATA_DIR (or an absolute path)
  python scripts/run_backup.py --bulk                   # every *.json in DATA_DIR
  python scripts/run_backup.py --url https://host/data  # fetch JSON and upload as SOURCE_FILE_NAME
  python scripts/run_backup.py --url ... --every 60     # repeat every 60 seconds
  python scripts/run_backup.py --test-connection
"""

import argparse
import json
import os
import sys
import time
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
os.environ.setdefault("LOG_FORMAT", "simple")

import requests

from drive_backup.config.logging_config import setup_logger
from drive_backup.config.settings import config, validate_config_dependencies
from drive_backup.services.backup_service import BackupService
from drive_backup.services.drive.errors import ConfigurationError, DriveBackupError
from drive_backup.services.sources import (
    FallbackSource,
    HttpJsonSource,
    LastKnownGoodStore,
    LocalFileSource,
    list_json_files,
    resolve_json_path,
)

logger = setup_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Upsert JSON into a Google Drive folder")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--file", help="JSON file name under DATA_DIR, or an absolute path (default: DATA_PATH)")
    mode.add_argument("--url", nargs="?", const="", help="Fetch JSON from URL (default: SOURCE_URL)")
    mode.add_argument("--bulk", action="store_true", help="Upload every *.json in DATA_DIR")
    mode.add_argument("--test-connection", action="store_true", help="Only check credentials and folder access")
    p.add_argument("--name", help="Drive file name for --url (default: SOURCE_FILE_NAME)")
    p.add_argument("--no-redirects", action="store_true", help="Do not follow HTTP redirects for --url")
    p.add_argument("--every", type=int, default=0, metavar="SECONDS", help="Repeat every N seconds")
    p.add_argument("--max-runs", type=int, default=0, help="Stop after N runs when using --every (0 = forever)")
    return p.parse_args(argv)


def run_once(args, service: BackupService, store: LastKnownGoodStore) -> dict:
    """Single backup pass for the selected mode. Returns a JSON-serializable report."""
    if args.test_connection:
        return service.check_connection()
    if args.bulk:
        sources = [LocalFileSource(p) for p in list_json_files(config.DATA_DIR)]
        return service.backup_many(sources).to_dict()
    if args.url is not None:
        url = args.url or config.SOURCE_URL
        if not url:
            raise ConfigurationError("No URL given and SOURCE_URL is not set.")
        source = FallbackSource(
            HttpJsonSource(
                url,
                name=args.name or config.SOURCE_FILE_NAME,
                follow_redirects=config.SOURCE_FOLLOW_REDIRECTS and not args.no_redirects,
                timeout=config.SOURCE_TIMEOUT,
            ),
            store,
        )
        report = service.backup(source).to_dict()
        report["from_fallback"] = source.used_fallback
        return report
    path = resolve_json_path(args.file, config.DATA_PATH, config.DATA_DIR)
    return service.backup(LocalFileSource(path)).to_dict()


def main(argv=None) -> int:
    args = parse_args(argv)
    for problem in validate_config_dependencies():
        logger.warning("Config: %s", problem)

    service = BackupService(config)
    store = LastKnownGoodStore()
    runs = 0
    exit_code = EXIT_OK
    while True:
        runs += 1
        try:
            report = run_once(args, service, store)
            print(json.dumps(report, indent=2, ensure_ascii=False))
            exit_code = EXIT_FAILED if report.get("failed") else EXIT_OK
        except ConfigurationError as e:
            logger.error("Configuration error: %s", e.message)
            return EXIT_USAGE
        except (DriveBackupError, OSError, requests.RequestException, ValueError) as e:
            # The next scheduled tick is the retry; nothing is retried here.
            logger.error("Backup failed: %s", e)
            for hint in getattr(e, "hints", []):
                logger.info("Hint: %s", hint)
            exit_code = EXIT_FAILED

        if args.every <= 0 or (args.max_runs and runs >= args.max_runs):
            return exit_code
        logger.info("Next backup in %ss", args.every)
        time.sleep(args.every)


if __name__ == "__main__":
    sys.exit(main())
