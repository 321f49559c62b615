#!/usr/bin/env python3
"""
Run one expiration sweep and exit.

Useful from cron when the in-process sweeper is disabled
(SWEEP_INTERVAL_MINUTES=0) or when several API workers share one database.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from sendeasy.api.dependencies import run_sweep_once
from sendeasy.core.exceptions import SendEasyError
from sendeasy.core.utils.logging_config import init_application_logging


def main():
    init_application_logging()

    print("🧹 SendEasy Expiration Sweep")
    print("=" * 40)

    try:
        report = run_sweep_once()
    except SendEasyError as e:
        print(f"❌ Sweep failed: {e.message}")
        return False

    print(f"Blocks marked expired: {report.blocks_marked_expired}")
    print(f"Blocks purged:         {report.blocks_purged}")
    print(f"Sessions purged:       {report.sessions_purged}")
    print(f"Files removed:         {report.files_removed}")
    return True


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
