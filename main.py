#!/usr/bin/env python3
"""
coresched - main entrypoint
Manage core scheduling cookies for tasks.

Usage:
    python main.py --get <PID>
    python main.py --new <PID> [-t pid|tgid|pgid]
    python main.py --copy -s <PID> -d <PID> [-t pid|tgid|pgid]
    python main.py [-s <PID>] -- PROGRAM ARGS...

Logging is configured through the environment:
    CORESCHED_LOG_LEVEL=DEBUG python main.py --get 1234
"""

import sys
import os

# Add project root directory to the import path
project_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, project_root)

from src.cli.app import main


def main_cli():
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    main_cli()
