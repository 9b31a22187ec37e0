#!/usr/bin/env python
"""
Restore Points Manager CLI entry point.

Usage:
    python cli.py --action Configure             # Interactive setup
    python cli.py --action Monitor --unattended  # Scheduled maintenance cycle
    python cli.py --action Create -d "text"      # Manual checkpoint
    python cli.py --action List                  # Show checkpoints
    python cli.py --action Cleanup               # Prune only
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from restore_manager.cli.app import main

if __name__ == "__main__":
    main()
