#!/usr/bin/env python3
"""
Distribute one month of on-call duties (writes outputs/, store only with --apply)

Usage:
  python scripts/run_distribute.py --month 2026-03
  python scripts/run_distribute.py --month 2026-03 --seed 7 --apply

Outputs to outputs/ directory.
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from duty_scheduler.distribute_month import main

if __name__ == "__main__":
    sys.exit(main())
