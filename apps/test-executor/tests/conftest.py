"""Test bootstrap for test-executor."""

from __future__ import annotations

import sys
from pathlib import Path

APPS_DIR = Path(__file__).resolve().parents[2]
for package in ["test-executor", "field-fuzzers", "fuzzing-data-builder", "contract-parser"]:
    package_root = APPS_DIR / package
    path_str = str(package_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)
