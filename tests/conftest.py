"""Pytest conftest to make repository importable during tests."""
import os
import sys
from pathlib import Path

# Settings are read at import time; select the in-memory SQLite database
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("MONITORING_LOG_LEVEL", "WARNING")

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    # Insert at front so local package imports resolve
    sys.path.insert(0, str(REPO_ROOT))
