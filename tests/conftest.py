"""
Pytest configuration and shared fixtures.
Run from project root: python -m pytest tests/ -v
"""

import os
import sys
from pathlib import Path

import pytest

# Set env vars before any app imports (ensures deterministic test behavior)
os.environ.setdefault("GOOGLE_DRIVE_FOLDER_ID", "folder-shared")
os.environ.setdefault("LOG_LEVEL", "WARNING")
for _var in (
    "GOOGLE_CREDENTIALS_JSON",
    "GOOGLE_CLIENT_EMAIL",
    "GOOGLE_PRIVATE_KEY",
    "GOOGLE_OAUTH_CLIENT_ID",
    "GOOGLE_OAUTH_CLIENT_SECRET",
    "GOOGLE_OAUTH_REFRESH_TOKEN",
    "GOOGLE_DRIVE_FILE_ID",
):
    os.environ.pop(_var, None)

# Ensure project root is on path when running tests
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture()
def fake_drive():
    from tests.helpers import FakeDriveService

    return FakeDriveService()
