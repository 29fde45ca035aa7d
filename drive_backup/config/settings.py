"""
Configuration settings for the Drive JSON backup service
"""

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

# Use find_dotenv() to locate .env regardless of the current working directory.
# Falls back to an explicit path relative to this file (project root) if not found.
_dotenv_path = find_dotenv(usecwd=True) or str(Path(__file__).resolve().parent.parent.parent / ".env")
load_dotenv(_dotenv_path)

_TRUTHY = ("true", "1", "yes")


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_flag(name: str, default: str = "false") -> bool:
    return (os.getenv(name) or default).strip().lower() in _TRUTHY


# ============================================
# Environment-based Configuration
# ============================================


class Config:
    """
    Centralized configuration loaded from environment variables.
    Edit .env file to change these values.
    """

    # Drive destination
    GOOGLE_DRIVE_FOLDER_ID: str = _env_str("GOOGLE_DRIVE_FOLDER_ID")
    # Explicit file to update (pre-shared with a service account in My Drive). Skips name search.
    GOOGLE_DRIVE_FILE_ID: str = _env_str("GOOGLE_DRIVE_FILE_ID")
    # Shared Drive id; adds corpora=drive + driveId to list calls.
    GOOGLE_DRIVE_ID: str = _env_str("GOOGLE_DRIVE_ID")
    # When true a missing file is an error instead of being created.
    REQUIRE_EXISTING_FILE: bool = _env_flag("REQUIRE_EXISTING_FILE")

    # Service account material (first match wins: JSON blob, email/key pair, file)
    GOOGLE_CREDENTIALS_JSON: str = _env_str("GOOGLE_CREDENTIALS_JSON")
    GOOGLE_CLIENT_EMAIL: str = _env_str("GOOGLE_CLIENT_EMAIL")
    # Not stripped: PEM bodies are whitespace-sensitive
    GOOGLE_PRIVATE_KEY: str = os.getenv("GOOGLE_PRIVATE_KEY") or ""
    GOOGLE_CREDENTIALS_FILE: str = _env_str("GOOGLE_CREDENTIALS_FILE", "google.json")
    # Domain-wide delegation subject
    GOOGLE_IMPERSONATE_EMAIL: str = _env_str("GOOGLE_IMPERSONATE_EMAIL")

    # OAuth2 refresh-token material (takes priority when all three are set)
    GOOGLE_OAUTH_CLIENT_ID: str = _env_str("GOOGLE_OAUTH_CLIENT_ID")
    GOOGLE_OAUTH_CLIENT_SECRET: str = _env_str("GOOGLE_OAUTH_CLIENT_SECRET")
    GOOGLE_OAUTH_REFRESH_TOKEN: str = _env_str("GOOGLE_OAUTH_REFRESH_TOKEN")

    # Content sources
    DATA_PATH: str = _env_str("DATA_PATH") or str(Path.cwd() / "data.json")
    DATA_DIR: str = _env_str("DATA_DIR") or str(Path.cwd())
    SOURCE_URL: str = _env_str("SOURCE_URL")
    SOURCE_FILE_NAME: str = _env_str("SOURCE_FILE_NAME", "data.json")
    SOURCE_FOLLOW_REDIRECTS: bool = _env_flag("SOURCE_FOLLOW_REDIRECTS", "true")
    SOURCE_TIMEOUT: float = float(os.getenv("SOURCE_TIMEOUT", "10"))

    # Scheduled runs (scripts/run_backup.py --every)
    BACKUP_INTERVAL_SECONDS: int = int(os.getenv("BACKUP_INTERVAL_SECONDS", "60"))

    # HTTP adapter
    PORT: int = int(os.getenv("PORT", "3000"))


# Singleton instance
config = Config()


def validate_config_dependencies() -> list[str]:
    """
    Check cross-field consistency of the loaded configuration.
    Returns a list of human-readable problems; empty when the config is usable.
    """
    errors: list[str] = []

    if not config.GOOGLE_DRIVE_FOLDER_ID and not config.GOOGLE_DRIVE_FILE_ID:
        errors.append("GOOGLE_DRIVE_FOLDER_ID is required (or GOOGLE_DRIVE_FILE_ID for a pre-shared file).")

    oauth_parts = {
        "GOOGLE_OAUTH_CLIENT_ID": config.GOOGLE_OAUTH_CLIENT_ID,
        "GOOGLE_OAUTH_CLIENT_SECRET": config.GOOGLE_OAUTH_CLIENT_SECRET,
        "GOOGLE_OAUTH_REFRESH_TOKEN": config.GOOGLE_OAUTH_REFRESH_TOKEN,
    }
    present = [k for k, v in oauth_parts.items() if v]
    if present and len(present) < len(oauth_parts):
        missing = [k for k in oauth_parts if k not in present]
        errors.append(
            f"Partial OAuth2 configuration ignored; missing {', '.join(missing)}. "
            "Falling back to service account credentials."
        )

    if bool(config.GOOGLE_CLIENT_EMAIL) != bool(config.GOOGLE_PRIVATE_KEY.strip()):
        errors.append("GOOGLE_CLIENT_EMAIL and GOOGLE_PRIVATE_KEY must be set together.")

    if config.SOURCE_TIMEOUT <= 0:
        errors.append(f"SOURCE_TIMEOUT must be positive, got {config.SOURCE_TIMEOUT}.")

    if config.BACKUP_INTERVAL_SECONDS <= 0:
        errors.append(f"BACKUP_INTERVAL_SECONDS must be positive, got {config.BACKUP_INTERVAL_SECONDS}.")

    return errors
