"""
Backup orchestration shared by the HTTP app and the CLI / scheduled runner.
Resolve credentials once per call, then upsert one or many sources into the configured folder.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Iterable

from drive_backup.config.logging_config import setup_logger
from drive_backup.config.settings import config
from drive_backup.services.drive.credentials import CredentialResolver
from drive_backup.services.drive.errors import ConfigurationError, DriveBackupError, extract_error_message
from drive_backup.services.drive.models import DriveHandle, UploadTarget
from drive_backup.services.drive.uploader import DriveUpserter
from drive_backup.services.sources import ContentSource

logger = setup_logger(__name__)


@dataclass
class BackupReport:
    file: str
    action: str
    file_id: str
    content_hash: str
    byte_size: int
    folder_id: str
    auth_mode: str
    identity: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BulkReport:
    folder_id: str
    auth_mode: str
    identity: str
    results: list[dict] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if "error" in r)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["failed"] = self.failed
        return data


class BackupService:
    """Ties settings, the credential resolver and the upserter together."""

    def __init__(self, settings: Any = None, resolver: CredentialResolver | None = None):
        self.settings = settings if settings is not None else config
        self.resolver = resolver or CredentialResolver()

    @property
    def folder_id(self) -> str:
        return (self.settings.GOOGLE_DRIVE_FOLDER_ID or "").strip()

    def _require_folder(self) -> str:
        if not self.folder_id and not self.settings.GOOGLE_DRIVE_FILE_ID:
            raise ConfigurationError("GOOGLE_DRIVE_FOLDER_ID is not set.")
        return self.folder_id

    def target_for(self, file_name: str) -> UploadTarget:
        folder_id = self._require_folder()
        return UploadTarget(
            folder_id=folder_id,
            file_name=file_name,
            file_id=self.settings.GOOGLE_DRIVE_FILE_ID or None,
            shared_drive_id=self.settings.GOOGLE_DRIVE_ID or None,
        )

    def _resolve(self) -> DriveHandle:
        return self.resolver.resolve(self.settings)

    def backup(self, source: ContentSource) -> BackupReport:
        """Read one source and upsert it. Any DriveBackupError propagates."""
        target = self.target_for(source.name)
        handle = self._resolve()
        content = source.read()
        result = DriveUpserter(handle).upsert(target, content, require_existing=self.settings.REQUIRE_EXISTING_FILE)
        return BackupReport(
            file=result.file_name,
            action=result.action.value,
            file_id=result.remote_file_id,
            content_hash=result.content_hash,
            byte_size=result.byte_size,
            folder_id=target.folder_id,
            auth_mode=handle.strategy_tag.value,
            identity=handle.identity_label,
        )

    def backup_many(self, sources: Iterable[ContentSource]) -> BulkReport:
        """
        Upsert each source in turn. The folder is checked once up front; a failure on one
        file is recorded in its result entry and the loop continues.
        """
        folder_id = self._require_folder()
        if self.settings.GOOGLE_DRIVE_FILE_ID:
            # Every file would overwrite the same pinned file
            raise ConfigurationError(
                "Bulk backup needs GOOGLE_DRIVE_FOLDER_ID; unset GOOGLE_DRIVE_FILE_ID, which pins a single file."
            )
        handle = self._resolve()
        upserter = DriveUpserter(handle)
        upserter.ensure_quota(folder_id)

        report = BulkReport(
            folder_id=folder_id,
            auth_mode=handle.strategy_tag.value,
            identity=handle.identity_label,
        )
        for source in sources:
            try:
                result = upserter.upsert(
                    self.target_for(source.name),
                    source.read(),
                    require_existing=self.settings.REQUIRE_EXISTING_FILE,
                )
                report.results.append({"file": source.name, **result.to_dict()})
            except (DriveBackupError, OSError, ValueError) as e:
                message, _ = extract_error_message(e)
                kind = getattr(e, "kind", type(e).__name__)
                logger.error("Bulk backup failed for %s: %s (%s)", source.name, message, kind)
                report.results.append({"file": source.name, "error": message, "kind": kind})
        logger.info("Bulk backup finished: %s files, %s failed", len(report.results), report.failed)
        return report

    def check_connection(self) -> dict:
        """Resolve, pre-flight the folder (unless a file id is pinned) and list one item."""
        folder_id = self._require_folder()
        handle = self._resolve()
        upserter = DriveUpserter(handle)
        if not self.settings.GOOGLE_DRIVE_FILE_ID:
            upserter.ensure_quota(folder_id)
        upserter.test_connection(folder_id, self.settings.GOOGLE_DRIVE_ID or None)
        return {
            "success": True,
            "message": "Google Drive connection OK",
            "auth_mode": handle.strategy_tag.value,
            "as": handle.identity_label,
            "folder_id": folder_id,
        }

    def describe_folder(self, folder_id: str | None = None) -> dict:
        folder_id = (folder_id or "").strip() or self.folder_id
        if not folder_id:
            raise ConfigurationError("No folder id given and GOOGLE_DRIVE_FOLDER_ID is not set.")
        handle = self._resolve()
        location = DriveUpserter(handle).validate_folder_location(folder_id)
        return {
            "success": True,
            "folder_id": folder_id,
            "meta": location.meta,
            "is_shared_drive": location.is_shared_drive,
            "auth_mode": handle.strategy_tag.value,
        }
