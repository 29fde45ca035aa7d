# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Google Drive upsert: ensure a named JSON file in a folder holds the given content.

Flow per call:
  format -> (Shared Drive pre-flight) -> {by id | search by name} -> {create | update}

Service accounts have no storage quota in My Drive, so without an explicit file id the
destination folder must live in a Shared Drive; that is checked locally before any
list/create/update call. No retries: failures propagate to the caller.
"""

import hashlib
import io
import json
from typing import Any

from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from drive_backup.config.logging_config import setup_logger

from .errors import NotFoundError, QuotaError, authentication_error_from, remote_api_error_from_http
from .models import DriveHandle, FolderLocation, UploadAction, UploadResult, UploadTarget

logger = setup_logger(__name__)

JSON_MIME = "application/json"
FOLDER_META_FIELDS = "id, name, driveId, parents, owners, teamDriveId"


# ---------------------------------------------------------------------------
#  Helpers
# ---------------------------------------------------------------------------


def escape_query_string(s: str) -> str:
    """Escape backslashes and single quotes for the Drive API q parameter."""
    return s.replace("\\", "\\\\").replace("'", "\\'")


def compute_content_hash(data: bytes) -> str:
    """SHA-256 hex digest of the exact bytes uploaded."""
    return hashlib.sha256(data).hexdigest()


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False) + "\n"


def format_json_for_upload(content: Any) -> str:
    """
    2-space indented JSON with one trailing newline, for readable diffs in Drive.
    Text that is not valid JSON is uploaded as-is (best effort, never raises).
    """
    if isinstance(content, (bytes, bytearray)):
        content = bytes(content).decode("utf-8", errors="replace")
    if not isinstance(content, str):
        return _pretty(content)
    try:
        parsed = json.loads(content)
    except ValueError:
        logger.warning("Content is not valid JSON; uploading raw text (%s chars)", len(content))
        return content
    return _pretty(parsed)


def drive_params(shared_drive_id: str | None = None) -> dict:
    """Flags required on list calls so My Drive and Shared Drives behave the same."""
    params: dict[str, Any] = {"supportsAllDrives": True, "includeItemsFromAllDrives": True}
    if shared_drive_id:
        params["corpora"] = "drive"
        params["driveId"] = shared_drive_id
    return params


# ---------------------------------------------------------------------------
#  DriveUpserter
# ---------------------------------------------------------------------------


class DriveUpserter:
    """
    Find-or-create-then-write against one authorized handle.

    First name match wins; duplicates in the folder are not detected.
    """

    def __init__(self, handle: DriveHandle):
        self._handle = handle
        self._service = handle.client

    def _execute(self, request, action: str):
        try:
            return request.execute()
        except HttpError as e:
            error = remote_api_error_from_http(e, action)
            logger.error(
                "Drive API error: action=%s status=%s reason=%s message=%s",
                action,
                error.status_code,
                error.reason,
                error.message,
            )
            raise error from e
        except RefreshError as e:
            raise authentication_error_from(e, self._handle.strategy_tag.value) from e

    def get_folder_meta(self, folder_id: str) -> dict:
        return self._execute(
            self._service.files().get(fileId=folder_id, fields=FOLDER_META_FIELDS, supportsAllDrives=True),
            "files.get",
        )

    def validate_folder_location(self, folder_id: str) -> FolderLocation:
        """Folder metadata plus whether it lives in a Shared Drive."""
        meta = self.get_folder_meta(folder_id)
        return FolderLocation(meta=meta, is_shared_drive=bool(meta.get("driveId") or meta.get("teamDriveId")))

    def ensure_quota(self, folder_id: str) -> FolderLocation:
        """Service account + My Drive folder -> QuotaError, before anything is written."""
        location = self.validate_folder_location(folder_id)
        if self._handle.is_service_account and not location.is_shared_drive:
            raise QuotaError(
                "Destination folder is not in a Shared Drive. Service accounts have no storage quota in "
                "My Drive. Use a Shared Drive, switch to OAuth2, or set GOOGLE_DRIVE_FILE_ID to update "
                "an existing file shared with the service account.",
                folder_meta=location.meta,
            )
        return location

    def test_connection(self, folder_id: str, shared_drive_id: str | None = None) -> bool:
        """List a single item in the folder to prove read access."""
        self._execute(
            self._service.files().list(
                q=f"'{escape_query_string(folder_id)}' in parents and trashed = false",
                fields="files(id, name, parents)",
                pageSize=1,
                **drive_params(shared_drive_id),
            ),
            "files.list",
        )
        return True

    def find_file(self, file_name: str, folder_id: str, shared_drive_id: str | None = None) -> dict | None:
        """First non-trashed file named exactly file_name under folder_id, or None."""
        q = (
            f"name = '{escape_query_string(file_name)}' "
            f"and '{escape_query_string(folder_id)}' in parents and trashed = false"
        )
        resp = self._execute(
            self._service.files().list(q=q, fields="files(id, name)", pageSize=1, **drive_params(shared_drive_id)),
            "files.list",
        )
        files = resp.get("files", [])
        return files[0] if files else None

    def _update(self, file_id: str, name: str, data: bytes) -> str:
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=JSON_MIME, resumable=False)
        updated = self._execute(
            self._service.files().update(
                fileId=file_id,
                body={"name": name, "mimeType": JSON_MIME},
                media_body=media,
                fields="id, name, modifiedTime",
                supportsAllDrives=True,
            ),
            "files.update",
        )
        return updated.get("id", file_id)

    def _create(self, name: str, folder_id: str, data: bytes) -> str:
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=JSON_MIME, resumable=False)
        created = self._execute(
            self._service.files().create(
                body={"name": name, "mimeType": JSON_MIME, "parents": [folder_id]},
                media_body=media,
                fields="id, name, createdTime",
                supportsAllDrives=True,
            ),
            "files.create",
        )
        return created["id"]

    def upsert(self, target: UploadTarget, content: Any, require_existing: bool = False) -> UploadResult:
        """
        Create-if-absent, update-if-present. target.file_id skips pre-flight and search.
        Raises QuotaError, NotFoundError, RemoteApiError, AuthenticationError.
        """
        data = format_json_for_upload(content).encode("utf-8")
        content_hash = compute_content_hash(data)
        name = target.file_name

        if target.file_id:
            file_id = self._update(target.file_id, name, data)
            action = UploadAction.UPDATED
        else:
            self.ensure_quota(target.folder_id)
            existing = self.find_file(name, target.folder_id, target.shared_drive_id)
            if existing:
                file_id = self._update(existing["id"], name, data)
                action = UploadAction.UPDATED
            elif require_existing:
                raise NotFoundError(
                    f"File not found in destination folder and REQUIRE_EXISTING_FILE=true: {name}"
                )
            else:
                file_id = self._create(name, target.folder_id, data)
                action = UploadAction.CREATED

        logger.info("Drive upsert %s: %s (id=%s, %s bytes)", action.value, name, file_id, len(data))
        return UploadResult(
            action=action,
            remote_file_id=file_id,
            content_hash=content_hash,
            byte_size=len(data),
            file_name=name,
        )


def upsert(handle: DriveHandle, target: UploadTarget, content: Any, require_existing: bool = False) -> UploadResult:
    """Module-level shortcut: DriveUpserter(handle).upsert(...)."""
    return DriveUpserter(handle).upsert(target, content, require_existing=require_existing)
