"""
App Data Publishing

Assembles the app data document, writes it locally and uploads it.
The document is always written whole; there is no partial update.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from etl.errors import PublishError
from storage.bucket import ObjectStorage

logger = logging.getLogger(__name__)

TABLE_KEYS = ("courses", "characters", "words", "sentences")


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp with milliseconds and a Z suffix."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_app_data(
    tables: Dict[str, List[Dict[str, Any]]],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Assemble the app data document.

    Args:
        tables: Records keyed by table name; missing tables become []
        now: Timestamp override

    Returns:
        {"lastUpdated", "courses", "characters", "words", "sentences"}
    """
    document: Dict[str, Any] = {"lastUpdated": iso_timestamp(now)}
    for key in TABLE_KEYS:
        document[key] = list(tables.get(key) or [])
    return document


def serialize_app_data(document: Dict[str, Any]) -> bytes:
    """Pretty-printed UTF-8 JSON."""
    return json.dumps(document, ensure_ascii=False, indent=2).encode("utf-8")


class AppDataPublisher:
    """
    Publishes the app data document.

    Writes to a local file first, then uploads the same bytes to the bucket
    when storage is configured. Any failure raises PublishError.
    """

    def __init__(
        self,
        output_file: str,
        storage: Optional[ObjectStorage] = None,
        object_key: str = "app-data.json",
    ):
        """
        Initialize publisher.

        Args:
            output_file: Local path of the document
            storage: Bucket to upload to, or None to skip upload
            object_key: Key of the uploaded object
        """
        self.output_file = Path(output_file)
        self.storage = storage
        self.object_key = object_key

    def publish(
        self,
        tables: Dict[str, List[Dict[str, Any]]],
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Build, write and upload the document.

        Args:
            tables: Records keyed by table name
            now: Timestamp override

        Returns:
            Dictionary with: path, url (None when not uploaded), bytes
        """
        document = build_app_data(tables, now)
        payload = serialize_app_data(document)

        path = self.write_local(payload)
        url = self.upload(payload) if self.storage is not None else None
        if url is None:
            logger.info("Object storage not configured, skipping upload")

        return {"path": str(path), "url": url, "bytes": len(payload)}

    def write_local(self, payload: bytes) -> Path:
        """
        Write the document to the local output file.

        Raises:
            PublishError: If the directory or file cannot be written
        """
        try:
            self.output_file.parent.mkdir(parents=True, exist_ok=True)
            self.output_file.write_bytes(payload)
        except OSError as e:
            raise PublishError(
                f"Failed to write {self.output_file}: {e}",
                detail={"path": str(self.output_file)},
            ) from e

        logger.info(f"Wrote {len(payload)} bytes to {self.output_file}")
        return self.output_file

    def upload(self, payload: bytes) -> str:
        """
        Upload the document bytes to the fixed object key.

        Returns:
            URL of the uploaded object

        Raises:
            PublishError: If storage is missing or the upload fails
        """
        if self.storage is None:
            raise PublishError("Object storage is not configured")

        try:
            return self.storage.put_object(self.object_key, payload)
        except (ClientError, BotoCoreError) as e:
            detail = {"key": self.object_key, "bucket": self.storage.bucket}
            if isinstance(e, ClientError):
                detail["code"] = e.response.get("Error", {}).get("Code")
            raise PublishError(f"Failed to upload {self.object_key}: {e}", detail=detail) from e

    def upload_file(self) -> str:
        """
        Upload an already written local document.

        Returns:
            URL of the uploaded object

        Raises:
            PublishError: If the local file is missing or the upload fails
        """
        if not self.output_file.is_file():
            raise PublishError(
                f"File does not exist: {self.output_file}",
                detail={"path": str(self.output_file)},
            )
        try:
            payload = self.output_file.read_bytes()
        except OSError as e:
            raise PublishError(f"Failed to read {self.output_file}: {e}") from e
        return self.upload(payload)
