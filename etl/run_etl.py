"""
ETL Pipeline Orchestrator

Coordinates the complete sync workflow:
- Exchange app credentials for a tenant token
- Resolve and read the four sheets from Feishu
- Normalize rows into records
- Write app-data.json locally and upload it to OSS
"""

import argparse
import logging
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
import sys
import os

from config.settings import Settings, FETCH_MODES
from etl.auth import fetch_tenant_access_token
from etl.client import FeishuClient
from etl.errors import EmptyDatasetError, ETLError
from etl.extract import FeishuSheetsExtractor, fetch_tables
from etl.load import AppDataPublisher
from etl.transform import RecordNormalizer
from storage.bucket import ObjectStorage

logger = logging.getLogger(__name__)

# Output key -> sheet title, in document order
TABLES = [
    ("courses", "Courses"),
    ("characters", "Characters"),
    ("words", "Words"),
    ("sentences", "Sentences"),
]


class ETLOrchestrator:
    """
    Orchestrates one sync run.

    Workflow:
    1. Obtain tenant access token
    2. Resolve sheet titles and read every sheet range
    3. Normalize rows into records
    4. Refuse to publish an entirely empty dataset
    5. Write the document locally and upload it
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[FeishuClient] = None,
        storage: Optional[ObjectStorage] = None,
        upload: bool = True,
    ):
        """
        Initialize ETL orchestrator.

        Args:
            settings: Configuration object with API and storage credentials
            client: Feishu client (default: built from settings)
            storage: Object storage (default: built from settings when configured)
            upload: Whether to upload after writing the local file
        """
        self.settings = settings
        self._owns_client = client is None
        self.client = client or FeishuClient(
            base_url=settings.FEISHU_BASE_URL,
            timeout=settings.REQUEST_TIMEOUT,
        )
        if storage is None and upload and settings.storage_configured:
            storage = ObjectStorage.from_settings(settings)
        self.storage = storage if upload else None
        self.stage: str = "init"
        self.start_time: datetime = None
        self.end_time: datetime = None
        self.result: Dict[str, Any] = {}
        self.metrics: Dict[str, Any] = {
            "total_rows": 0,
            "kept_rows": 0,
            "dropped_rows": 0,
            "tables": {},
        }

    def run(self) -> bool:
        """
        Execute the complete ETL pipeline.

        Returns:
            True if successful, False otherwise
        """
        self.start_time = datetime.now(timezone.utc)

        try:
            logger.info("=" * 60)
            logger.info("Starting Feishu data sync")
            logger.info("=" * 60)
            logger.debug(f"Settings: {self.settings!r}")

            self._execute_pipeline()

            self.end_time = datetime.now(timezone.utc)
            logger.info("=" * 60)
            logger.info("Data sync completed successfully")
            logger.info("=" * 60)
            self._log_summary()

            return True

        except ETLError as e:
            self.end_time = datetime.now(timezone.utc)
            logger.error(f"Data sync failed at stage '{self.stage}' [{e.kind.value}]: {e}")
            if e.detail:
                logger.error(f"Detail: {e.detail}")
            return False

        except Exception as e:
            self.end_time = datetime.now(timezone.utc)
            logger.error(f"Data sync failed at stage '{self.stage}': {e}", exc_info=True)
            return False

        finally:
            if self._owns_client:
                self.client.close()

    def _execute_pipeline(self) -> None:
        """
        Execute the main pipeline steps.

        Raises:
            ETLError: On any fatal condition; nothing is published then
        """
        # AUTHENTICATE
        self.stage = "authenticate"
        logger.info("Step 1: Obtaining tenant access token...")
        token = fetch_tenant_access_token(
            self.client, self.settings.FEISHU_APP_ID, self.settings.FEISHU_APP_SECRET
        )
        self.client.set_token(token)

        # EXTRACT
        self.stage = "extract"
        logger.info("Step 2: Resolving and reading sheets...")
        extractor = FeishuSheetsExtractor(self.client, self.settings.FEISHU_SPREADSHEET_TOKEN)
        titles = [title for _, title in TABLES]
        value_ranges = fetch_tables(
            extractor, titles, self.settings.SHEET_RANGE, self.settings.FETCH_MODE
        )

        # TRANSFORM
        self.stage = "transform"
        logger.info("Step 3: Normalizing rows...")
        tables = self._normalize(value_ranges)

        if not any(tables.values()):
            raise EmptyDatasetError(
                "Every table yielded zero records; check the spreadsheet and sheet range",
                detail={"tables": titles, "range": self.settings.SHEET_RANGE},
            )

        # LOAD
        self.stage = "publish"
        logger.info("Step 4: Publishing app data...")
        publisher = AppDataPublisher(
            self.settings.OUTPUT_FILE,
            storage=self.storage,
            object_key=self.settings.OSS_OBJECT_KEY,
        )
        self.result = publisher.publish(tables)

        logger.info("Pipeline execution completed")

    def _normalize(self, value_ranges) -> Dict[str, List[Dict[str, Any]]]:
        normalizer = RecordNormalizer()
        tables: Dict[str, List[Dict[str, Any]]] = {}
        for (key, title), value_range in zip(TABLES, value_ranges):
            records = normalizer.normalize(value_range)
            tables[key] = records
            self.metrics["tables"][key] = len(records)
            if not records:
                logger.warning(f"Sheet '{title}' yielded no records")

        self.metrics["total_rows"] = normalizer.metrics["total_rows"]
        self.metrics["kept_rows"] = normalizer.metrics["kept_rows"]
        self.metrics["dropped_rows"] = normalizer.metrics["dropped_rows"]
        return tables

    def _log_summary(self) -> None:
        """Log run summary."""
        duration = (self.end_time - self.start_time).total_seconds()
        logger.info(f"Duration: {duration:.2f} seconds")
        for key, count in self.metrics["tables"].items():
            logger.info(f"{key}: {count} records")
        logger.info(f"Data rows read: {self.metrics['total_rows']}")
        logger.info(f"Empty rows dropped: {self.metrics['dropped_rows']}")
        logger.info(f"Output file: {self.result.get('path')}")
        if self.result.get("url"):
            logger.info(f"Uploaded to: {self.result['url']}")


def upload_existing(settings: Settings, storage: Optional[ObjectStorage] = None) -> bool:
    """
    Upload a previously written app data file without fetching.

    Returns:
        True if successful, False otherwise
    """
    try:
        storage = storage or ObjectStorage.from_settings(settings)
        publisher = AppDataPublisher(
            settings.OUTPUT_FILE, storage=storage, object_key=settings.OSS_OBJECT_KEY
        )
        url = publisher.upload_file()
        logger.info(f"Upload succeeded: {url}")
        return True
    except ETLError as e:
        logger.error(f"Upload failed [{e.kind.value}]: {e}")
        if e.detail:
            logger.error(f"Detail: {e.detail}")
        return False


_installed_handlers: List[logging.Handler] = []


def setup_logging(log_file: Optional[str] = "logs/etl.log", level: str = "INFO") -> None:
    """
    Configure logging for the sync job.

    Args:
        log_file: Path to log file; console only when empty
        level: Console log level
    """
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: List[logging.Handler] = []

    # File handler
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    # Root logger
    root_logger = logging.getLogger()
    for handler in _installed_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _installed_handlers[:] = handlers

    root_logger.setLevel(logging.DEBUG)
    for handler in handlers:
        root_logger.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync app data from a Feishu spreadsheet to OSS."
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="run",
        choices=["run", "fetch", "upload"],
        help="run: fetch + write + upload (default); fetch: fetch + write only; "
             "upload: upload an existing output file",
    )
    parser.add_argument("--output", help="Local output file (overrides OUTPUT_FILE)")
    parser.add_argument(
        "--fetch-mode",
        choices=FETCH_MODES,
        help="Sheet read strategy (overrides FETCH_MODE)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the sync job."""
    args = build_parser().parse_args(argv)

    try:
        settings = Settings(
            require_feishu=args.command != "upload",
            require_storage=args.command != "fetch",
        )
    except ETLError as e:
        # No settings to read the log file from; report on the console
        setup_logging(None)
        logger.error(f"Fatal error [{e.kind.value}]: {e}")
        sys.exit(1)

    setup_logging(settings.LOG_FILE, settings.LOG_LEVEL)

    try:
        if args.output:
            settings.OUTPUT_FILE = args.output
        if args.fetch_mode:
            settings.FETCH_MODE = args.fetch_mode

        if args.command == "upload":
            success = upload_existing(settings)
        else:
            orchestrator = ETLOrchestrator(settings, upload=args.command == "run")
            success = orchestrator.run()
        sys.exit(0 if success else 1)
    except ETLError as e:
        logger.error(f"Fatal error [{e.kind.value}]: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
