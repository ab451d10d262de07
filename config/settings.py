"""
Configuration Management

Loads environment variables and provides settings for the sync job.
Uses python-dotenv for local development and environment variables for production.
"""

import math
import os
from typing import Mapping, Optional
from dotenv import load_dotenv

from etl.errors import ConfigurationError

# Load .env file for local development
load_dotenv()

FETCH_MODES = ("batch", "parallel", "sequential")

FEISHU_REQUIRED = ["FEISHU_APP_ID", "FEISHU_APP_SECRET", "FEISHU_SPREADSHEET_TOKEN"]
STORAGE_REQUIRED = ["OSS_REGION", "OSS_ACCESS_KEY_ID", "OSS_ACCESS_KEY_SECRET", "OSS_BUCKET"]


class Settings:
    """
    Application settings loaded from environment variables.

    Built once at process start and handed to each component; nothing
    downstream reads the environment directly.
    """

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        require_feishu: bool = True,
        require_storage: bool = True,
    ):
        """
        Read and validate settings.

        Args:
            env: Mapping to read from (default: os.environ)
            require_feishu: Whether the Feishu credentials must be present
            require_storage: Whether the OSS credentials must be present

        Raises:
            ConfigurationError: If required settings are missing or malformed
        """
        env = os.environ if env is None else env

        # Feishu Configuration
        self.FEISHU_APP_ID: str = env.get("FEISHU_APP_ID")
        self.FEISHU_APP_SECRET: str = env.get("FEISHU_APP_SECRET")
        self.FEISHU_SPREADSHEET_TOKEN: str = env.get("FEISHU_SPREADSHEET_TOKEN")
        self.FEISHU_BASE_URL: str = env.get("FEISHU_BASE_URL", "https://open.feishu.cn/open-apis")

        # Object Storage Configuration
        self.OSS_REGION: str = env.get("OSS_REGION")
        self.OSS_ACCESS_KEY_ID: str = env.get("OSS_ACCESS_KEY_ID")
        self.OSS_ACCESS_KEY_SECRET: str = env.get("OSS_ACCESS_KEY_SECRET")
        self.OSS_BUCKET: str = env.get("OSS_BUCKET")
        self.OSS_ENDPOINT: Optional[str] = env.get("OSS_ENDPOINT")
        self.OSS_OBJECT_KEY: str = env.get("OSS_OBJECT_KEY", "app-data.json")

        # ETL Configuration
        self.OUTPUT_FILE: str = env.get("OUTPUT_FILE", "data/output/app-data.json")
        self.SHEET_RANGE: str = env.get("SHEET_RANGE", "A1:Z3000")
        self.FETCH_MODE: str = env.get("FETCH_MODE", "batch").strip().lower()
        self._timeout_raw = env.get("REQUEST_TIMEOUT", "15")

        # Logging Configuration
        self.LOG_LEVEL: str = env.get("LOG_LEVEL", "INFO")
        self.LOG_FILE: str = env.get("LOG_FILE", "logs/etl.log")

        self.require_feishu = require_feishu
        self.require_storage = require_storage
        self._validate_settings()

    def _validate_settings(self) -> None:
        """
        Validate that all required settings are provided.

        Raises:
            ConfigurationError: If required settings are missing or malformed
        """
        required_fields = []
        if self.require_feishu:
            required_fields += FEISHU_REQUIRED
        if self.require_storage:
            required_fields += STORAGE_REQUIRED

        missing_fields = [
            field for field in required_fields
            if not getattr(self, field, None)
        ]

        if missing_fields:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing_fields)}. "
                f"Please check your .env file.",
                detail={"missing": missing_fields},
            )

        if self.FETCH_MODE not in FETCH_MODES:
            raise ConfigurationError(
                f"FETCH_MODE must be one of {', '.join(FETCH_MODES)}, got: {self.FETCH_MODE}"
            )

        try:
            self.REQUEST_TIMEOUT: float = float(self._timeout_raw)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"REQUEST_TIMEOUT must be a number of seconds, got: {self._timeout_raw}"
            )
        if not math.isfinite(self.REQUEST_TIMEOUT) or self.REQUEST_TIMEOUT <= 0:
            raise ConfigurationError(
                f"REQUEST_TIMEOUT must be a positive finite number, got: {self._timeout_raw}"
            )

    @property
    def storage_configured(self) -> bool:
        """True when every OSS credential is present."""
        return all(getattr(self, field, None) for field in STORAGE_REQUIRED)

    def __repr__(self) -> str:
        """Return string representation (excluding sensitive data)."""
        return (
            f"Settings("
            f"FEISHU_BASE_URL={self.FEISHU_BASE_URL}, "
            f"OSS_BUCKET={self.OSS_BUCKET}, "
            f"OSS_OBJECT_KEY={self.OSS_OBJECT_KEY}, "
            f"OUTPUT_FILE={self.OUTPUT_FILE}, "
            f"FETCH_MODE={self.FETCH_MODE}"
            f")"
        )
