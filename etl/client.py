"""
Feishu Open API Client

Thin HTTP client shared by token exchange, sheet resolution and range reads.
Holds the base URL, default headers and per-request timeout.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


@dataclass
class ApiResponse:
    """Status code plus decoded JSON body of one API call."""
    status_code: int
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def code(self) -> Optional[int]:
        return self.payload.get("code")

    @property
    def message(self) -> str:
        return self.payload.get("msg") or self.payload.get("message") or ""

    @property
    def data(self) -> Dict[str, Any]:
        return self.payload.get("data") or {}

    @property
    def ok(self) -> bool:
        """True for a 2xx response whose body reports code 0."""
        return 200 <= self.status_code < 300 and self.code == 0

    def describe(self) -> Dict[str, Any]:
        return {"status": self.status_code, "code": self.code, "msg": self.message}


class FeishuClient:
    """
    Client for the Feishu Open API.

    Transport errors (connection failures, timeouts) are raised as
    requests.RequestException; callers translate them for their stage.
    """

    DEFAULT_BASE_URL = "https://open.feishu.cn/open-apis"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Feishu client.

        Args:
            base_url: API root (default: open.feishu.cn)
            timeout: Per-request timeout in seconds
            session: Pre-built session, mainly for tests
        """
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json; charset=utf-8",
            "Accept": "application/json",
        })

    def set_token(self, token: str) -> None:
        """Attach a bearer token to every subsequent request."""
        self.session.headers["Authorization"] = f"Bearer {token}"

    def call(self, method: str, endpoint: str, **kwargs) -> ApiResponse:
        """
        Issue one request against the API.

        Args:
            method: HTTP method
            endpoint: Path below the base URL (with or without leading /)
            **kwargs: Passed through to requests (params, json, ...)

        Returns:
            ApiResponse; a body that is not JSON yields an empty payload
        """
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        url = self.base_url + endpoint
        kwargs.setdefault("timeout", self.timeout)

        logger.debug(f"Calling Feishu API: {method} {url}")
        response = self.session.request(method, url, **kwargs)

        try:
            payload = response.json()
        except ValueError:
            logger.warning(f"Non-JSON response ({response.status_code}) from {url}")
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        return ApiResponse(status_code=response.status_code, payload=payload)

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
