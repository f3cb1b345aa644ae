from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from app.providers.http_client import HTTPClient, HTTPClientConfig, HTTPClientError

logger = logging.getLogger(__name__)


class ExchangeRateApiError(RuntimeError):
    """Raised when ExchangeRate-API returns an error response."""


class ExchangeRateApiClientConfig:
    """Configuration parameters for the ExchangeRate-API client."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        max_retries: int = 1,
        backoff_seconds: float = 0.5,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds


class ExchangeRateApiClient:
    """HTTP client for ExchangeRate-API built on the shared HTTP wrapper."""

    def __init__(self, config: ExchangeRateApiClientConfig, client: Optional[HTTPClient] = None) -> None:
        self._config = config
        self._client = client or HTTPClient(
            HTTPClientConfig(
                base_url=config.base_url,
                timeout=config.timeout,
                max_retries=config.max_retries,
                backoff_seconds=config.backoff_seconds,
            )
        )

    def latest(self, base: str) -> Dict[str, Any]:
        return self.get(f"/latest/{base}")

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        try:
            payload = self._client.get(path, params=params)
        except HTTPClientError as exc:
            raise ExchangeRateApiError(str(exc)) from exc

        if payload.get("result") == "error":
            error_type = payload.get("error-type") or "unknown"
            raise ExchangeRateApiError(f"ExchangeRate-API error payload: {error_type}")

        if not isinstance(payload.get("rates"), dict):
            raise ExchangeRateApiError("ExchangeRate-API response missing 'rates' field")

        return payload
