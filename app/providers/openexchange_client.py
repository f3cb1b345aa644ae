from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from app.providers.http_client import HTTPClient, HTTPClientConfig, HTTPClientError

logger = logging.getLogger(__name__)


class OpenExchangeRatesError(RuntimeError):
    """Raised when the Open Exchange Rates API returns an error response."""


class OpenExchangeRatesClientConfig:
    """Configuration parameters for the Open Exchange Rates client."""

    def __init__(
        self,
        base_url: str,
        app_id: str,
        timeout: float,
        max_retries: int = 1,
        backoff_seconds: float = 0.5,
    ) -> None:
        self.base_url = base_url
        self.app_id = app_id
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds


class OpenExchangeRatesClient:
    """HTTP client for Open Exchange Rates; injects the ``app_id`` query parameter."""

    def __init__(
        self,
        config: OpenExchangeRatesClientConfig,
        client: HTTPClient | None = None,
    ) -> None:
        self._config = config
        self._client = client or HTTPClient(
            HTTPClientConfig(
                base_url=config.base_url,
                timeout=config.timeout,
                max_retries=config.max_retries,
                backoff_seconds=config.backoff_seconds,
            )
        )

    def latest(self, base: str) -> dict[str, Any]:
        return self.get("/latest.json", params={"base": base})

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        query: dict[str, Any] = {"app_id": self._config.app_id}
        query.update(params or {})
        try:
            payload = self._client.get(path, params=query)
        except HTTPClientError as exc:
            raise OpenExchangeRatesError(str(exc)) from exc

        if payload.get("error"):
            description = payload.get("description") or payload.get("message") or "unknown"
            raise OpenExchangeRatesError(f"Open Exchange Rates error payload: {description}")

        if not isinstance(payload.get("rates"), dict):
            raise OpenExchangeRatesError("Open Exchange Rates response missing 'rates' field")

        return payload
