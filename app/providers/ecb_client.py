from __future__ import annotations

import logging

from app.providers.http_client import HTTPClient, HTTPClientConfig, HTTPClientError

logger = logging.getLogger(__name__)

DAILY_DOCUMENT = "eurofxref-daily.xml"
RECENT_DOCUMENT = "eurofxref-hist-90d.xml"
HISTORY_DOCUMENT = "eurofxref-hist.xml"


class EcbAPIError(RuntimeError):
    """Raised when an ECB reference-rate document cannot be retrieved."""


class EcbClientConfig:
    """Configuration parameters for the ECB document client."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        max_retries: int = 2,
        backoff_seconds: float = 1.0,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds


class EcbClient:
    """Fetches the raw eurofxref XML documents built on the shared wrapper."""

    def __init__(
        self,
        config: EcbClientConfig,
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

    def get(self, document: str) -> bytes:
        try:
            payload = self._client.get(document)
        except HTTPClientError as exc:
            raise EcbAPIError(str(exc)) from exc

        logger.debug("Fetched %s (%s bytes)", document, len(payload))
        return payload

    def daily(self) -> bytes:
        return self.get(DAILY_DOCUMENT)

    def recent(self) -> bytes:
        return self.get(RECENT_DOCUMENT)

    def history(self) -> bytes:
        return self.get(HISTORY_DOCUMENT)
