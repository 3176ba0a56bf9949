"""
Catalog document source.

Loads the raw catalog text from the configured default path or from an
operator-supplied absolute URL. The engine never fetches anything itself;
this is the collaborator the service uses before handing text to the parser.
"""

from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

from shared.errors import ExternalServiceError, ValidationError
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception


def is_absolute_url(value: str) -> bool:
    """Override references must be absolute http(s) URLs."""
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class CatalogSource:
    """Reads catalog documents from disk or over HTTP."""

    def __init__(self, default_path: str, timeout: float = 10.0, attempts: int = 3,
                 retry_config: Optional[RetryConfig] = None):
        self.default_path = Path(default_path)
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig(max_attempts=attempts)
        self.logger = get_logger("configurator.catalog_source")

    def describe(self, override_url: Optional[str] = None) -> str:
        """Stable key identifying where a catalog comes from."""
        return override_url or str(self.default_path)

    async def load(self, override_url: Optional[str] = None) -> str:
        """Return the raw document text."""
        if override_url is None:
            return self.read_default()

        if not is_absolute_url(override_url):
            raise ValidationError(
                "Catalog override must be an absolute http(s) URL",
                details={"catalog": override_url}
            )
        return await self.fetch(override_url)

    def read_default(self) -> str:
        """Read the catalog bundled at the default location."""
        try:
            text = self.default_path.read_text(encoding="utf-8")
        except OSError as e:
            self.logger.error("Default catalog unreadable", path=str(self.default_path), error=str(e))
            raise ExternalServiceError(
                "catalog",
                f"Cannot read default catalog at {self.default_path}",
                details={"error": str(e)}
            ) from e
        self.logger.info("Default catalog read", path=str(self.default_path), size=len(text))
        return text

    async def fetch(self, url: str) -> str:
        """Fetch an override catalog, retrying transport failures."""

        @retry_on_exception((httpx.TransportError,), config=self.retry_config)
        async def _fetch() -> httpx.Response:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                return await client.get(url)

        try:
            response = await _fetch()
        except RetryError as e:
            raise ExternalServiceError(
                "catalog",
                "Catalog URL unreachable",
                details={"url": url, "error": str(e.last_exception), "attempts": e.attempts}
            ) from e

        if response.status_code != 200:
            self.logger.warning("Catalog fetch failed", url=url, status_code=response.status_code)
            raise ExternalServiceError(
                "catalog",
                f"Catalog URL returned {response.status_code}",
                details={"url": url, "status_code": response.status_code}
            )

        self.logger.info("Catalog fetched", url=url, size=len(response.content))
        return response.text
