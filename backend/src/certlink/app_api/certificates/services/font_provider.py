"""Best-effort download of the certificate caption type-face"""

import logging
from typing import Optional

import httpx

from certlink.shared.config import FontPolicy
from certlink.shared.errors import FontUnavailable

logger = logging.getLogger(__name__)

# Anything smaller than this is an error page or a truncated download
MIN_FONT_SIZE_BYTES = 1000


class FontProvider:
    """
    Fetches a TrueType font from a remote URL.

    Nothing is cached: every call to fetch() re-downloads, and callers that
    want caching keep the returned bytes themselves.
    """

    def __init__(
        self,
        font_url: str,
        policy: FontPolicy = FontPolicy.LENIENT,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.font_url = font_url
        self.policy = policy
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def _download(self) -> bytes:
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            response = await client.get(self.font_url)
            response.raise_for_status()
            content = response.content

        if len(content) < MIN_FONT_SIZE_BYTES:
            raise ValueError(f"Downloaded font file appears too small ({len(content)} bytes)")
        return content

    async def fetch(self) -> Optional[bytes]:
        """
        Download and validate the font.

        Returns:
            Font bytes, or None when the lenient policy absorbs a failure

        Raises:
            FontUnavailable: On any failure under the strict policy
        """
        try:
            content = await self._download()
            logger.debug(f"Fetched font from {self.font_url} ({len(content)} bytes)")
            return content
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Font loading error: {e}")
            if self.policy == FontPolicy.STRICT:
                raise FontUnavailable("Custom font required but could not be loaded", cause=e) from e
            logger.warning("Proceeding with fallback font (Helvetica)")
            return None
