import logging
import time
from collections.abc import Awaitable, Callable

import httpx

from app.config import Settings, settings
from app.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

# seconds shaved off the advertised lifetime so a token is never used at the edge
EXPIRY_MARGIN = 60

TokenExchange = Callable[[], Awaitable[tuple[str, int]]]


class TokenCache:
    """Single-slot bearer token cache.

    ``exchange`` fetches a fresh ``(access_token, expires_in)`` pair and ``clock``
    returns seconds; both are injectable so tests can drive expiry directly.
    Concurrent refreshes are not serialised: the last one to finish wins.
    """

    def __init__(self, exchange: TokenExchange, clock: Callable[[], float] = time.monotonic):
        self._exchange = exchange
        self._clock = clock
        self.token: str | None = None
        self.expires_at: float = 0.0

    async def get_token(self) -> str:
        now = self._clock()
        if self.token and now < self.expires_at:
            return self.token

        token, expires_in = await self._exchange()
        self.token = token
        self.expires_at = now + max(expires_in - EXPIRY_MARGIN, 0)
        logger.debug("Refreshed access token, valid for %ss", max(expires_in - EXPIRY_MARGIN, 0))
        return token

    def invalidate(self) -> None:
        self.token = None
        self.expires_at = 0.0


class EbayCredentialExchange:
    """OAuth client-credentials grant against the eBay identity endpoint."""

    def __init__(self, config: Settings = settings, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    async def __call__(self) -> tuple[str, int]:
        if not self.config.ebay_app_id or not self.config.ebay_cert_id:
            raise ConfigurationError(
                "Missing eBay credentials. Set EBAY_APP_ID/EBAY_CERT_ID "
                "(or EBAY_CLIENT_ID/EBAY_CLIENT_SECRET)."
            )

        async with httpx.AsyncClient(timeout=self.config.ebay_timeout, transport=self._transport) as client:
            resp = await client.post(
                self.config.ebay_identity_url,
                auth=(self.config.ebay_app_id, self.config.ebay_cert_id),
                data={
                    "grant_type": "client_credentials",
                    "scope": self.config.ebay_oauth_scope,
                },
            )

        if not resp.is_success:
            logger.error("eBay token exchange failed: %s", resp.status_code)
            raise UpstreamError("eBay auth", resp.status_code, resp.text)

        data = resp.json()
        try:
            expires_in = int(data.get("expires_in") or 0)
        except (TypeError, ValueError):
            expires_in = 0
        return data["access_token"], expires_in
