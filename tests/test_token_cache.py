"""Tests for the bearer token cache and the eBay credential exchange."""

import unittest

import httpx

from app.config import Settings
from app.errors import ConfigurationError, UpstreamError
from app.services.token_cache import EbayCredentialExchange, TokenCache


class _FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _CountingExchange:
    def __init__(self, expires_in: int = 7200) -> None:
        self.calls = 0
        self.expires_in = expires_in

    async def __call__(self) -> tuple[str, int]:
        self.calls += 1
        return f"token-{self.calls}", self.expires_in


class TestTokenCache(unittest.IsolatedAsyncioTestCase):
    """TokenCache refresh behaviour."""

    async def test_first_call_exchanges(self) -> None:
        """An empty cache fetches a token."""
        exchange = _CountingExchange()
        cache = TokenCache(exchange, clock=_FakeClock())
        self.assertEqual(await cache.get_token(), "token-1")
        self.assertEqual(exchange.calls, 1)

    async def test_cached_before_expiry(self) -> None:
        """No new exchange while now < expires_at."""
        clock = _FakeClock()
        exchange = _CountingExchange(expires_in=7200)
        cache = TokenCache(exchange, clock=clock)
        await cache.get_token()
        clock.now += 7000
        self.assertEqual(await cache.get_token(), "token-1")
        self.assertEqual(exchange.calls, 1)

    async def test_expiry_margin(self) -> None:
        """Tokens expire 60s before their advertised lifetime."""
        clock = _FakeClock()
        exchange = _CountingExchange(expires_in=7200)
        cache = TokenCache(exchange, clock=clock)
        await cache.get_token()
        self.assertEqual(cache.expires_at, 1000.0 + 7140)
        clock.now += 7140
        self.assertEqual(await cache.get_token(), "token-2")
        self.assertEqual(exchange.calls, 2)

    async def test_after_expiry_exactly_one_exchange(self) -> None:
        """An expired token triggers exactly one refresh."""
        clock = _FakeClock()
        exchange = _CountingExchange(expires_in=120)
        cache = TokenCache(exchange, clock=clock)
        await cache.get_token()
        clock.now += 500
        await cache.get_token()
        await cache.get_token()
        self.assertEqual(exchange.calls, 2)

    async def test_short_lifetime_clamped(self) -> None:
        """expires_in below the margin never yields a negative lifetime."""
        clock = _FakeClock()
        cache = TokenCache(_CountingExchange(expires_in=30), clock=clock)
        await cache.get_token()
        self.assertEqual(cache.expires_at, clock.now)

    async def test_invalidate(self) -> None:
        """invalidate() forces the next call to refresh."""
        exchange = _CountingExchange()
        cache = TokenCache(exchange, clock=_FakeClock())
        await cache.get_token()
        cache.invalidate()
        self.assertIsNone(cache.token)
        self.assertEqual(await cache.get_token(), "token-2")


class TestEbayCredentialExchange(unittest.IsolatedAsyncioTestCase):
    """Client-credentials grant."""

    def _config(self, **overrides) -> Settings:
        values = {"ebay_app_id": "app-id", "ebay_cert_id": "cert-id"}
        values.update(overrides)
        return Settings(**values)

    async def test_success(self) -> None:
        """Basic auth and form body are sent; token and lifetime returned."""
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = request.content.decode()
            return httpx.Response(200, json={"access_token": "abc", "expires_in": 7200})

        exchange = EbayCredentialExchange(self._config(), transport=httpx.MockTransport(handler))
        self.assertEqual(await exchange(), ("abc", 7200))
        self.assertTrue(seen["auth"].startswith("Basic "))
        self.assertIn("grant_type=client_credentials", seen["body"])

    async def test_failure_carries_status_and_body(self) -> None:
        """Non-2xx raises UpstreamError with the upstream details."""
        transport = httpx.MockTransport(lambda request: httpx.Response(400, text="invalid_client"))
        exchange = EbayCredentialExchange(self._config(), transport=transport)
        with self.assertRaises(UpstreamError) as ctx:
            await exchange()
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.body, "invalid_client")

    async def test_missing_credentials(self) -> None:
        """No network call without credentials."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        exchange = EbayCredentialExchange(
            self._config(ebay_app_id="", ebay_cert_id=""),
            transport=httpx.MockTransport(handler),
        )
        with self.assertRaises(ConfigurationError):
            await exchange()
        self.assertEqual(calls, [])


if __name__ == "__main__":
    unittest.main()
