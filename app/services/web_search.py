import logging
from urllib.parse import urlparse

import httpx

from app.config import Settings, settings
from app.schemas.compare import WebResult

logger = logging.getLogger(__name__)

MAX_RESULTS = 5


def _hostname(url: str) -> str:
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


class WebSearchClient:
    """Brave web search used to find new-retail prices."""

    def __init__(self, config: Settings = settings, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    async def search(self, query: str) -> list[WebResult] | None:
        """Search for "<query> buy new price". None when the call fails or times out."""
        params = {
            "q": f"{query} buy new price",
            "count": 8,
            "search_lang": "en",
            "country": "us",
            "result_filter": "web",
        }
        headers = {
            "Accept": "application/json",
            "X-Subscription-Token": self.config.brave_api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self.config.brave_timeout, transport=self._transport) as client:
                resp = await client.get(self.config.brave_search_url, params=params, headers=headers)
            if not resp.is_success:
                logger.warning("Brave search failed: %s for %r", resp.status_code, query)
                return None
            data = resp.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("Brave search failed for: %s", query)
            return None

        results = []
        for item in ((data.get("web") or {}).get("results") or [])[:MAX_RESULTS]:
            url = item.get("url") or ""
            results.append(WebResult(
                title=item.get("title") or "",
                url=url,
                description=item.get("description") or "",
                site=_hostname(url),
            ))

        logger.info("Brave returned %d results for: %s", len(results), query)
        return results
