import logging
import re
import uuid
from dataclasses import dataclass, field

import httpx

from app.config import Settings, settings
from app.errors import UpstreamError
from app.schemas.listing import Listing
from app.services.filters import (
    build_filters,
    currency_for,
    normalize_brands,
    supports_refurbished,
)
from app.services.token_cache import TokenCache

logger = logging.getLogger(__name__)

MAX_LIMIT = 200


@dataclass
class SearchParams:
    query: str = ""
    min_price: float | None = None
    max_price: float | None = None
    offset: int = 0
    limit: int = MAX_LIMIT
    conditions: str = "refurbished"
    brands: list[str] = field(default_factory=list)
    category_id: str = ""
    free_shipping: bool = False
    buying_options: str = "FIXED_PRICE"
    sort: str = ""
    marketplace: str = "EBAY_US"
    deals: bool = False


@dataclass
class SearchResult:
    items: list[Listing] = field(default_factory=list)
    total: int = 0
    applied_query: str = ""


def query_tokens(query: str) -> list[str]:
    """Lowercase alphanumeric words of a query."""
    return [t for t in (re.sub(r"[^a-z0-9]", "", w) for w in query.lower().split()) if t]


def compact(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text.lower())


def matches_all_tokens(title: str, tokens: list[str]) -> bool:
    compacted = compact(title)
    return all(token in compacted for token in tokens)


def is_new_condition(condition: str) -> bool:
    return condition.strip().lower().startswith("new")


def compound_query(query: str) -> str | None:
    """Join the first two words ("link buds" -> "linkbuds"), or None for single-word queries."""
    words = query.split()
    if len(words) < 2:
        return None
    return " ".join([words[0] + words[1], *words[2:]])


def add_affiliate_params(url: str, config: Settings = settings) -> str:
    if not url or "ebay.com" not in url:
        return url
    separator = "&" if "?" in url else "?"
    return (
        f"{url}{separator}mkcid=1&mkrid={config.ebay_mkrid}&siteid=0"
        f"&campid={config.ebay_campaign_id}&toolid=10001"
    )


def _number(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _image_url(item: dict, placeholder: str) -> str:
    thumbnails = item.get("thumbnailImages") or [{}]
    additional = item.get("additionalImages") or [{}]
    return (
        (item.get("image") or {}).get("imageUrl")
        or thumbnails[0].get("imageUrl")
        or additional[0].get("imageUrl")
        or placeholder
    )


def to_listing(item: dict, config: Settings = settings) -> Listing:
    """Map one Browse API item summary onto a Listing."""
    return Listing(
        id=item.get("itemId") or item.get("legacyItemId") or str(uuid.uuid4()),
        title=item.get("title") or "",
        price=_number((item.get("price") or {}).get("value")),
        original_price=_number(((item.get("marketingPrice") or {}).get("originalPrice") or {}).get("value")) or None,
        image_url=_image_url(item, config.placeholder_image_url),
        item_url=add_affiliate_params(item.get("itemWebUrl") or item.get("itemAffiliateWebUrl") or "", config),
        condition=item.get("condition") or "",
    )


class MarketplaceSearchClient:
    """eBay Browse API item search with client-side title/condition filtering."""

    def __init__(
        self,
        token_cache: TokenCache,
        config: Settings = settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token_cache = token_cache
        self.config = config
        self._transport = transport

    def build_query_params(self, params: SearchParams, query: str | None = None) -> dict[str, str]:
        query = params.query if query is None else query
        browse_mode = params.deals or not query.strip()

        filters = build_filters(
            conditions=params.conditions,
            supports_refurbished=supports_refurbished(params.marketplace),
            min_price=params.min_price,
            max_price=params.max_price,
            buying_options=params.buying_options,
            free_shipping=params.free_shipping,
            currency=currency_for(params.marketplace),
        )

        qp = {
            "limit": str(min(params.limit, MAX_LIMIT)),
            "offset": str(max(params.offset, 0)),
            "fieldgroups": "ASPECT_REFINEMENTS,EXTENDED",
        }
        if filters:
            qp["filter"] = filters

        if browse_mode:
            # homepage / deals: newest refurbished listings in a category
            qp["category_ids"] = params.category_id or self.config.ebay_default_category_id
            qp["sort"] = "newlyListed"
        else:
            qp["q"] = query.strip()
            if params.sort:
                qp["sort"] = params.sort
            if params.category_id:
                qp["category_ids"] = params.category_id

        if params.brands and params.category_id:
            brand_list = "|".join(normalize_brands(params.brands))
            qp["aspect_filter"] = f"categoryId:{params.category_id},Brand:{{{brand_list}}}"

        return qp

    async def _get(self, client: httpx.AsyncClient, qp: dict[str, str], marketplace: str) -> httpx.Response:
        token = await self.token_cache.get_token()
        return await client.get(
            self.config.ebay_browse_url,
            params=qp,
            headers={
                "Authorization": f"Bearer {token}",
                "X-EBAY-C-MARKETPLACE-ID": marketplace,
            },
        )

    async def fetch_summaries(self, params: SearchParams, query: str | None = None) -> list[dict]:
        """Call the search endpoint, retrying once with a fresh token on 401."""
        qp = self.build_query_params(params, query)

        async with httpx.AsyncClient(timeout=self.config.ebay_timeout, transport=self._transport) as client:
            resp = await self._get(client, qp, params.marketplace)
            if resp.status_code == 401:
                logger.info("eBay token rejected, refreshing and retrying once")
                self.token_cache.invalidate()
                resp = await self._get(client, qp, params.marketplace)

        if not resp.is_success:
            logger.warning("eBay search failed: %s for %r", resp.status_code, qp.get("q", ""))
            raise UpstreamError("eBay search", resp.status_code, resp.text)

        return resp.json().get("itemSummaries") or []

    def post_filter(self, summaries: list[dict], query: str) -> list[dict]:
        tokens = query_tokens(query)
        kept = [s for s in summaries if matches_all_tokens(s.get("title") or "", tokens)]
        if self.config.exclude_new_listings:
            kept = [s for s in kept if not is_new_condition(s.get("condition") or "")]
        return kept

    async def search(self, params: SearchParams) -> SearchResult:
        query = params.query.strip()
        summaries = await self.fetch_summaries(params)

        if query and not params.deals:
            filtered = self.post_filter(summaries, query)
            if not filtered:
                retry_query = compound_query(query)
                if retry_query:
                    logger.info("No matches for %r, retrying as %r", query, retry_query)
                    summaries = await self.fetch_summaries(params, retry_query)
                    filtered = self.post_filter(summaries, retry_query)
                    query = retry_query
            summaries = filtered

        items = [to_listing(s, self.config) for s in summaries]
        logger.info("eBay search %r returned %d listings", query, len(items))
        return SearchResult(items=items, total=len(items), applied_query=query)
