"""Scrape listing tiles from the public eBay deals pages.

The tile and field patterns match one layout of third-party markup. When eBay
changes that layout the patterns stop matching and the scraper yields nothing;
it does not raise.
"""

import logging
import math
import re
from urllib.parse import unquote

import httpx

from app.config import Settings, settings
from app.schemas.deals import DealsPage, ScrapedDeal
from app.schemas.listing import Listing

logger = logging.getLogger(__name__)

DEAL_PATHS = [
    "/deals",
    "/deals/tech",
    "/deals/home-garden",
    "/deals/fashion",
]

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

MAX_LIMIT = 300
MIN_DISCOUNT_PCT = 5
IMAGE_SIZE = "s-l500."

TILE_RX = re.compile(r"data-listing-id[=\s]*[\"']?(\d+).*?</div>\s*</div>\s*</div>\s*</div>", re.S)
URL_RX = re.compile(r"href=[\"']?(https://www\.ebay\.com/itm/\d+[^\"'>\s]*)", re.S)
IMAGE_RX = re.compile(r"src=[\"']?(https://i\.ebayimg\.com[^\"'>\s]+)", re.S)
IMAGE_SIZE_RX = re.compile(r"s-l\d+\.")
TITLE_RX = re.compile(r"dne-itemtile-title[^>]*title=[\"']?([^\"']+)", re.S)
TITLE_FALLBACK_RX = re.compile(r"ebayui-ellipsis[^>]*>([^<]+)", re.S)
PRICE_RX = re.compile(r"itemprop=[\"']?price[\"']?[^>]*>\$?([\d,]+\.?\d*)", re.S)
ORIGINAL_PRICE_RX = re.compile(r"itemtile-price-strikethrough[^>]*>\$?([\d,]+\.?\d*)", re.S)
DISCOUNT_RX = re.compile(r"(\d+)%\s*off", re.I)
NUMBER_RX = re.compile(r"[\d,]+\.?\d*")


def extract_number(value: str | None) -> str | None:
    if not value:
        return None
    match = NUMBER_RX.search(value)
    return match.group(0).replace(",", "") if match else None


def discount_percent(price: str | None, original_price: str | None) -> int | None:
    if not price or not original_price:
        return None
    original = float(original_price)
    if original <= 0:
        return None
    # half-up, so 12.5 -> 13
    return math.floor((original - float(price)) / original * 100 + 0.5)


def affiliate_url(item_id: str, config: Settings = settings) -> str:
    return (
        f"https://www.ebay.com/itm/{item_id}?mkcid=1&mkrid={config.ebay_mkrid}"
        f"&campid={config.ebay_campaign_id}&toolid=10001&mkevt=1"
    )


def _parse_tile(item_id: str, tile: str) -> ScrapedDeal | None:
    url_match = URL_RX.search(tile)
    item_url = unquote(url_match.group(1).replace("&amp;", "&")) if url_match else ""

    image_match = IMAGE_RX.search(tile)
    image = IMAGE_SIZE_RX.sub(IMAGE_SIZE, image_match.group(1), count=1) if image_match else ""

    title_match = TITLE_RX.search(tile) or TITLE_FALLBACK_RX.search(tile)
    title = title_match.group(1).strip() if title_match else ""

    price_match = PRICE_RX.search(tile)
    price = extract_number(price_match.group(1)) if price_match else None

    original_match = ORIGINAL_PRICE_RX.search(tile)
    original_price = extract_number(original_match.group(1)) if original_match else None

    discount_match = DISCOUNT_RX.search(tile)
    if discount_match:
        discount = int(discount_match.group(1))
    else:
        discount = discount_percent(price, original_price)

    if not (title and item_url and price and float(price) > 0):
        return None

    return ScrapedDeal(
        item_id=item_id,
        title=title,
        image=image,
        price=price,
        original_price=original_price,
        discount_pct=discount,
        item_url=item_url,
    )


def parse_tiles(html: str) -> list[ScrapedDeal]:
    """Extract every complete listing tile from a deals page."""
    deals = []
    for match in TILE_RX.finditer(html):
        deal = _parse_tile(match.group(1), match.group(0))
        if deal is not None:
            deals.append(deal)
    return deals


def deal_to_listing(deal: ScrapedDeal, config: Settings = settings) -> Listing:
    """Present a scraped deal as a listing card. The affiliate URL is used as-is."""
    return Listing(
        id=f"v1|{deal.item_id}|0",
        title=deal.title,
        price=float(deal.price),
        original_price=float(deal.original_price) if deal.original_price else None,
        image_url=deal.image or config.deals_placeholder_image_url,
        item_url=deal.affiliate_url or affiliate_url(deal.item_id, config),
        condition="Deal",
    )


class DealsScraper:
    def __init__(self, config: Settings = settings, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    @property
    def page_urls(self) -> list[str]:
        return [f"{self.config.deals_base_url}{path}" for path in DEAL_PATHS]

    async def fetch_page(self, url: str) -> str | None:
        """Fetch one deals page; None when it fails for any reason."""
        try:
            async with httpx.AsyncClient(
                timeout=self.config.deals_timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                resp = await client.get(url, headers=BROWSER_HEADERS)
        except httpx.HTTPError:
            logger.exception("Deals page request failed: %s", url)
            return None

        if not resp.is_success:
            logger.error("Deals page failed: %s (%s)", url, resp.status_code)
            return None
        return resp.text

    async def scrape_deals(self, limit: int = 200, offset: int = 0, marketplace: str = "EBAY_US") -> DealsPage:
        limit = max(min(limit, MAX_LIMIT), 0)
        offset = max(offset, 0)
        wanted = limit + offset

        deals: list[ScrapedDeal] = []
        seen: set[str] = set()

        for url in self.page_urls:
            html = await self.fetch_page(url)
            if html is None:
                continue

            page_deals = parse_tiles(html)
            logger.debug("Parsed %d tiles from %s", len(page_deals), url)

            for deal in page_deals:
                if not deal.discount_pct or deal.discount_pct < MIN_DISCOUNT_PCT:
                    continue
                if deal.item_id in seen:
                    continue
                seen.add(deal.item_id)

                deal.affiliate_url = affiliate_url(deal.item_id, self.config)
                deals.append(deal)
                if len(deals) >= wanted:
                    break

            if len(deals) >= wanted:
                break

        logger.info("Scraped %d deals from %d pages", len(deals), len(self.page_urls))
        return DealsPage(
            items=deals[offset:offset + limit],
            total=len(deals),
            limit=limit,
            offset=offset,
            marketplace=marketplace,
            campaign_id=self.config.ebay_campaign_id,
        )
