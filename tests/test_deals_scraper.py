"""Tests for deals page tile parsing and the scrape pass."""

import unittest

import httpx

from app.config import Settings
from app.services.deals_scraper import (
    DealsScraper,
    deal_to_listing,
    discount_percent,
    extract_number,
    parse_tiles,
)


def _tile(
    item_id: str,
    title: str | None = "Apple iPad Air 64GB",
    price: str | None = "$399.99",
    original: str | None = None,
    discount_text: str | None = None,
    fallback_title: str | None = None,
    url: bool = True,
) -> str:
    """Render one tile in the deals page layout."""
    parts = [f'<div class="dne-itemtile dne-itemtile-large" data-listing-id="{item_id}">']
    parts.append('<div class="dne-itemtile-detail">')
    if url:
        parts.append(f'<a href="https://www.ebay.com/itm/{item_id}?_trkparms=a%3D1&amp;hash=item{item_id}">')
    else:
        parts.append("<a>")
    parts.append('<img src="https://i.ebayimg.com/images/g/abc/s-l225.jpg" alt="">')
    if title:
        parts.append(f'<h3 class="dne-itemtile-title ellipse-2" title="{title}">{title}</h3>')
    if fallback_title:
        parts.append(f'<span class="ebayui-ellipsis-2">{fallback_title}</span>')
    parts.append("</a>")
    parts.append('<div class="dne-itemtile-price">')
    if price is not None:
        parts.append(f'<span itemprop="price" content="x">{price}</span>')
    if original:
        parts.append(f'<span class="itemtile-price-strikethrough">{original}</span>')
    if discount_text:
        parts.append(f'<span class="itemtile-price-bold">{discount_text}</span>')
    parts.append("</div>\n  </div>\n</div>\n</div>")
    return "\n".join(parts)


def _page(*tiles: str) -> str:
    return '<html><body><div class="deals">' + "\n".join(tiles) + "</body></html>"


class TestHelpers(unittest.TestCase):
    """Number and discount helpers."""

    def test_extract_number(self) -> None:
        self.assertEqual(extract_number("$1,299.99"), "1299.99")
        self.assertIsNone(extract_number(""))
        self.assertIsNone(extract_number("free"))

    def test_discount_percent_rounds(self) -> None:
        self.assertEqual(discount_percent("150", "200"), 25)
        self.assertEqual(discount_percent("87.5", "100"), 13)
        self.assertIsNone(discount_percent("10", None))
        self.assertIsNone(discount_percent("10", "0"))


class TestParseTiles(unittest.TestCase):
    """parse_tiles against synthetic markup."""

    def test_complete_tile(self) -> None:
        """All fields extracted and normalised."""
        deals = parse_tiles(_page(_tile("111", original="$599.99", discount_text="33% off")))
        self.assertEqual(len(deals), 1)
        deal = deals[0]
        self.assertEqual(deal.item_id, "111")
        self.assertEqual(deal.title, "Apple iPad Air 64GB")
        self.assertEqual(deal.price, "399.99")
        self.assertEqual(deal.original_price, "599.99")
        self.assertEqual(deal.discount_pct, 33)
        self.assertEqual(deal.item_url, "https://www.ebay.com/itm/111?_trkparms=a=1&hash=item111")
        self.assertEqual(deal.image, "https://i.ebayimg.com/images/g/abc/s-l500.jpg")

    def test_discount_computed_from_prices(self) -> None:
        deals = parse_tiles(_page(_tile("222", price="$150.00", original="$200.00")))
        self.assertEqual(deals[0].discount_pct, 25)

    def test_fallback_title(self) -> None:
        deals = parse_tiles(_page(_tile("333", title=None, fallback_title=" Dyson V8 Vacuum ")))
        self.assertEqual(deals[0].title, "Dyson V8 Vacuum")

    def test_incomplete_tiles_rejected(self) -> None:
        """Tiles without title, URL or a positive price never appear."""
        html = _page(
            _tile("401", title=None),
            _tile("402", url=False),
            _tile("403", price="$0.00"),
            _tile("404", price=None),
            _tile("405"),
        )
        self.assertEqual([d.item_id for d in parse_tiles(html)], ["405"])

    def test_unknown_layout_yields_nothing(self) -> None:
        self.assertEqual(parse_tiles("<html><div class='card'>$10</div></html>"), [])


class _Pages:
    """Scripted deals site keyed by path."""

    def __init__(self, pages: dict[str, httpx.Response]) -> None:
        self.pages = pages
        self.requested: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requested.append(request.url.path)
        return self.pages.get(request.url.path, httpx.Response(404))


class TestScrapeDeals(unittest.IsolatedAsyncioTestCase):
    """The multi-page scrape pass."""

    def _scraper(self, pages: _Pages) -> DealsScraper:
        return DealsScraper(Settings(), transport=httpx.MockTransport(pages))

    async def test_dedup_filter_and_failed_pages(self) -> None:
        """Duplicates across pages collapse; low discounts drop; failing pages are skipped."""
        pages = _Pages({
            "/deals": httpx.Response(200, text=_page(
                _tile("1", discount_text="40% off"),
                _tile("2", discount_text="3% off"),
                _tile("3"),
            )),
            "/deals/tech": httpx.Response(500, text="boom"),
            "/deals/home-garden": httpx.Response(200, text=_page(
                _tile("1", discount_text="40% off"),
                _tile("4", price="$50", original="$100"),
            )),
        })
        page = await self._scraper(pages).scrape_deals()

        self.assertEqual([d.item_id for d in page.items], ["1", "4"])
        self.assertEqual(page.total, 2)
        self.assertEqual(len(pages.requested), 4)
        self.assertEqual(page.source, "eBay Deals Page")
        self.assertIn("campid=5339117469", page.items[0].affiliate_url)
        self.assertTrue(page.items[0].affiliate_url.startswith("https://www.ebay.com/itm/1?"))

    async def test_stops_at_limit_plus_offset(self) -> None:
        pages = _Pages({
            "/deals": httpx.Response(200, text=_page(*[_tile(str(i), discount_text="20% off") for i in range(10)])),
        })
        page = await self._scraper(pages).scrape_deals(limit=2, offset=1)

        self.assertEqual([d.item_id for d in page.items], ["1", "2"])
        self.assertEqual(page.total, 3)
        self.assertEqual(pages.requested, ["/deals"])

    async def test_limit_capped(self) -> None:
        pages = _Pages({})
        page = await self._scraper(pages).scrape_deals(limit=1000, offset=-5)
        self.assertEqual(page.limit, 300)
        self.assertEqual(page.offset, 0)
        self.assertEqual(page.items, [])

    async def test_transport_error_skips_page(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/deals":
                raise httpx.ConnectError("down", request=request)
            if request.url.path == "/deals/fashion":
                return httpx.Response(200, text=_page(_tile("9", discount_text="10% off")))
            return httpx.Response(404)

        scraper = DealsScraper(Settings(), transport=httpx.MockTransport(handler))
        page = await scraper.scrape_deals()
        self.assertEqual([d.item_id for d in page.items], ["9"])


class TestDealToListing(unittest.TestCase):
    def test_listing_keeps_affiliate_url(self) -> None:
        deal = parse_tiles(_page(_tile("77", price="$80", original="$100")))[0]
        deal.affiliate_url = "https://www.ebay.com/itm/77?campid=1"
        listing = deal_to_listing(deal, Settings())
        self.assertEqual(listing.id, "v1|77|0")
        self.assertEqual(listing.item_url, "https://www.ebay.com/itm/77?campid=1")
        self.assertEqual(listing.condition, "Deal")
        self.assertEqual(listing.savings, 20.0)


if __name__ == "__main__":
    unittest.main()
