from app.schemas.base import CamelModel


class ScrapedDeal(CamelModel):
    item_id: str
    title: str
    image: str = ""
    price: str
    original_price: str | None = None
    discount_pct: int | None = None
    item_url: str
    affiliate_url: str = ""


class DealsPage(CamelModel):
    items: list[ScrapedDeal] = []
    total: int = 0
    limit: int
    offset: int = 0
    marketplace: str = "EBAY_US"
    source: str = "eBay Deals Page"
    campaign_id: str = ""
    has_affiliate_links: bool = True
