import logging
from dataclasses import dataclass, field

from app.schemas.listing import AppliedFilters, Listing, PriceRange, SearchResponse
from app.services.deals_scraper import DealsScraper, deal_to_listing
from app.services.filters import POPULAR_BRANDS, supports_refurbished
from app.services.marketplace_search import MarketplaceSearchClient, SearchParams

logger = logging.getLogger(__name__)


@dataclass
class SearchViewModel:
    params: SearchParams
    items: list[Listing] = field(default_factory=list)
    source: str | None = None

    @classmethod
    async def search(
        cls,
        params: SearchParams,
        client: MarketplaceSearchClient,
        scraper: DealsScraper,
    ) -> "SearchViewModel":
        if params.deals:
            page = await scraper.scrape_deals(limit=params.limit, offset=params.offset, marketplace=params.marketplace)
            if page.items:
                items = [deal_to_listing(deal, scraper.config) for deal in page.items]
                return cls(params=params, items=items, source=page.source)
            # layout change or blocked pages: fall back to newest refurbished listings
            logger.warning("Deals pages yielded nothing, falling back to browse listings")

        result = await client.search(params)
        return cls(params=params, items=result.items)

    def to_response(self) -> SearchResponse:
        p = self.params
        return SearchResponse(
            items=self.items,
            total=len(self.items),
            popular_brands=POPULAR_BRANDS,
            marketplace=p.marketplace,
            supports_refurbished=supports_refurbished(p.marketplace),
            applied_filters=AppliedFilters(
                conditions=p.conditions,
                brands=p.brands,
                category_id=p.category_id,
                free_shipping=p.free_shipping,
                buying_options=p.buying_options,
                price_range=PriceRange(min=p.min_price, max=p.max_price),
            ),
            source=self.source,
        )
