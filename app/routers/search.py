import logging

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from app.dependencies import get_deals_scraper, get_marketplace_client
from app.errors import ConfigurationError, UpstreamError
from app.services.deals_scraper import DealsScraper
from app.services.filters import BUYING_OPTIONS, CONDITION_CODES
from app.services.marketplace_search import MAX_LIMIT, MarketplaceSearchClient, SearchParams
from app.viewmodels.search_vm import SearchViewModel

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(message: str, status_code: int, details: str | None = None) -> JSONResponse:
    body = {"error": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(body, status_code=status_code)


@router.get("/search")
async def search(
    q: str = "",
    min_price: float | None = Query(None, alias="min"),
    max_price: float | None = Query(None, alias="max"),
    offset: int = 0,
    limit: int = MAX_LIMIT,
    conditions: str = "refurbished",
    brands: str = "",
    category_id: str = Query("", alias="categoryId"),
    free_shipping: bool = Query(False, alias="freeShipping"),
    buying_options: str = Query("FIXED_PRICE", alias="buyingOptions"),
    sort: str = "",
    marketplace: str = "EBAY_US",
    deals: bool = False,
    client: MarketplaceSearchClient = Depends(get_marketplace_client),
    scraper: DealsScraper = Depends(get_deals_scraper),
):
    """Search refurbished listings, or serve scraped deals when ``deals`` is set."""
    if conditions not in CONDITION_CODES:
        return _error(f"Unknown conditions filter: {conditions}", 400)
    if buying_options and buying_options not in BUYING_OPTIONS:
        return _error(f"Unknown buying option: {buying_options}", 400)
    if (min_price is not None and min_price < 0) or (max_price is not None and max_price < 0):
        return _error("Price bounds must not be negative", 400)
    if min_price is not None and max_price is not None and min_price > max_price:
        return _error("Minimum price is greater than maximum price", 400)

    params = SearchParams(
        query=q,
        min_price=min_price,
        max_price=max_price,
        offset=max(offset, 0),
        limit=max(min(limit, MAX_LIMIT), 0),
        conditions=conditions,
        brands=[b.strip() for b in brands.split(",") if b.strip()],
        category_id=category_id,
        free_shipping=free_shipping,
        buying_options=buying_options,
        sort=sort,
        marketplace=marketplace,
        deals=deals,
    )

    try:
        vm = await SearchViewModel.search(params, client, scraper)
    except ConfigurationError as exc:
        logger.error("Search unavailable: %s", exc)
        return _error(str(exc), 500)
    except UpstreamError as exc:
        return _error(str(exc), exc.status_code, exc.body)
    except httpx.HTTPError as exc:
        logger.exception("eBay search request failed")
        return _error(f"eBay search request failed: {exc}", 502)

    return vm.to_response().model_dump(by_alias=True, exclude_none=True)
