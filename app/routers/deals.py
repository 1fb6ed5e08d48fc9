from fastapi import APIRouter, Depends

from app.dependencies import get_deals_scraper
from app.services.deals_scraper import MAX_LIMIT, DealsScraper

router = APIRouter()


@router.get("/deals")
async def deals(
    limit: int = 200,
    offset: int = 0,
    marketplace: str = "EBAY_US",
    scraper: DealsScraper = Depends(get_deals_scraper),
):
    """Discounted listings scraped from the eBay deals pages."""
    page = await scraper.scrape_deals(limit=min(limit, MAX_LIMIT), offset=offset, marketplace=marketplace)
    return page.model_dump(by_alias=True, exclude_none=True)
