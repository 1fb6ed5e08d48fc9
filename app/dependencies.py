from fastapi import Request

from app.config import Settings, settings
from app.services.completion import CompletionClient
from app.services.deals_scraper import DealsScraper
from app.services.marketplace_search import MarketplaceSearchClient
from app.services.price_reconciliation import PriceReconciliationService
from app.services.token_cache import EbayCredentialExchange, TokenCache


def create_token_cache(config: Settings = settings) -> TokenCache:
    return TokenCache(EbayCredentialExchange(config))


def get_settings() -> Settings:
    return settings


def get_token_cache(request: Request) -> TokenCache:
    # one cache per app so every request shares the token
    cache = getattr(request.app.state, "token_cache", None)
    if cache is None:
        cache = request.app.state.token_cache = create_token_cache()
    return cache


def get_completion_client(request: Request) -> CompletionClient:
    # the Anthropic SDK holds a connection pool; keep one per app
    client = getattr(request.app.state, "completion_client", None)
    if client is None:
        client = request.app.state.completion_client = CompletionClient(settings)
    return client


def get_marketplace_client(request: Request) -> MarketplaceSearchClient:
    return MarketplaceSearchClient(get_token_cache(request), settings)


def get_deals_scraper() -> DealsScraper:
    return DealsScraper(settings)


def get_reconciliation_service(request: Request) -> PriceReconciliationService:
    return PriceReconciliationService(completion=get_completion_client(request), config=settings)
