import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import settings
from app.dependencies import create_token_cache
from app.logging_config import setup_logging
from app.routers import compare, deals, health, search
from app.services.completion import CompletionClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)

    # shared eBay token for every request in this process
    app.state.token_cache = create_token_cache(settings)
    app.state.completion_client = CompletionClient(settings)
    if not settings.ebay_app_id or not settings.ebay_cert_id:
        logger.warning("eBay credentials not configured; /search will answer 500")
    if not settings.brave_api_key or not settings.completion_api_key:
        logger.warning("Comparison credentials not configured; /compare will answer 500")
    logger.info("%s started (completion backend: %s)", settings.app_name, settings.completion_backend)

    yield

    await app.state.completion_client.aclose()
    logger.info("%s shutting down", settings.app_name)


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

# routers
app.include_router(health.router)
app.include_router(search.router)
app.include_router(deals.router)
app.include_router(compare.router)
