import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.config import Settings
from app.dependencies import get_reconciliation_service, get_settings
from app.schemas.compare import CompareProductInput
from app.services.price_reconciliation import PriceReconciliationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/compare")
async def compare(
    request: Request,
    config: Settings = Depends(get_settings),
    service: PriceReconciliationService = Depends(get_reconciliation_service),
):
    """Compare up to five listings against new-retail prices. Degrades, never fails upstream."""
    if not config.brave_api_key or not config.completion_api_key:
        return JSONResponse(
            {"success": False, "error": "Missing BRAVE_API_KEY or completion API key."},
            status_code=500,
        )

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = {}
    if not isinstance(body, dict):
        body = {}

    products = []
    raw_products = body.get("products")
    for raw in raw_products if isinstance(raw_products, list) else []:
        try:
            products.append(CompareProductInput.model_validate(raw))
        except ValidationError:
            logger.warning("Skipping malformed compare product: %r", raw)

    if not products:
        return JSONResponse({"success": False, "error": "No products provided"}, status_code=400)

    query = body.get("query")
    result = await service.reconcile(products, query=query if isinstance(query, str) else None)
    return result.model_dump(by_alias=True, exclude_none=True)
