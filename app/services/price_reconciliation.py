"""Compare refurbished listings against new-retail prices found on the web.

Each product is searched on the web, the snippets for all products go to the
completion model in one prompt, and the model's per-product answer is merged
back onto the snippets by product index. When the model is unavailable or
answers with something unreadable the response still carries every product's
snippets so the UI can link out.
"""

import asyncio
import logging
import math
import re

from pydantic import ValidationError

from app.config import Settings, settings
from app.schemas.compare import (
    CompareProductInput,
    CompareResponse,
    PriceAnalysisItem,
    ProductResult,
    TopPick,
    parse_money,
)
from app.services.completion import CompletionClient, CompletionError
from app.services.llm_json import decode_llm_json
from app.services.web_search import WebSearchClient

logger = logging.getLogger(__name__)

# multi-word phrases first so "Very Good" goes before "Good"
STRIP_WORDS = [
    "Very Good",
    "Like New",
    "Open Box",
    "Grade A",
    "Grade B",
    "Refurbished",
    "Excellent",
    "Good",
    "Certified",
    "PRD",
    "OEM",
    "Genuine",
    "Original",
]
STRIP_RX = re.compile(r"\b(?:" + "|".join(re.escape(w) for w in STRIP_WORDS) + r")\b", re.I)
MAX_QUERY_WORDS = 7

VERDICT_GREAT = "Great deal"
VERDICT_GOOD = "Good deal"
VERDICT_FAIR = "Fair deal"
VERDICT_POOR = "Not worth it"
VERDICT_MANUAL = "Check links"

SYSTEM_PROMPT = (
    "You analyze web search results to find real product prices. Extract actual prices "
    "from the search result titles and descriptions. Always provide real URLs from the "
    "search results. Respond with valid JSON only."
)

PROMPT_TEMPLATE = """I searched for new retail prices for these refurbished products. Analyze the ACTUAL search results and extract ALL prices from ALL retailers.

{search_data}

INSTRUCTIONS:
1. From the search results, find ALL new retail prices from EVERY retailer (Amazon, Best Buy, Walmart, Target, etc.)
2. Extract the actual price number from titles/descriptions like "$79", "79.99", "$79.99"
3. Return ALL retailer prices found, not just the best one
4. Include the actual URL for each retailer

Return ONLY valid JSON:
{{
  "analysis": [
    {{
      "index": 1,
      "productName": "Short clear name",
      "refurbPrice": 59,
      "retailerPrices": [
        {{"retailer": "Amazon", "price": 79, "url": "https://amazon.com/..."}},
        {{"retailer": "Best Buy", "price": 85, "url": "https://bestbuy.com/..."}}
      ],
      "lowestNewPrice": 79,
      "lowestRetailer": "Amazon",
      "savings": 20,
      "savingsPercent": 25,
      "verdict": "{great}"
    }}
  ],
  "topPick": {{
    "index": 1,
    "reason": "Best savings at 25% off vs new"
  }},
  "summary": "One sentence overview"
}}

IMPORTANT: Include ALL retailers with prices found in search results, not just one!

VERDICT RULES:
- {great} = 20%+ savings
- {good} = 10-19% savings
- {fair} = 5-9% savings
- {poor} = <5% savings"""


def clean_for_search(title: str) -> str:
    """Strip condition/marketing words and punctuation; keep the first seven words."""
    clean = STRIP_RX.sub("", title)
    clean = re.sub(r"[^\w\s\-.]", " ", clean)
    clean = re.sub(r"\s+", " ", clean).strip()
    return " ".join(clean.split(" ")[:MAX_QUERY_WORDS])


def verdict_for(savings_percent: float) -> str:
    if savings_percent >= 20:
        return VERDICT_GREAT
    if savings_percent >= 10:
        return VERDICT_GOOD
    if savings_percent >= 5:
        return VERDICT_FAIR
    return VERDICT_POOR


def apply_savings(item: PriceAnalysisItem) -> PriceAnalysisItem:
    """Recompute lowest price, savings and verdict from the retailer prices.

    Left untouched when there is no usable refurbished price or retailer price.
    """
    refurb = parse_money(item.refurb_price)
    priced = [p for p in item.retailer_prices or [] if p.price and p.price > 0]
    if not isinstance(refurb, (int, float)) or not priced:
        return item

    lowest = min(priced, key=lambda p: p.price)
    savings = round(lowest.price - refurb, 2)
    percent = math.floor(savings / lowest.price * 100 + 0.5)

    item.lowest_new_price = lowest.price
    item.lowest_retailer = lowest.retailer
    item.savings = savings
    item.savings_percent = percent
    item.verdict = verdict_for(percent)
    return item


def format_product_block(product: ProductResult) -> str:
    lines = [
        f'PRODUCT #{product.index}: "{product.search_query}"',
        f"Refurbished Price: ${product.refurb_price}",
        "Web Search Results:",
    ]
    lines += [f"- [{r.site}] {r.title}: {r.description} ({r.url})" for r in product.web_results]
    return "\n".join(lines)


def _entry_index(entry: dict) -> int | None:
    try:
        return int(entry.get("index"))
    except (TypeError, ValueError):
        return None


class PriceReconciliationService:
    def __init__(
        self,
        web_search: WebSearchClient | None = None,
        completion: CompletionClient | None = None,
        config: Settings = settings,
    ):
        self.config = config
        self.web_search = web_search or WebSearchClient(config)
        self.completion = completion or CompletionClient(config)

    async def _gather_results(self, products: list[CompareProductInput]) -> list[ProductResult]:
        queries = [clean_for_search(p.title or "Unknown") for p in products]
        searches = await asyncio.gather(*(self.web_search.search(q) for q in queries))

        indexes = [p.index if p.index is not None else pos for pos, p in enumerate(products, start=1)]
        if len(set(indexes)) != len(indexes):
            logger.warning("Duplicate product indexes %s, renumbering by position", indexes)
            indexes = list(range(1, len(products) + 1))

        results = []
        for index, product, query, web_results in zip(indexes, products, queries, searches):
            title = product.title or "Unknown"
            results.append(ProductResult(
                index=index,
                original_title=title[:120],
                search_query=query,
                refurb_price=product.price if product.price is not None else "N/A",
                condition=product.condition or "Refurbished",
                web_results=web_results or [],
            ))
        return results

    def build_prompt(self, products: list[ProductResult]) -> str:
        search_data = "\n\n".join(format_product_block(p) for p in products)
        return PROMPT_TEMPLATE.format(
            search_data=search_data,
            great=VERDICT_GREAT,
            good=VERDICT_GOOD,
            fair=VERDICT_FAIR,
            poor=VERDICT_POOR,
        )

    @staticmethod
    def _manual_check(product: ProductResult, note: str) -> PriceAnalysisItem:
        return PriceAnalysisItem(
            index=product.index,
            product_name=product.search_query,
            refurb_price=product.refurb_price,
            web_results=product.web_results,
            original_title=product.original_title,
            verdict=VERDICT_MANUAL,
            price_note=note,
        )

    def _unavailable(self, products: list[ProductResult]) -> CompareResponse:
        return CompareResponse(
            analysis=[self._manual_check(p, "AI unavailable - check search results below") for p in products],
            products=products,
            fallback=True,
        )

    def _raw_search(self, products: list[ProductResult]) -> CompareResponse:
        analysis = []
        for p in products:
            first = p.web_results[0] if p.web_results else None
            item = self._manual_check(p, "Click to compare prices")
            item.retailer_url = first.url if first else None
            item.retailer = first.site if first and first.site else "Search"
            analysis.append(item)
        return CompareResponse(analysis=analysis, products=products, raw_search=True)

    def _merge(self, payload: dict, products: list[ProductResult]) -> CompareResponse:
        by_index = {p.index: p for p in products}
        analysis = []
        for entry in payload["analysis"]:
            if not isinstance(entry, dict):
                logger.warning("Skipping non-object analysis entry: %r", entry)
                continue

            product = by_index.get(_entry_index(entry))
            if product is None:
                logger.warning("Dropping analysis for unknown product index %r", entry.get("index"))
                continue

            try:
                item = PriceAnalysisItem.model_validate(entry)
            except ValidationError:
                logger.warning("Unreadable analysis for product %s: %r", product.index, entry)
                analysis.append(self._manual_check(product, "Could not read price analysis - check search results below"))
                continue

            item.index = product.index
            item.web_results = product.web_results
            item.original_title = product.original_title
            if item.refurb_price is None:
                item.refurb_price = product.refurb_price
            item = apply_savings(item)
            if not item.verdict:
                item.verdict = VERDICT_MANUAL
            analysis.append(item)

        top_pick = None
        if isinstance(payload.get("topPick"), dict):
            try:
                top_pick = TopPick.model_validate(payload["topPick"])
            except ValidationError:
                logger.warning("Ignoring malformed topPick: %r", payload["topPick"])

        summary = payload.get("summary")
        return CompareResponse(
            analysis=analysis,
            top_pick=top_pick,
            summary=summary if isinstance(summary, str) else "",
            products=products,
            source=f"brave+{self.completion.backend}",
        )

    async def reconcile(self, products: list[CompareProductInput], query: str | None = None) -> CompareResponse:
        products = products[:self.config.max_compare_items]
        results = await self._gather_results(products)
        logger.info("Comparing %d products (query=%r)", len(results), query)

        try:
            text = await self.completion.complete(SYSTEM_PROMPT, self.build_prompt(results))
        except CompletionError:
            logger.warning("Completion unavailable, returning search results only")
            return self._unavailable(results)

        decoded = decode_llm_json(text)
        if not decoded.ok or not isinstance(decoded.data, dict) or not isinstance(decoded.data.get("analysis"), list):
            logger.warning("Completion answer was not usable JSON (%s)", decoded.kind)
            return self._raw_search(results)

        return self._merge(decoded.data, results)
