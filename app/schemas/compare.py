from typing import Annotated

from pydantic import BeforeValidator, ConfigDict

from app.schemas.base import CamelModel


def parse_money(value):
    """Accept "$1,299.99" or "12%" style strings from the model; unreadable text becomes None."""
    if isinstance(value, str):
        try:
            return float(value.replace("$", "").replace(",", "").replace("%", "").strip())
        except ValueError:
            return None
    return value


def as_text(value):
    # the model answers null or a bare number for labels now and then
    if value is None:
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    return value


Money = Annotated[float | None, BeforeValidator(parse_money)]
Percent = Annotated[int | float | None, BeforeValidator(parse_money)]
Text = Annotated[str, BeforeValidator(as_text)]


class CompareProductInput(CamelModel):
    index: int | None = None
    title: str | None = None
    price: int | float | str | None = None
    condition: str | None = None


class WebResult(CamelModel):
    title: str = ""
    url: str = ""
    description: str = ""
    site: str = ""  # hostname of url


class ProductResult(CamelModel):
    index: int
    original_title: str
    search_query: str
    refurb_price: int | float | str
    condition: str = "Refurbished"
    web_results: list[WebResult] = []


class RetailerPrice(CamelModel):
    retailer: Text = ""
    price: Money = None
    url: str | None = None


class PriceAnalysisItem(CamelModel):
    # the model may add keys of its own; keep them
    model_config = ConfigDict(extra="allow")

    index: int
    product_name: Text = ""
    refurb_price: int | float | str | None = None
    retailer_prices: list[RetailerPrice] | None = None
    lowest_new_price: Money = None
    lowest_retailer: str | None = None
    savings: Money = None
    savings_percent: Percent = None
    verdict: Text = ""
    web_results: list[WebResult] = []
    original_title: str | None = None
    price_note: str | None = None
    retailer_url: str | None = None
    retailer: str | None = None


class TopPick(CamelModel):
    model_config = ConfigDict(extra="allow")

    index: int | None = None
    reason: Text = ""


class CompareResponse(CamelModel):
    success: bool = True
    analysis: list[PriceAnalysisItem] = []
    top_pick: TopPick | None = None
    summary: str | None = None
    products: list[ProductResult] = []
    source: str | None = None
    fallback: bool | None = None
    raw_search: bool | None = None
