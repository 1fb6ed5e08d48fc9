from pydantic import Field, model_validator

from app.schemas.base import CamelModel


class Listing(CamelModel):
    id: str
    title: str
    price: float = 0.0
    original_price: float | None = None
    image_url: str
    item_url: str
    condition: str = ""
    savings: float | None = None

    @model_validator(mode="after")
    def _derive_savings(self) -> "Listing":
        # savings only shown when both prices are known and the item is cheaper
        if self.original_price and self.price:
            diff = round(max(self.original_price - self.price, 0), 2)
            self.savings = diff if diff > 0 else None
        else:
            self.savings = None
        return self


class PriceRange(CamelModel):
    min: float | None = None
    max: float | None = None


class AppliedFilters(CamelModel):
    conditions: str
    brands: list[str] = []
    category_id: str = ""
    free_shipping: bool = False
    buying_options: str = "FIXED_PRICE"
    price_range: PriceRange = Field(default_factory=PriceRange)


class SearchResponse(CamelModel):
    items: list[Listing] = []
    total: int = 0
    popular_brands: dict[str, str] = {}
    marketplace: str
    supports_refurbished: bool
    applied_filters: AppliedFilters
    source: str | None = None  # set when listings came from the deals pages
