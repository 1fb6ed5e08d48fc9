"""Translate user-facing facets into the Browse API ``filter`` grammar."""

# marketplaces that list graded refurbished conditions (certified/excellent/very good/good)
REFURBISHED_MARKETPLACES = frozenset({"EBAY_US", "EBAY_AU"})

MARKETPLACE_CURRENCY: dict[str, str] = {
    "EBAY_US": "USD",
    "EBAY_CA": "CAD",
    "EBAY_GB": "GBP",
    "EBAY_DE": "EUR",
    "EBAY_FR": "EUR",
    "EBAY_IT": "EUR",
    "EBAY_ES": "EUR",
    "EBAY_NL": "EUR",
    "EBAY_BE": "EUR",
    "EBAY_AT": "EUR",
    "EBAY_CH": "CHF",
    "EBAY_IE": "EUR",
    "EBAY_PL": "PLN",
    "EBAY_AU": "AUD",
    "EBAY_HK": "HKD",
    "EBAY_SG": "SGD",
    "EBAY_MY": "MYR",
    "EBAY_PH": "PHP",
    "EBAY_TW": "TWD",
    "EBAY_MOTORS_US": "USD",
}

POPULAR_BRANDS: dict[str, str] = {
    "apple": "Apple",
    "samsung": "Samsung",
    "sony": "Sony",
    "microsoft": "Microsoft",
    "hp": "HP",
    "dell": "Dell",
    "lenovo": "Lenovo",
    "canon": "Canon",
    "nikon": "Nikon",
    "nintendo": "Nintendo",
    "bose": "Bose",
    "dyson": "Dyson",
}

SELLER_REFURBISHED = ("2500",)

# facet -> (graded marketplace codes, codes everywhere else)
CONDITION_CODES: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "refurbished": (("2000", "2010", "2020", "2030", "2500"), SELLER_REFURBISHED),
    "deals": (("2000", "2010", "2020", "2030", "2500"), SELLER_REFURBISHED),
    "certified_refurbished": (("2000",), SELLER_REFURBISHED),
    "excellent_refurbished": (("2010",), SELLER_REFURBISHED),
    "very_good_refurbished": (("2020",), SELLER_REFURBISHED),
    "good_refurbished": (("2030",), SELLER_REFURBISHED),
    "new": (("1000",), ("1000",)),
    "new_plus_open_box": (("1000", "1500"), ("1000", "1500")),
    "used": (("3000", "4000", "5000", "6000"), ("3000", "4000", "5000", "6000")),
    "open_box": (("1500",), ("1500",)),
}

BUYING_OPTIONS = frozenset({"FIXED_PRICE", "AUCTION", "BEST_OFFER"})


def supports_refurbished(marketplace: str) -> bool:
    return marketplace in REFURBISHED_MARKETPLACES


def currency_for(marketplace: str) -> str:
    return MARKETPLACE_CURRENCY.get(marketplace, "USD")


def normalize_brands(brands: list[str]) -> list[str]:
    return [POPULAR_BRANDS.get(b.lower(), b) for b in brands]


def _format_bound(value: float | None) -> str:
    if value is None:
        return ""
    return f"{value:f}".rstrip("0").rstrip(".") or "0"


def build_filters(
    conditions: str,
    supports_refurbished: bool,
    min_price: float | None = None,
    max_price: float | None = None,
    buying_options: str = "",
    free_shipping: bool = False,
    currency: str = "",
) -> str:
    """Build the comma-joined filter expression. Unknown facets add nothing."""
    filters: list[str] = []

    codes = CONDITION_CODES.get(conditions)
    if codes:
        graded, fallback = codes
        chosen = graded if supports_refurbished else fallback
        filters.append(f"conditionIds:{{{'|'.join(chosen)}}}")

    if min_price is not None or max_price is not None:
        low = _format_bound(min_price) or "0"
        filters.append(f"price:[{low}..{_format_bound(max_price)}]")
        if currency:
            filters.append(f"priceCurrency:{currency}")

    if buying_options in BUYING_OPTIONS:
        filters.append(f"buyingOptions:{{{buying_options}}}")

    if free_shipping:
        filters.append("maxDeliveryCost:0")

    return ",".join(filters)
