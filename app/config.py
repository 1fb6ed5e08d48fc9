from pathlib import Path

from dotenv import dotenv_values
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

_ENV_FILE = Path.home() / "env" / ".env.dev"
_env_vars = dotenv_values(str(_ENV_FILE)) if _ENV_FILE.exists() else {}


class Settings(BaseSettings):
    app_name: str = "Epic.Deals"
    debug: bool = False
    log_level: str = "INFO"

    # eBay Browse API
    ebay_app_id: str = Field(
        default="", validation_alias=AliasChoices("ebay_app_id", "ebay_client_id")
    )
    ebay_cert_id: str = Field(
        default="", validation_alias=AliasChoices("ebay_cert_id", "ebay_client_secret")
    )
    ebay_identity_url: str = "https://api.ebay.com/identity/v1/oauth2/token"
    ebay_oauth_scope: str = "https://api.ebay.com/oauth/api_scope"
    ebay_browse_url: str = "https://api.ebay.com/buy/browse/v1/item_summary/search"
    ebay_default_category_id: str = "293"
    ebay_timeout: float = 15.0
    ebay_campaign_id: str = "5339117469"
    ebay_mkrid: str = "711-53200-19255-0"
    placeholder_image_url: str = "https://picsum.photos/400/400"
    exclude_new_listings: bool = True

    # deals page scraping
    deals_base_url: str = "https://www.ebay.com"
    deals_timeout: float = 15.0
    deals_placeholder_image_url: str = "https://ir.ebaystatic.com/cr/v/c1/s_1x2.png"

    # price comparison
    brave_api_key: str = ""
    brave_search_url: str = "https://api.search.brave.com/res/v1/web/search"
    brave_timeout: float = 10.0
    completion_backend: str = "openai"  # openai or anthropic
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    completion_timeout: float = 45.0
    max_compare_items: int = 5

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }

    def model_post_init(self, __context):
        # older deployments use the OAuth client names
        if not self.ebay_app_id:
            self.ebay_app_id = _env_vars.get("EBAY_APP_ID") or _env_vars.get("EBAY_CLIENT_ID") or ""
        if not self.ebay_cert_id:
            self.ebay_cert_id = _env_vars.get("EBAY_CERT_ID") or _env_vars.get("EBAY_CLIENT_SECRET") or ""
        if not self.brave_api_key:
            self.brave_api_key = _env_vars.get("BRAVE_API_KEY", "")
        if not self.openai_api_key:
            self.openai_api_key = _env_vars.get("OPENAI_API_KEY", "")
        if not self.anthropic_api_key:
            self.anthropic_api_key = _env_vars.get("ANTHROPIC_API_KEY", "")

    @property
    def completion_api_key(self) -> str:
        if self.completion_backend == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key


settings = Settings()
