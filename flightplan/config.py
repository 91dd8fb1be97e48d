# flightplan/config.py
from typing import Literal
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App
    APP_ENV: Literal["dev", "prod", "staging"] = "dev"

    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"

    # Flight provider
    PROVIDER_BASE_URL: str = "https://www.cleartrip.om"
    PROVIDER_REFERER: str = "https://www.cleartrip.om/flights/international/results"
    ITINERARY_INFO_PATH: str = "/flights/itinerary/{itinerary_id}/info?ancillaryEnabled=true"
    PROVIDER_RETRIES: int = 0  # extra attempts on 5xx / timeouts
    SEARCH_TIMEOUT_SECONDS: float = 20.0
    REVIEW_TIMEOUT_SECONDS: float = 12.0

    # Market
    DEFAULT_CURRENCY: str = "OMR"
    MARKET_DOMAIN: str = "OM"
    DEPARTURE_TZ: str = "Asia/Kolkata"  # bucket reference for DEPARTURE_TIME filters

    # Candidate selection / review
    SELECTION_POLICY: Literal["bounded_list", "best_of_breed"] = "bounded_list"
    REVIEW_MAX_CANDIDATES: int = 2

    # Extras shown with results
    ENABLE_TRAVEL_TIPS: bool = True

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    SESSION_TTL_SECONDS: int = 3600

    # read .env and ignore any extra keys so this doesn't break again
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class MarketConfig(BaseModel):
    """Deployment-specific values shared by search, review and formatting."""
    base_url: str
    currency: str = "OMR"
    domain: str = "OM"
    departure_tz: str = "Asia/Kolkata"
    itinerary_info_path: str = "/flights/itinerary/{itinerary_id}/info?ancillaryEnabled=true"
    referer: str = ""

    @classmethod
    def from_settings(cls, s: Settings) -> "MarketConfig":
        return cls(
            base_url=s.PROVIDER_BASE_URL.rstrip("/"),
            currency=s.DEFAULT_CURRENCY,
            domain=s.MARKET_DOMAIN,
            departure_tz=s.DEPARTURE_TZ,
            itinerary_info_path=s.ITINERARY_INFO_PATH,
            referer=s.PROVIDER_REFERER,
        )

    def itinerary_url(self, itinerary_id: str) -> str:
        return self.base_url + self.itinerary_info_path.format(itinerary_id=itinerary_id)

settings = Settings()
