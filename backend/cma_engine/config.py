from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./cma_engine.db"
    log_level: str = "INFO"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Sales history source ----
    sales_source: str = "db"  # db|http
    sales_source_base_url: str = "https://sales-data.local/v1"
    sales_source_api_key: str | None = None
    sales_source_timeout_seconds: float = 10.0

    # ---- Valuation ----
    fallback_price_per_sqft: int = 250
    default_max_comparables: int = 6
    comparable_window_months: int = 12
    insight_window_months: int = 36
    insight_max_buckets: int = 12
    synthetic_confidence_factor: float = 0.45

    # ---- Report lifecycle ----
    stale_report_minutes: int = 30

    # No auth here: callers pass X-User-Id, or this id is used.
    default_user_id: int = 1

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        source = (self.sales_source or "db").strip().lower()
        if source not in ("db", "http"):
            raise ValueError(f"sales_source must be 'db' or 'http', got {self.sales_source!r}")
        object.__setattr__(self, "sales_source", source)

        if is_prod:
            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
