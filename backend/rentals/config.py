from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10-18.v1"
    database_url: str = "sqlite:///./rentals.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth ----
    auth_mode: str = "dev"  # dev|jwt
    dev_auto_provision: bool = True
    dev_header_user_email: str = "X-User-Email"
    dev_header_user_role: str = "X-User-Role"
    dev_default_role: str = "supply_admin"

    jwt_secret: str = "dev-change-me"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days
    jwt_cookie_name: str = "rentals_jwt"

    # ---- Supabase Storage ----
    supabase_url: str = "http://localhost:54321"
    supabase_service_role_key: str | None = None
    storage_restricted_bucket: str = "properties-restricted-docs"
    storage_public_bucket: str = "properties-public-docs"
    storage_leads_bucket: str = "leads-restricted-docs"
    signed_url_ttl_seconds: int = 315_360_000  # 10 years
    storage_timeout_seconds: float = 30.0

    # ---- Workflow ----
    stage_expiry_days: int = 30
    lead_expiry_days: int = 14

    # ---- Celery ----
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
