from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10-18.v1"
    database_url: str = "sqlite:///./rentfolio.db"

    # ---- Logging ----
    log_level: str = "INFO"
    log_format: str = "json"  # json|text
    httpx_log_level: str = "WARNING"
    sql_log_level: str = "WARNING"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- JWT cookie ----
    jwt_secret: str = DEV_JWT_SECRET
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days
    jwt_cookie_name: str = "rentfolio_jwt"
    jwt_cookie_secure: int = 0
    jwt_cookie_samesite: str = "lax"

    # ---- Password hashing ----
    pbkdf2_iterations: int = 210_000

    # ---- Remote spreadsheet (Google Sheets v4) ----
    sheets_spreadsheet_id: str | None = None
    sheets_base_url: str = "https://sheets.googleapis.com/v4/spreadsheets"

    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_refresh_token: str | None = None
    google_access_token: str | None = None
    google_token_url: str = "https://oauth2.googleapis.com/token"

    # ---- Sync ----
    sync_enabled: bool = True
    sync_debounce_seconds: float = 2.5
    sync_http_timeout_seconds: float = 20.0

    # ---- Local cache keys ----
    local_cache_key: str = "rentfolio_data"
    tombstone_cache_key: str = "rentfolio_tombstones"

    # ---- Bootstrap ----
    seed_demo_data: bool = True
    bootstrap_admin_password: str = "admin123"

    def sheets_configured(self) -> bool:
        return bool(self.sync_enabled and self.sheets_spreadsheet_id)

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if self.jwt_secret == DEV_JWT_SECRET:
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
