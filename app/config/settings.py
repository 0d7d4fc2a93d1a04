from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    db_schema: str = "public"
    client_info: str = "stokvel-pools-web@1.0.0"  # sent as X-Client-Info on every request
    session_storage_path: str = ".stokvel/session.json"

    # Redirect targets for auth emails
    site_url: str = "http://localhost:5173"
    password_reset_path: str = "/reset-password"

    # App
    app_name: str = "stokvel-pools"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def password_reset_redirect(self) -> str:
        return f"{self.site_url.rstrip('/')}{self.password_reset_path}"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
