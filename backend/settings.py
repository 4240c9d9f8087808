from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "HospitoFind API"
    debug: bool = False
    production: bool = False
    host: str = "0.0.0.0"
    port: int = 5000
    # CORS: "*" for dev; in production set to comma-separated origins, e.g. "https://hospitofind.online"
    cors_origins: str = "*"
    db_path: str = "data/hospitofind.db"  # Path relative to backend root, or absolute
    frontend_url: str = "http://localhost:5173"  # Used in emails and sitemap page links
    site_url: str = "https://hospitofind.online"  # Public host serving the sitemap files

    # JWT. Set both secrets in production; tokens signed with the defaults are worthless outside dev.
    access_token_secret: str = "dev-access-secret-change-me-in-production"
    refresh_token_secret: str = "dev-refresh-secret-change-me-in-production"
    access_token_minutes: int = 15
    refresh_token_days: int = 7
    cookie_domain: str = ""  # e.g. ".hospitofind.online"; only applied in production

    # Federated login (Auth0). All three required to enable POST /auth/auth0.
    auth0_jwks_uri: str = ""
    auth0_audience: str = ""
    auth0_issuer: str = ""

    # Upstream providers
    mapbox_token: str = ""  # Geocoding; empty disables geocoding (coordinates stay null)
    google_places_api_key: str = ""  # Only used by scripts/import_places.py
    resend_api_key: str = ""  # Transactional email; empty disables sending
    mail_from: str = "HospitoFind <onboarding@hospitofind.online>"

    rate_limit_enabled: bool = True
    login_rate_limit: str = "10/15minutes"

    proximity_cache_ttl_seconds: int = 600
    proximity_cache_max_entries: int = 1000

    @property
    def auth0_enabled(self) -> bool:
        return bool(self.auth0_jwks_uri and self.auth0_audience and self.auth0_issuer)


def get_settings() -> Settings:
    return Settings()
