from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Discord OAuth
    discord_client_id: str = ""
    discord_client_secret: str = ""
    discord_scope: str = "identify email"

    # App
    app_base_url: str = "http://localhost:8000"
    landing_path: str = "/"

    # Database
    database_path: str = "./data/guildhub.db"

    # Logging
    log_level: str = "info"

    # Sessions
    session_cookie_name: str = "guildhub_session"
    session_ttl_hours: int = 24

    # CORS
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def secure_cookies(self) -> bool:
        return not self.app_base_url.startswith("http://localhost")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
