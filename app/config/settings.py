from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase project
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # auth admin calls (user provisioning, password changes)

    # Authentication
    auth_cache_ttl_seconds: int = 60
    auth_cache_max_size: int = 500
    min_password_length: int = 6

    # Provisioning
    bulk_upload_max_rows: int = 100
    bulk_upload_rate_limit: str = "5/5minute"
    bulk_upload_temp_password: str = "123456"  # users are forced to change it on first login

    # Notifications
    notification_batch_size: int = 100

    # Access resolution
    access_cache_ttl_seconds: int = 60
    access_cache_max_size: int = 1000

    # HTTP
    app_name: str = "planivo-admin"
    api_prefix: str = "/api/v1"
    cors_origins: str = "http://localhost:5173,http://localhost:8080"
    rate_limit: str = "100/minute"  # slowapi format

    # Runtime
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
