from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "crm-tables"

    CORS_ORIGINS: str = "http://localhost:3000"

    BACKEND_BASE_URL: str = "http://localhost:8000/api/v1"
    BACKEND_TIMEOUT_SECONDS: float = 15.0

    DEFAULT_ROWS_PER_PAGE: int = 5
    TABLE_SORT_SCOPE: str = "global"  # global | page

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def table_sort_scope(self) -> str:
        value = str(self.TABLE_SORT_SCOPE or "").strip().lower()
        return value if value in {"global", "page"} else "global"

settings = Settings()
