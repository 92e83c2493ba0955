from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"  # local | staging | production
    APP_NAME: str = "engdesk"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: str = "http://localhost:3000"

    DATABASE_URL: str
    DATABASE_ECHO: bool = False
    # Tables reachable through /api/tables; empty means all of them.
    DATA_TABLES: str = ""

    # Origin serving the invoice print view; empty falls back to the request origin.
    APP_PUBLIC_URL: str = ""
    INVOICE_PRINT_PATH: str = "/financials/invoicing/{invoice_id}/print"

    PDF_MAX_RETRIES: int = 3
    PDF_INITIAL_BACKOFF_MS: int = 1000
    PDF_STAGE_TIMEOUT_MS: int = 60000
    PDF_CHROME_EXECUTABLE: str = ""
    PDF_VIEWPORT_WIDTH: int = 1200
    PDF_VIEWPORT_HEIGHT: int = 800

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def data_tables_list(self) -> List[str]:
        return [t.strip() for t in self.DATA_TABLES.split(",") if t.strip()]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.strip().lower() == "production"

settings = Settings()
