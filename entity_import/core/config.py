from typing import List, Optional

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./entity_import.db"
    log_level: str = "INFO"

    # Comma-separated browser origins allowed to call the collaborator
    allowed_origins: str = "http://localhost:5173,http://localhost:3000"

    # Remote collaborator used by the import pipeline
    api_base_url: str = "http://localhost:8000"
    request_timeout_seconds: Optional[float] = None  # None: no client-enforced timeout

    # Headers produced for blank spreadsheet columns start with this token
    empty_header_prefix: str = "__EMPTY"

    # Transient notification lifetimes (milliseconds)
    error_notification_ms: int = 4000
    warning_notification_ms: int = 2000

    review_name_display_length: int = 30

    # Notifications kept for the host after they dismiss themselves
    notification_history_size: int = 50

    model_config = ConfigDict(env_file=".env", extra="ignore")

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


settings = Settings()
