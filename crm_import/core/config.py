from typing import List

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    debug: bool = True
    log_level: str = "INFO"
    allowed_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Contact RPC backend
    backend_url: str = "http://localhost:8082"
    backend_timeout_seconds: float = 60.0
    auth_token: str = ""  # Static bearer token for the console and unauthenticated API callers

    # CSV selection limits
    upload_max_file_size_mb: int = 10
    preview_row_limit: int = 10
    result_error_display_limit: int = 10

    # Synthetic import progress (percent / milliseconds)
    progress_seed: int = 10
    progress_step: int = 10
    progress_ceiling: int = 90
    progress_interval_ms: int = 200

    model_config = ConfigDict(env_file=".env", extra="ignore")


settings = Settings()
