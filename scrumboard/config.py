from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Основные настройки API
    project_name: str = "Scrumboard"
    api_v1_str: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # Hosted backend (row API + realtime)
    backend_url: str
    backend_api_key: str
    backend_timeout: float = 10.0
    backend_retry_attempts: int = 3
    backend_retry_backoff: float = 0.5
    realtime_url: Optional[str] = None
    realtime_heartbeat_seconds: float = 30.0

    # Local client-session store
    database_url: str = "sqlite+aiosqlite:///./scrumboard.db"
    database_echo: bool = False

    # Tokens
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    default_theme: str = "dark"
    log_level: str = "DEBUG"

    class Config:
        env_file = ".env"

    @property
    def rest_url(self) -> str:
        return f"{self.backend_url.rstrip('/')}/rest/v1"

    @property
    def websocket_url(self) -> str:
        """Realtime endpoint; derived from backend_url when not configured."""
        if self.realtime_url:
            return self.realtime_url
        base = self.backend_url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return f"{base}/realtime/v1/websocket"


settings = Settings()
