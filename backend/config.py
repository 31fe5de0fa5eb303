from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # "memory" keeps every game in-process (tests, local play); "firestore" uses GCP
    store_backend: str = "memory"
    google_cloud_project: str = ""
    google_application_credentials: str = ""
    firestore_emulator_host: Optional[str] = None
    games_collection: str = "games"

    # Host-side auto-advance: wait this long after the last submission lands
    # before resolving, so near-simultaneous writes are all visible.
    round_process_delay: float = 1.0
    host_auto_process: bool = True
    # Require exactly REQUIRED_PLAYER_COUNT players at start instead of MIN_PLAYERS+
    enforce_player_count: bool = False

    # CORS origins. Set ALLOWED_ORIGINS env var for production (comma-separated)
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    # Extra production origin (e.g. Cloud Run URL); appended to allowed_origins
    extra_origin: str = ""
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )


settings = Settings()
