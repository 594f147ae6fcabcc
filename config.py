"""Health access service settings."""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Origin embedded in the QR deep link ({origin}/scan-health?token=...&petId=...)
    public_base_url: str = "https://petbook.app"

    # Token handshake
    access_token_ttl_minutes: int = 60
    token_bytes: int = 24  # entropy for secrets.token_urlsafe

    # Temporary access windows
    approval_access_ttl_hours: int = 24
    emergency_access_ttl_hours: int = 12

    # Co-authorship: when true, approving a pending record appends a canonical health record
    materialize_approved_records: bool = False

    # In-process realtime bus
    realtime_queue_size: int = 100

    log_level: str = "INFO"

    allowed_origins: List[str] = Field(
        default_factory=lambda: [
            "https://petbook.app",
            "https://petbook.vercel.app",
            *[f"http://localhost:{port}" for port in range(3000, 3007)],
            *[f"http://127.0.0.1:{port}" for port in range(3000, 3007)],
        ]
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
