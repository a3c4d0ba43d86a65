"""
Application configuration settings
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Storage
    data_dir: Path = Path("data")
    reports_file: Optional[Path] = None
    redemptions_file: Optional[Path] = None
    points_file: Optional[Path] = None
    upload_dir: Optional[Path] = None
    max_upload_bytes: int = 10 * 1024 * 1024

    # Admin credentials (hashed once when the auth gate is built)
    admin_user: str = "admin"
    admin_pass: str = "IAMADMIN"
    jwt_secret: str = "dev_secret_changeme"
    jwt_algorithm: str = "HS256"
    token_expire_hours: int = 12

    # Awards
    base_award: int = 50
    verify_award: int = 100

    # Client-side replication
    remote_base_url: Optional[str] = None
    remote_timeout_seconds: float = 5.0

    # Application
    allowed_origins: str = "*"
    log_level: str = "INFO"

    def get_allowed_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(',') if origin.strip()]

    def reports_path(self) -> Path:
        return self.reports_file or self.data_dir / "reports.json"

    def redemptions_path(self) -> Path:
        return self.redemptions_file or self.data_dir / "redemptions.json"

    def points_path(self) -> Path:
        return self.points_file or self.data_dir / "points.json"

    def uploads_path(self) -> Path:
        return self.upload_dir or self.data_dir / "uploads"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
