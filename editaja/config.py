"""
Configuration module for the edit Aja backend.
Loads settings from .env file and environment variables.
"""

import os
from pathlib import Path
from typing import List

# Try to load .env file
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    with open(_env_path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value


def _as_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


class Settings:
    """Application configuration loaded from environment variables."""

    def __init__(self):
        self.app_name: str = os.getenv("APP_NAME", "edit Aja")
        self.api_version: str = os.getenv("API_VERSION", "v1")
        self.debug: bool = _as_bool(os.getenv("DEBUG", "false"))
        self.environment: str = os.getenv("ENVIRONMENT", "development")
        # "json" for structured lines, "text" for a readable console
        self.log_format: str = os.getenv("LOG_FORMAT", "json").lower()

        # Firebase
        self.firebase_credentials_path: str = os.getenv("FIREBASE_CREDENTIALS_PATH", "")
        self.firebase_web_api_key: str = os.getenv("FIREBASE_WEB_API_KEY", "")

        # Local store (used when no Firebase credentials are present).
        # An empty value keeps the store in memory only.
        self.local_data_dir: str = os.getenv("LOCAL_DATA_DIR", "./data")

        # CORS
        cors_raw = os.getenv("CORS_ORIGINS", "*")
        self.cors_origins: List[str] = [s.strip() for s in cors_raw.split(",") if s.strip()]

        # Public site URL, used for Midtrans redirect callbacks
        self.base_url: str = os.getenv("BASE_URL", "https://editaja.com").rstrip("/")

        # Remote image host
        self.gambar_server_url: str = os.getenv("GAMBAR_SERVER_URL", "https://gambar.editaja.com").rstrip("/")
        self.gambar_api_token: str = os.getenv("GAMBAR_API_TOKEN", "")

        # Viral prompt catalogue browsed from the admin panel
        self.prompt_catalog_url: str = os.getenv("PROMPT_CATALOG_URL", "https://chatgambar.com/api/v1/viral-prompts")
        self.prompt_catalog_image_origin: str = os.getenv("PROMPT_CATALOG_IMAGE_ORIGIN", "https://copasprompt.id").rstrip("/")

        # AI generation (overrides settings/ai.apiKey when set)
        self.ai_api_key: str = os.getenv("AI_API_KEY") or os.getenv("FREEPIK_API_KEY", "")

        # Midtrans (overrides settings/midtrans when set)
        self.midtrans_server_key: str = os.getenv("MIDTRANS_SERVER_KEY", "")
        self.midtrans_client_key: str = os.getenv("MIDTRANS_CLIENT_KEY", "")
        self.midtrans_is_production: bool = _as_bool(os.getenv("MIDTRANS_IS_PRODUCTION", "false"))

        # Uploads
        self.uploads_dir: str = os.getenv("UPLOADS_DIR", "./uploads")
        self.max_upload_size_mb: float = float(os.getenv("MAX_UPLOAD_SIZE_MB", "3"))

        # Feedback notifications
        self.resend_api_key: str = os.getenv("RESEND_API_KEY", "")
        self.feedback_notify_email: str = os.getenv("FEEDBACK_NOTIFY_EMAIL", "")

        # Security
        self.admin_api_key: str = os.getenv("ADMIN_API_KEY", "")
        self.secret_key: str = os.getenv("SECRET_KEY", "editaja-dev-secret")
        self.algorithm: str = os.getenv("ALGORITHM", "HS256")
        self.access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))


_settings = None


def get_settings() -> Settings:
    """Get application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
