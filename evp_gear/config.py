"""Configuration management for EVP-Gear."""

import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root
_project_root = Path(__file__).parent.parent
load_dotenv(_project_root / ".env")


@dataclass
class Config:
    """Application configuration."""

    # Gemini configuration
    gemini_api_key: str
    gemini_model: str
    gemini_base_url: str

    # Storage
    data_dir: Path

    # Optional settings with defaults
    request_timeout: float = 30.0
    pack_session_ttl_minutes: int = 30
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        # API_KEY is accepted for compatibility with older .env files
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", "")

        data_dir = os.getenv("EVP_GEAR_DATA_DIR")

        return cls(
            gemini_api_key=api_key.strip(),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            gemini_base_url=os.getenv(
                "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
            ).rstrip("/"),
            data_dir=Path(data_dir) if data_dir else _project_root / ".data",
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
            pack_session_ttl_minutes=int(os.getenv("PACK_SESSION_TTL_MINUTES", "30")),
            host=os.getenv("HOST", "127.0.0.1"),
            port=int(os.getenv("PORT", "8000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def ai_enabled(self) -> bool:
        """Check if the Gemini collaborator has credentials."""
        return bool(self.gemini_api_key)


# Global config instance
config = Config.from_env()
