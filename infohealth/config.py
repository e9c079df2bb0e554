from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List

from infohealth.models.routing import ProviderKeys

class Settings(BaseSettings):
    # Empty key = provider not configured, excluded from the try-order.
    OPENAI_API_KEY: str = ""
    ANTHROPIC_API_KEY: str = ""
    GEMINI_API_KEY: str = ""

    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_MODEL: str = "claude-3-haiku-20240307"
    GEMINI_MODEL: str = "gemini-1.5-flash"
    ANTHROPIC_VERSION: str = "2023-06-01"

    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com/v1"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    TEMPERATURE: float = 0.3
    MAX_TOKENS: int = 800

    # ─── Routing Policy ─────────────────────────────────
    # End-to-end deadline for one routing call (seconds). Remaining providers
    # are skipped once it passes.
    REQUEST_DEADLINE_SECONDS: float = 45.0
    # True → an explicit provider preference is tried alone, no fallback.
    STRICT_PROVIDER_PREFERENCE: bool = False

    # Comma separated. Empty → allow every origin.
    ALLOWED_ORIGINS: str = ""

    # Async SQLAlchemy URL for the request log. Empty → log disabled.
    DATABASE_URL: str = ""

    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 10000

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def provider_keys(self) -> ProviderKeys:
        return ProviderKeys(
            openai=self.OPENAI_API_KEY.strip(),
            anthropic=self.ANTHROPIC_API_KEY.strip(),
            gemini=self.GEMINI_API_KEY.strip(),
        )

    def allowed_origin_list(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

@lru_cache
def get_settings():
    return Settings()
