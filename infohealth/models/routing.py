"""
Routing domain types shared by the adapters, the router and the API layer.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


class Provider(str, Enum):
    openai = "openai"
    anthropic = "anthropic"
    gemini = "gemini"


class ProviderChoice(str, Enum):
    auto = "auto"
    openai = "openai"
    anthropic = "anthropic"
    gemini = "gemini"


class Language(str, Enum):
    en = "en"
    es = "es"


class ChatMode(str, Enum):
    chat = "chat"
    translate = "translate"


# Sentinel provider ids for results no adapter produced.
FALLBACK = "fallback"
ERROR = "error"

# Fixed auto-routing preference.
AUTO_ORDER: Tuple[Provider, ...] = (Provider.openai, Provider.gemini, Provider.anthropic)


@dataclass(frozen=True)
class ProviderKeys:
    """Credentials per provider, read once at startup. Empty string = absent."""
    openai: str = ""
    anthropic: str = ""
    gemini: str = ""

    def get(self, provider: Provider) -> str:
        return getattr(self, Provider(provider).value)

    def is_configured(self, provider: Provider) -> bool:
        return bool(self.get(provider))

    def configured(self) -> List[Provider]:
        """Configured providers in auto order."""
        return [p for p in AUTO_ORDER if self.is_configured(p)]


@dataclass
class ChatResult:
    text: str
    provider: str
    elapsed_ms: float
    language: Language
    mode: ChatMode = ChatMode.chat
    model: Optional[str] = None
    error: Optional[str] = None
    # Recorded per-provider failures; diagnostic only, never serialized.
    failures: List[Exception] = field(default_factory=list)

    @property
    def fallback_used(self) -> bool:
        return self.provider in (FALLBACK, ERROR) or bool(self.failures)
