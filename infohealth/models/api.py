from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict

from infohealth.models.routing import ProviderChoice, Language, ChatMode


def _scalar_to_str(v):
    # Numbers and booleans sent as free text are taken at face value.
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (int, float)):
        return str(v)
    return v

class Preference(BaseModel):
    provider: ProviderChoice = Field(ProviderChoice.auto, description="auto | openai | anthropic | gemini")
    lang: Optional[Language] = Field(None, description="Target language; unset → detected from the message")

    @field_validator("provider", mode="before")
    @classmethod
    def _lower_provider(cls, v):
        if v is None or v == "":
            return ProviderChoice.auto
        return v.lower() if isinstance(v, str) else v

    @field_validator("lang", mode="before")
    @classmethod
    def _known_lang(cls, v):
        # Anything other than en/es counts as "no preference".
        if isinstance(v, str) and v.lower() in ("en", "es"):
            return v.lower()
        return None

class ChatRequest(BaseModel):
    message: str = Field(..., description="The user's chat message")
    specialty: str = Field("General", description="Free-text specialty context")
    prefer: Preference = Field(default_factory=Preference)

    @field_validator("message")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message required")
        return v

    @field_validator("specialty", mode="before")
    @classmethod
    def _default_specialty(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return "General"
        return _scalar_to_str(v)

    @field_validator("prefer", mode="before")
    @classmethod
    def _default_prefer(cls, v):
        return v if v is not None else {}

class ChatResponse(BaseModel):
    text: str
    provider: str
    ms: Optional[float] = None
    lang: Optional[Language] = None
    mode: Optional[ChatMode] = None
    model: Optional[str] = None
    error: Optional[str] = None

class HealthResponse(BaseModel):
    status: str = "ok"
    expects: str
    hasOpenAI: bool
    hasAnthropic: bool
    hasGemini: bool
    models: Dict[str, str]

class EnhanceRequest(BaseModel):
    base: str = Field("", description="Reference guidance to expand")
    topic: str = Field("", description="Education topic, e.g. hypertension")
    lang: Optional[Language] = None

    @field_validator("base", "topic", mode="before")
    @classmethod
    def _coerce_text(cls, v):
        return "" if v is None else _scalar_to_str(v)

    @field_validator("lang", mode="before")
    @classmethod
    def _known_lang(cls, v):
        return v.lower() if isinstance(v, str) and v.lower() in ("en", "es") else None

class EnhanceResponse(BaseModel):
    enhanced: str
    provider: str
