"""
System directive construction.

Two mutually exclusive modes:
  - chat: educational medical assistant, language + specialty context
  - translate: bilingual medical translator, output only the translation

Directives are always sent as system-level instructions, separate from
the user's message.
"""

import re
from typing import Optional

from infohealth.models.routing import Language

DEFAULT_SPECIALTY = "General"

SAFETY_PREAMBLE = (
    "You are a careful medical information assistant. "
    "Educational only; not medical advice. "
    "Do not diagnose or prescribe, and encourage follow-up with a clinician when appropriate."
)

LANGUAGE_INSTRUCTIONS = {
    Language.es: "Responde en español claro y profesional.",
    Language.en: "Respond in concise, plain English.",
}

_LANGUAGE_NAMES = {
    Language.es: "Spanish",
    Language.en: "English",
}

_TRANSLATE_INTENT = re.compile(
    r"\btranslate\b"
    r"|\btradu(?:ce|cción)\b"
    r"|\bqu[eé] significa\b"
    r"|\bwhat does .* mean\b"
    r"|\bdefine\b"
    r"|\bdefinir\b",
    re.IGNORECASE,
)

ENHANCE_SYSTEM_PROMPT = "You write safe, non-diagnostic patient education."

# Base guidance beyond this is cut before it reaches a provider.
ENHANCE_MAX_BASE_CHARS = 6000


def build_directive(language: Language, specialty: Optional[str] = None) -> str:
    """Safety preamble, then language instruction, then specialty context."""
    specialty = (specialty or "").strip() or DEFAULT_SPECIALTY
    return " ".join([
        SAFETY_PREAMBLE,
        LANGUAGE_INSTRUCTIONS[Language(language)],
        f"Specialty context: {specialty}.",
    ])


def detect_translate_intent(message: str) -> bool:
    return bool(_TRANSLATE_INTENT.search(message or ""))


def resolve_translation_target(explicit: Optional[Language], detected: Language) -> Language:
    """Explicit target wins; otherwise translate into the other language."""
    if explicit is not None:
        return Language(explicit)
    return Language.en if detected == Language.es else Language.es


def build_translation_directive(target: Language) -> str:
    name = _LANGUAGE_NAMES[Language(target)]
    return (
        "You are a precise bilingual medical translator. "
        f"Translate the user text into **{name}** only. "
        "Preserve meaning and medical nuance. "
        "Output ONLY the translation, no preface."
    )


def build_enhance_prompt(topic: str, base: str, language: Language) -> str:
    lang_line = (
        "Provide the answer in Spanish."
        if language == Language.es
        else "Provide the answer in English."
    )
    lines = [
        "You are a medical education assistant. Expand and clarify the following "
        f'patient-facing educational guidance for the topic "{topic}".',
        "Rules:",
        "- Educational only. Do NOT diagnose, prescribe, or provide individualized medical instructions.",
        "- Use clear, plain language suitable for adults with average health literacy.",
        "- Include practical self-care tips that are generally safe and widely accepted.",
        "- Encourage patients to follow their clinician's plan and to seek care for red flags.",
        "- Keep it concise (170-220 words).",
        f"- Language: {lang_line}",
        "",
        "Base guidance to enrich:",
        base[:ENHANCE_MAX_BASE_CHARS],
    ]
    return "\n".join(lines)
