"""
Binary EN/ES language detection for incoming chat messages.

Heuristic only: Spanish diacritics / inverted punctuation, or any common
Spanish function word or medical term as a whole word. Everything else is
English; the detector never answers "unknown".
"""

import re
from typing import Optional

from infohealth.models.routing import Language

_SPANISH_CHARS = re.compile(r"[áéíóúñü¿¡]", re.IGNORECASE)

SPANISH_WORDS = (
    "el", "la", "los", "las", "un", "una", "de", "del", "al", "que", "y",
    "para", "por", "con", "sin", "cómo", "qué", "cuándo", "dónde", "porque",
    "tengo", "dolor", "neuropatía", "diabética", "síntomas",
)

_SPANISH_WORD = re.compile(
    r"\b(?:" + "|".join(re.escape(w) for w in SPANISH_WORDS) + r")\b",
    re.IGNORECASE,
)


def detect_language(text: Optional[str]) -> Language:
    if not text:
        return Language.en
    if _SPANISH_CHARS.search(text) or _SPANISH_WORD.search(text):
        return Language.es
    return Language.en
