"""
Patient-education enhancement.

Expands reference guidance for a small allow-list of topics through the
same sequential provider fallback the chat router uses. When no provider
answers, the (clamped) base guidance is returned unchanged.
"""

import time
import logging
from typing import List

from infohealth.models.api import EnhanceRequest, EnhanceResponse
from infohealth.models.routing import Language, Provider
from infohealth.services.prompts import (
    ENHANCE_MAX_BASE_CHARS, ENHANCE_SYSTEM_PROMPT, build_enhance_prompt,
)
from infohealth.services.router import RoutingService, run_fallback

logger = logging.getLogger("enhance_service")

ENHANCE_TOPICS = frozenset({"hypertension", "cholesterol", "asthma", "diabetes"})

ENHANCE_ORDER = (Provider.openai, Provider.anthropic, Provider.gemini)

NO_PROVIDER = "none"


class EnhanceService:
    def __init__(self, routing: RoutingService, temperature: float = 0.4, max_tokens: int = 400):
        self.routing = routing
        self.temperature = temperature
        self.max_tokens = max_tokens

    def try_order(self) -> List[Provider]:
        return [p for p in ENHANCE_ORDER if self.routing.keys.is_configured(p)]

    async def enhance(self, request: EnhanceRequest) -> EnhanceResponse:
        topic = request.topic.strip().lower()
        if topic not in ENHANCE_TOPICS:
            logger.info(f"[Enhance] topic '{topic}' not eligible, returning base")
            return EnhanceResponse(enhanced=request.base, provider=NO_PROVIDER)

        base = request.base[:ENHANCE_MAX_BASE_CHARS]
        prompt = build_enhance_prompt(request.topic, base, request.lang or Language.en)

        outcome = await run_fallback(
            self.try_order(),
            self.routing.provider_call(
                prompt,
                ENHANCE_SYSTEM_PROMPT,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            ),
            deadline=time.monotonic() + self.routing.deadline_seconds,
        )

        if not outcome.succeeded:
            logger.warning(f"[Enhance] no provider succeeded, last_error={outcome.last_error}")
            return EnhanceResponse(enhanced=base, provider=NO_PROVIDER)

        return EnhanceResponse(enhanced=outcome.result["response"], provider=outcome.provider.value)
