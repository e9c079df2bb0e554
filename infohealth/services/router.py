"""
Provider Fallback Routing Service.

Routing logic:
  1. Resolve target language (explicit preference, else detected from the message)
  2. Build the system directive (chat or translate mode)
  3. Resolve the try-order:
     - auto → every configured provider, OpenAI → Gemini → Anthropic
     - explicit → that provider first, then the remaining configured ones
       (only that provider when STRICT_PROVIDER_PREFERENCE is set)
  4. Try providers strictly in sequence, first success wins
  5. Nothing succeeded → localized fallback message, never an HTTP error

The whole routing call shares one deadline; providers left when it passes
are skipped. There is no state shared between requests.
"""

import asyncio
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from infohealth.adapters.base import BaseModelAdapter, ProviderError
from infohealth.adapters.openai import OpenAIAdapter
from infohealth.adapters.anthropic import AnthropicAdapter
from infohealth.adapters.gemini import GeminiAdapter
from infohealth.models.api import ChatRequest
from infohealth.models.routing import (
    ERROR, FALLBACK, ChatMode, ChatResult, Language, Provider,
    ProviderChoice, ProviderKeys,
)
from infohealth.services.language import detect_language
from infohealth.services.prompts import (
    DEFAULT_SPECIALTY, build_directive, build_translation_directive,
    detect_translate_intent, resolve_translation_target,
)

logger = logging.getLogger("routing_service")

FALLBACK_MESSAGES = {
    Language.en: "I couldn’t reach any AI providers right now. Please try again or tap Home to view reference content.",
    Language.es: "No pude contactar a los servicios de IA en este momento. Intente de nuevo o toque 'Inicio' para ver contenido de referencia.",
}

ERROR_MESSAGES = {
    Language.en: "I hit an unexpected error. Please try again in a moment.",
    Language.es: "Ocurrió un error inesperado. Intente de nuevo en un momento.",
}

ProviderCall = Callable[[Provider, float], Awaitable[Dict[str, Any]]]


# ─── Try-order ──────────────────────────────────────────

def resolve_try_order(
    choice: ProviderChoice,
    keys: ProviderKeys,
    strict: bool = False,
) -> Tuple[List[Provider], List[ProviderError]]:
    """
    Returns (order, skipped). Providers without a key never enter the order;
    an explicitly preferred provider without one is reported in `skipped`.
    """
    configured = keys.configured()
    choice = ProviderChoice(choice)

    if choice == ProviderChoice.auto:
        return configured, []

    preferred = Provider(choice.value)
    skipped: List[ProviderError] = []
    order: List[Provider] = []

    if keys.is_configured(preferred):
        order.append(preferred)
    else:
        skipped.append(ProviderError(preferred, "API key not configured"))

    if not strict:
        order.extend(p for p in configured if p != preferred)

    return order, skipped


# ─── Sequential fallback ────────────────────────────────

@dataclass
class FallbackOutcome:
    provider: Optional[Provider] = None
    result: Optional[Dict[str, Any]] = None
    failures: List[ProviderError] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.provider is not None

    @property
    def last_error(self) -> Optional[ProviderError]:
        return self.failures[-1] if self.failures else None


async def run_fallback(order: List[Provider], call: ProviderCall, deadline: float) -> FallbackOutcome:
    """
    Try each provider in `order` until one returns. Never concurrent.

    `deadline` is a time.monotonic() timestamp; each call gets whatever time
    is left, and providers reached after it are skipped.
    """
    outcome = FallbackOutcome()

    for provider in order:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.warning(f"[Routing] ⏱ deadline passed, skipping {provider.value}")
            outcome.failures.append(ProviderError(provider, "skipped: request deadline exceeded"))
            continue

        try:
            logger.info(f"[Routing] Attempting {provider.value} ({remaining:.1f}s left)")
            result = await asyncio.wait_for(call(provider, remaining), timeout=remaining)
        except ProviderError as e:
            logger.error(f"[Routing] ✗ {e}")
            outcome.failures.append(e)
            continue
        except asyncio.TimeoutError as e:
            err = ProviderError(provider, f"timed out after {remaining:.1f}s")
            err.__cause__ = e
            logger.error(f"[Routing] ✗ {err}")
            outcome.failures.append(err)
            continue
        except Exception as e:
            err = ProviderError(provider, f"{type(e).__name__}: {e}")
            err.__cause__ = e
            logger.error(f"[Routing] ✗ {provider.value} failed unexpectedly: {e}")
            outcome.failures.append(err)
            continue

        outcome.provider = provider
        outcome.result = result
        return outcome

    return outcome


# ─── Routing Service ───────────────────────────────────

def build_adapters(settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> Dict[Provider, BaseModelAdapter]:
    return {
        Provider.openai: OpenAIAdapter(settings.OPENAI_MODEL, settings.OPENAI_BASE_URL, transport=transport),
        Provider.anthropic: AnthropicAdapter(
            settings.ANTHROPIC_MODEL,
            settings.ANTHROPIC_BASE_URL,
            api_version=settings.ANTHROPIC_VERSION,
            transport=transport,
        ),
        Provider.gemini: GeminiAdapter(settings.GEMINI_MODEL, settings.GEMINI_BASE_URL, transport=transport),
    }


class RoutingService:
    def __init__(
        self,
        keys: ProviderKeys,
        adapters: Dict[Provider, BaseModelAdapter],
        deadline_seconds: float = 45.0,
        strict_preference: bool = False,
        temperature: Optional[float] = 0.3,
        max_tokens: Optional[int] = 800,
    ):
        self.keys = keys
        self.adapters = adapters
        self.deadline_seconds = deadline_seconds
        self.strict_preference = strict_preference
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "RoutingService":
        return cls(
            keys=settings.provider_keys(),
            adapters=build_adapters(settings, transport=transport),
            deadline_seconds=settings.REQUEST_DEADLINE_SECONDS,
            strict_preference=settings.STRICT_PROVIDER_PREFERENCE,
            temperature=settings.TEMPERATURE,
            max_tokens=settings.MAX_TOKENS,
        )

    def provider_call(self, prompt: str, system_prompt: str, **params) -> ProviderCall:
        """Bind one request's prompt/directive into a call usable by run_fallback."""
        params.setdefault("temperature", self.temperature)
        params.setdefault("max_tokens", self.max_tokens)

        async def call(provider: Provider, timeout: float) -> Dict[str, Any]:
            return await self.adapters[provider].generate(
                api_key=self.keys.get(provider),
                prompt=prompt,
                system_prompt=system_prompt,
                timeout=timeout,
                **params,
            )

        return call

    async def route_request(self, request: ChatRequest) -> ChatResult:
        """
        Routes one chat message. Always returns a ChatResult: a provider's
        reply, the `fallback` apology, or the `error` apology.
        """
        start_time = time.monotonic()
        reply_language = Language.en

        try:
            prefer = request.prefer
            detected = detect_language(request.message)
            reply_language = Language(prefer.lang or detected)
            specialty = request.specialty or DEFAULT_SPECIALTY

            if detect_translate_intent(request.message):
                mode = ChatMode.translate
                language = resolve_translation_target(prefer.lang, detected)
                system_prompt = build_translation_directive(language)
            else:
                mode = ChatMode.chat
                language = reply_language
                system_prompt = build_directive(language, specialty)

            order, skipped = resolve_try_order(prefer.provider, self.keys, strict=self.strict_preference)
            logger.info(
                f"[Routing] prefer={prefer.provider.value} mode={mode.value} lang={language.value} "
                f"order=[{', '.join(p.value for p in order)}]"
            )

            outcome = await run_fallback(
                order,
                self.provider_call(request.message, system_prompt),
                deadline=start_time + self.deadline_seconds,
            )
            failures = skipped + outcome.failures
            latency_ms = (time.monotonic() - start_time) * 1000

            if not outcome.succeeded:
                last_error = failures[-1] if failures else None
                logger.critical(f"[Routing] All providers exhausted. last_error={last_error}")
                return ChatResult(
                    text=FALLBACK_MESSAGES[reply_language],
                    provider=FALLBACK,
                    elapsed_ms=latency_ms,
                    language=reply_language,
                    mode=mode,
                    error=str(last_error or ""),
                    failures=failures,
                )

            logger.info(
                f"[Routing] ✓ {outcome.provider.value} | {latency_ms:.0f}ms | "
                f"{len(failures)} failed before"
            )
            return ChatResult(
                text=outcome.result["response"],
                provider=outcome.provider.value,
                elapsed_ms=latency_ms,
                language=language,
                mode=mode,
                model=outcome.result.get("model"),
                failures=failures,
            )

        except Exception as e:
            logger.exception("[Routing] Unexpected error while routing")
            return ChatResult(
                text=ERROR_MESSAGES[reply_language],
                provider=ERROR,
                elapsed_ms=(time.monotonic() - start_time) * 1000,
                language=reply_language,
                error=str(e),
            )
