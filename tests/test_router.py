import time

import httpx
import pytest

from infohealth.adapters.base import ProviderError
from infohealth.models.api import ChatRequest
from infohealth.models.routing import (
    ChatMode, Language, Provider, ProviderChoice, ProviderKeys,
)
from infohealth.services.router import (
    FALLBACK_MESSAGES, RoutingService, resolve_try_order, run_fallback,
)
from helpers import ALL_KEYS, NO_KEYS, make_router, make_stubs


def _request(message="What is hypertension?", **prefer) -> ChatRequest:
    return ChatRequest(message=message, prefer=prefer)


def _called(stubs):
    return [p for p, stub in stubs.items() if stub.calls]


# ======================================================================
# Try-order
# ======================================================================

class TestResolveTryOrder:
    def test_auto_uses_fixed_order(self):
        order, skipped = resolve_try_order(ProviderChoice.auto, ALL_KEYS)
        assert order == [Provider.openai, Provider.gemini, Provider.anthropic]
        assert skipped == []

    @pytest.mark.parametrize("provider", list(Provider))
    def test_auto_single_key(self, provider):
        keys = ProviderKeys(**{provider.value: "k"})
        order, _ = resolve_try_order(ProviderChoice.auto, keys)
        assert order == [provider]

    def test_no_keys_empty(self):
        for choice in ProviderChoice:
            order, _ = resolve_try_order(choice, NO_KEYS)
            assert order == []

    def test_explicit_first_then_remaining(self):
        order, _ = resolve_try_order(ProviderChoice.anthropic, ALL_KEYS)
        assert order == [Provider.anthropic, Provider.openai, Provider.gemini]

    def test_explicit_strict(self):
        order, _ = resolve_try_order(ProviderChoice.gemini, ALL_KEYS, strict=True)
        assert order == [Provider.gemini]

    def test_explicit_without_key_is_skipped(self):
        keys = ProviderKeys(gemini="k")
        order, skipped = resolve_try_order(ProviderChoice.openai, keys)
        assert order == [Provider.gemini]
        assert [e.provider for e in skipped] == [Provider.openai]


# ======================================================================
# Sequential fallback
# ======================================================================

class TestRunFallback:
    @pytest.mark.asyncio
    async def test_stops_at_first_success(self):
        attempts = []

        async def call(provider, timeout):
            attempts.append(provider)
            if provider == Provider.openai:
                raise ProviderError(provider, "HTTP 500: boom")
            return {"response": "ok", "model": "m"}

        order = [Provider.openai, Provider.gemini, Provider.anthropic]
        outcome = await run_fallback(order, call, deadline=time.monotonic() + 5)

        assert outcome.provider == Provider.gemini
        assert attempts == [Provider.openai, Provider.gemini]
        assert [str(e) for e in outcome.failures] == ["openai: HTTP 500: boom"]

    @pytest.mark.asyncio
    async def test_unexpected_exception_recorded_as_provider_error(self):
        async def call(provider, timeout):
            raise KeyError("choices")

        outcome = await run_fallback([Provider.openai], call, deadline=time.monotonic() + 5)
        assert not outcome.succeeded
        assert isinstance(outcome.last_error, ProviderError)
        assert isinstance(outcome.last_error.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_deadline_passed_skips_everything(self):
        attempts = []

        async def call(provider, timeout):
            attempts.append(provider)
            return {"response": "ok"}

        outcome = await run_fallback([Provider.openai, Provider.gemini], call, deadline=time.monotonic() - 1)
        assert attempts == []
        assert not outcome.succeeded
        assert len(outcome.failures) == 2
        assert "deadline" in str(outcome.last_error)

    @pytest.mark.asyncio
    async def test_slow_provider_times_out(self):
        slow = {"delay": 1.0}
        stubs = make_stubs(openai=slow, gemini=slow, anthropic=slow)
        router = make_router(stubs=stubs, deadline_seconds=0.1)

        started = time.monotonic()
        result = await router.route_request(_request())

        assert result.provider == "fallback"
        assert result.failures[0].provider == Provider.openai
        assert "timed out" in str(result.failures[0])
        assert len(result.failures) == 3
        assert time.monotonic() - started < 1.0

    @pytest.mark.asyncio
    async def test_empty_order(self):
        async def call(provider, timeout):
            raise AssertionError("must not be called")

        outcome = await run_fallback([], call, deadline=time.monotonic() + 5)
        assert not outcome.succeeded
        assert outcome.last_error is None


# ======================================================================
# Routing Service
# ======================================================================

class TestRoutingService:
    @pytest.mark.asyncio
    async def test_no_keys_fallback_spanish(self, stubs):
        router = make_router(keys=NO_KEYS, stubs=stubs)
        result = await router.route_request(_request("Tengo dolor de cabeza"))

        assert result.provider == "fallback"
        assert result.text == FALLBACK_MESSAGES[Language.es]
        assert result.language == Language.es
        assert _called(stubs) == []

    @pytest.mark.asyncio
    async def test_no_keys_fallback_english(self, stubs):
        router = make_router(keys=NO_KEYS, stubs=stubs)
        result = await router.route_request(_request())
        assert result.text.startswith("I couldn’t reach any AI providers right now.")
        assert result.language == Language.en

    @pytest.mark.asyncio
    async def test_explicit_openai_only_key(self):
        stubs = make_stubs(openai={"text": "Hypertension is..."})
        router = make_router(keys=ProviderKeys(openai="sk"), stubs=stubs)
        result = await router.route_request(_request(provider="openai"))

        assert result.text == "Hypertension is..."
        assert result.provider == "openai"
        assert result.model == "openai-stub"
        assert result.elapsed_ms >= 0
        assert stubs[Provider.openai].calls[0]["api_key"] == "sk"

    @pytest.mark.asyncio
    async def test_fallback_ordering_records_failures(self):
        stubs = make_stubs(
            openai={"error": "HTTP 500: down"},
            gemini={"error": "HTTP 503: overloaded"},
            anthropic={"text": "Claude answer"},
        )
        router = make_router(stubs=stubs)
        result = await router.route_request(_request())

        assert result.provider == "anthropic"
        assert result.text == "Claude answer"
        assert result.error is None
        assert [e.provider for e in result.failures] == [Provider.openai, Provider.gemini]
        assert result.fallback_used

    @pytest.mark.asyncio
    async def test_all_fail_embeds_last_error(self):
        stubs = make_stubs(
            openai={"error": "HTTP 401: bad key"},
            gemini={"error": "HTTP 500: down"},
            anthropic={"error": "HTTP 529: overloaded"},
        )
        result = await make_router(stubs=stubs).route_request(_request())

        assert result.provider == "fallback"
        assert result.error == "anthropic: HTTP 529: overloaded"
        assert len(result.failures) == 3

    @pytest.mark.asyncio
    async def test_explicit_preference_falls_back(self):
        stubs = make_stubs(gemini={"error": "HTTP 500"})
        result = await make_router(stubs=stubs).route_request(_request(provider="gemini"))
        assert result.provider == "openai"
        assert _called(stubs) == [Provider.openai, Provider.gemini]

    @pytest.mark.asyncio
    async def test_explicit_preference_strict(self):
        stubs = make_stubs(gemini={"error": "HTTP 500"})
        router = make_router(stubs=stubs, strict_preference=True)
        result = await router.route_request(_request(provider="gemini"))
        assert result.provider == "fallback"
        assert _called(stubs) == [Provider.gemini]

    @pytest.mark.asyncio
    async def test_directive_passed_as_system_prompt(self, stubs):
        router = make_router(stubs=stubs)
        await router.route_request(ChatRequest(message="Tengo fiebre", specialty="Pediatría"))

        call = stubs[Provider.openai].calls[0]
        assert call["prompt"] == "Tengo fiebre"
        assert "Responde en español" in call["system_prompt"]
        assert "Specialty context: Pediatría." in call["system_prompt"]
        assert "Tengo fiebre" not in call["system_prompt"]

    @pytest.mark.asyncio
    async def test_explicit_language_wins(self, stubs):
        router = make_router(stubs=stubs)
        result = await router.route_request(_request("Tengo dolor", lang="en"))
        assert result.language == Language.en
        assert "plain English" in stubs[Provider.openai].calls[0]["system_prompt"]

    @pytest.mark.asyncio
    async def test_translate_mode_flips_language(self, stubs):
        router = make_router(stubs=stubs)
        result = await router.route_request(_request("¿Qué significa hipertensión?"))

        assert result.mode == ChatMode.translate
        assert result.language == Language.en
        system_prompt = stubs[Provider.openai].calls[0]["system_prompt"]
        assert "translator" in system_prompt
        assert "**English**" in system_prompt

    @pytest.mark.asyncio
    async def test_idempotent_with_deterministic_stub(self):
        router = make_router()
        texts = {(await router.route_request(_request())).text for _ in range(3)}
        assert texts == {"openai says hello"}

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_error_result(self, monkeypatch):
        router = make_router()

        def broken(*args, **kwargs):
            raise RuntimeError("directive exploded")

        monkeypatch.setattr("infohealth.services.router.build_directive", broken)
        result = await router.route_request(_request("Tengo dolor"))

        assert result.provider == "error"
        assert result.language == Language.es
        assert result.error == "directive exploded"

    @pytest.mark.asyncio
    async def test_generation_params_forwarded(self, stubs):
        router = RoutingService(keys=ALL_KEYS, adapters=stubs, temperature=0.1, max_tokens=123)
        await router.route_request(_request())
        call = stubs[Provider.openai].calls[0]
        assert call["temperature"] == 0.1
        assert call["max_tokens"] == 123
        assert 0 < call["timeout"] <= 45.0


# ======================================================================
# Real adapters over a mocked transport
# ======================================================================

@pytest.mark.asyncio
async def test_from_settings_end_to_end():
    from infohealth.config import Settings

    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        if request.url.host == "generativelanguage.googleapis.com":
            return httpx.Response(503, text="overloaded")
        return httpx.Response(200, json={"content": [{"type": "text", "text": "La hipertensión es..."}]})

    settings = Settings(
        _env_file=None,
        OPENAI_API_KEY="",
        GEMINI_API_KEY="gm-key",
        ANTHROPIC_API_KEY="ak-key",
        OPENAI_BASE_URL="https://api.openai.com/v1",
        ANTHROPIC_BASE_URL="https://api.anthropic.com/v1",
        GEMINI_BASE_URL="https://generativelanguage.googleapis.com/v1beta",
        ANTHROPIC_MODEL="claude-3-haiku-20240307",
        STRICT_PROVIDER_PREFERENCE=False,
    )
    router = RoutingService.from_settings(settings, transport=httpx.MockTransport(handler))
    result = await router.route_request(_request("¿Qué es la hipertensión?"))

    assert seen == ["generativelanguage.googleapis.com", "api.anthropic.com"]
    assert result.provider == "anthropic"
    assert result.text == "La hipertensión es..."
    assert result.model == settings.ANTHROPIC_MODEL
    assert result.failures[0].status_code == 503
