import pytest

from helpers import make_router, make_stubs
from infohealth.models.api import EnhanceRequest
from infohealth.models.routing import Provider, ProviderKeys
from infohealth.services.enhance import EnhanceService
from infohealth.services.prompts import ENHANCE_MAX_BASE_CHARS, ENHANCE_SYSTEM_PROMPT


def _service(keys=None, **stub_overrides):
    stubs = make_stubs(**stub_overrides)
    router = make_router(stubs=stubs) if keys is None else make_router(keys=keys, stubs=stubs)
    return EnhanceService(router), stubs


@pytest.mark.asyncio
async def test_ineligible_topic_returns_base_untouched():
    service, stubs = _service()
    response = await service.enhance(EnhanceRequest(base="Drink water.", topic="migraine"))

    assert response.enhanced == "Drink water."
    assert response.provider == "none"
    assert all(not s.calls for s in stubs.values())


@pytest.mark.asyncio
async def test_order_is_openai_anthropic_gemini():
    service, stubs = _service(openai={"error": "HTTP 500"})
    response = await service.enhance(EnhanceRequest(base="Limit salt.", topic="Hypertension", lang="es"))

    assert response.provider == "anthropic"
    assert response.enhanced == "anthropic says hello"
    assert not stubs[Provider.gemini].calls

    call = stubs[Provider.anthropic].calls[0]
    assert call["system_prompt"] == ENHANCE_SYSTEM_PROMPT
    assert call["temperature"] == 0.4
    assert call["max_tokens"] == 400
    assert "Limit salt." in call["prompt"]
    assert "Provide the answer in Spanish." in call["prompt"]


@pytest.mark.asyncio
async def test_all_fail_returns_clamped_base():
    failing = {"error": "HTTP 503"}
    service, _ = _service(openai=failing, anthropic=failing, gemini=failing)
    base = "y" * (ENHANCE_MAX_BASE_CHARS + 10)
    response = await service.enhance(EnhanceRequest(base=base, topic="asthma"))

    assert response.provider == "none"
    assert response.enhanced == "y" * ENHANCE_MAX_BASE_CHARS


@pytest.mark.asyncio
async def test_only_configured_providers_tried():
    service, stubs = _service(keys=ProviderKeys(gemini="gm"))
    response = await service.enhance(EnhanceRequest(base="Check glucose.", topic="diabetes"))

    assert response.provider == "gemini"
    assert not stubs[Provider.openai].calls
    assert not stubs[Provider.anthropic].calls
