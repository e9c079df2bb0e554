"""Stub adapters and routing-service builders shared by the tests."""

import asyncio
from typing import Any, Dict, List, Optional

from infohealth.adapters.base import ProviderError
from infohealth.models.routing import Provider, ProviderKeys
from infohealth.services.router import RoutingService


class StubAdapter:
    """Deterministic stand-in for a provider adapter. Records every call."""

    def __init__(self, provider: Provider, text: str = "", error: Optional[str] = None, delay: float = 0.0):
        self.provider = provider
        self.text = text or f"{provider.value} says hello"
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, api_key, prompt, system_prompt=None, model=None, timeout=30.0, **kwargs):
        self.calls.append({
            "api_key": api_key,
            "prompt": prompt,
            "system_prompt": system_prompt,
            "timeout": timeout,
            **kwargs,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise ProviderError(self.provider, self.error)
        return {"response": self.text, "model": f"{self.provider.value}-stub", "provider": self.provider.value}


ALL_KEYS = ProviderKeys(openai="sk-openai", anthropic="sk-anthropic", gemini="gm-key")
NO_KEYS = ProviderKeys()


def make_stubs(**overrides) -> Dict[Provider, StubAdapter]:
    """One stub per provider; overrides map provider name → StubAdapter kwargs."""
    return {
        p: StubAdapter(p, **overrides.get(p.value, {}))
        for p in Provider
    }


def make_router(keys: ProviderKeys = ALL_KEYS, stubs=None, **kwargs) -> RoutingService:
    return RoutingService(keys=keys, adapters=stubs if stubs is not None else make_stubs(), **kwargs)
