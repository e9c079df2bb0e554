import logging
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

import httpx
from pydantic import BaseModel, ValidationError

from infohealth.models.routing import Provider

# Upstream error bodies are echoed into diagnostics; keep them bounded.
MAX_ERROR_BODY = 500


class ProviderError(Exception):
    """One adapter invocation failed. Recovered by the router, never surfaced."""

    def __init__(self, provider: Provider, cause: Any, status_code: Optional[int] = None):
        self.provider = Provider(provider)
        self.cause = cause
        self.status_code = status_code
        super().__init__(f"{self.provider.value}: {cause}")


class ProviderPayload(BaseModel):
    """Lenient view over provider JSON; unknown fields are ignored."""

    model_config = {"extra": "ignore"}


class ProviderReply(ProviderPayload):
    """Top-level reply. Subclasses know where the text lives."""

    def text(self) -> str:
        raise NotImplementedError


class BaseModelAdapter(ABC):
    """
    Abstract base class for all LLM providers.
    Enforces a common interface for generation.
    """

    name: Provider
    reply_model: type = ProviderReply

    def __init__(
        self,
        model: str,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.default_model = model
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self.logger = logging.getLogger(f"adapters.{self.name.value}")

    @abstractmethod
    def build_request(
        self,
        api_key: str,
        prompt: str,
        system_prompt: Optional[str],
        model: str,
        **kwargs,
    ) -> Dict[str, Any]:
        """
        Returns the keyword arguments for the single outbound POST:
        url, json and headers.
        """

    async def generate(
        self,
        api_key: str,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 30.0,
        **kwargs,
    ) -> Dict[str, Any]:
        """
        Generates text from the provider.

        Args:
            api_key: Provider credential; empty fails without a network call
            prompt: User input
            system_prompt: Optional system instruction
            model: Explicit model override
            timeout: Seconds allowed for the outbound call
            **kwargs: Extra model params (temperature, max_tokens)

        Returns:
            Dict containing:
                - response: str
                - model: str
                - provider: str

        Raises:
            ProviderError: on missing key, transport failure, non-2xx status,
                malformed payload or empty extracted text.
        """
        if not api_key:
            raise ProviderError(self.name, "API key not configured")

        target_model = model or self.default_model
        request = self.build_request(api_key, prompt, system_prompt, target_model, **kwargs)
        self.logger.debug(f"POST {request['url']} model={target_model} timeout={timeout:.1f}s")

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
                resp = await client.post(**request)
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"{type(e).__name__}: {e}") from e

        if not resp.is_success:
            raise ProviderError(
                self.name,
                f"HTTP {resp.status_code}: {resp.text[:MAX_ERROR_BODY]}",
                status_code=resp.status_code,
            )

        try:
            reply = self.reply_model.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise ProviderError(self.name, f"malformed response: {e}") from e

        content = reply.text().strip()
        if not content:
            raise ProviderError(self.name, "empty response")

        return {
            "response": content,
            "model": target_model,
            "provider": self.name.value,
        }
