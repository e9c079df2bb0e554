from typing import Optional, Dict, Any, List

from infohealth.adapters.base import BaseModelAdapter, ProviderPayload, ProviderReply
from infohealth.models.routing import Provider


class _ContentBlock(ProviderPayload):
    type: str = "text"
    text: Optional[str] = None


class AnthropicReply(ProviderReply):
    content: List[_ContentBlock] = []

    def text(self) -> str:
        # Replies may mix block types; only text blocks carry the answer.
        return "\n".join(b.text for b in self.content if b.type == "text" and b.text)


class AnthropicAdapter(BaseModelAdapter):
    name = Provider.anthropic
    reply_model = AnthropicReply

    def __init__(self, model: str, base_url: str, api_version: str = "2023-06-01", transport=None):
        super().__init__(model, base_url, transport=transport)
        self.api_version = api_version

    def build_request(self, api_key: str, prompt: str, system_prompt: Optional[str], model: str, **kwargs) -> Dict[str, Any]:
        """
        Messages API call. The system directive is a top-level field, not a message.
        """
        headers = {
            "x-api-key": api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }

        payload = {
            "model": model,
            # max_tokens is mandatory for the Messages API
            "max_tokens": kwargs.get("max_tokens") or 800,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            payload["system"] = system_prompt
        if kwargs.get("temperature") is not None:
            payload["temperature"] = kwargs["temperature"]

        return {
            "url": f"{self.base_url}/messages",
            "json": payload,
            "headers": headers,
        }
