from typing import Optional, Dict, Any, List

from infohealth.adapters.base import BaseModelAdapter, ProviderPayload, ProviderReply
from infohealth.models.routing import Provider


class _Message(ProviderPayload):
    content: Optional[str] = None


class _Choice(ProviderPayload):
    message: _Message = _Message()


class OpenAIReply(ProviderReply):
    choices: List[_Choice] = []

    def text(self) -> str:
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""


class OpenAIAdapter(BaseModelAdapter):
    name = Provider.openai
    reply_model = OpenAIReply

    def build_request(self, api_key: str, prompt: str, system_prompt: Optional[str], model: str, **kwargs) -> Dict[str, Any]:
        """
        Chat-completions call: system directive and user message as separate roles.
        """
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": model,
            "messages": messages,
        }
        if kwargs.get("temperature") is not None:
            payload["temperature"] = kwargs["temperature"]
        if kwargs.get("max_tokens") is not None:
            payload["max_tokens"] = kwargs["max_tokens"]

        return {
            "url": f"{self.base_url}/chat/completions",
            "json": payload,
            "headers": headers,
        }
