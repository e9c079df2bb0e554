from typing import Optional, Dict, Any, List

from infohealth.adapters.base import BaseModelAdapter, ProviderPayload, ProviderReply
from infohealth.models.routing import Provider


class _Part(ProviderPayload):
    text: Optional[str] = None


class _Content(ProviderPayload):
    parts: List[_Part] = []


class _Candidate(ProviderPayload):
    content: _Content = _Content()


class GeminiReply(ProviderReply):
    candidates: List[_Candidate] = []

    def text(self) -> str:
        if not self.candidates:
            return ""
        return "\n".join(p.text for p in self.candidates[0].content.parts if p.text)


class GeminiAdapter(BaseModelAdapter):
    name = Provider.gemini
    reply_model = GeminiReply

    def build_request(self, api_key: str, prompt: str, system_prompt: Optional[str], model: str, **kwargs) -> Dict[str, Any]:
        """
        generateContent call. Gemini gets the directive and the message
        concatenated into one user content part.
        """
        text = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt

        generation_config = {}
        if kwargs.get("temperature") is not None:
            generation_config["temperature"] = kwargs["temperature"]
        if kwargs.get("max_tokens") is not None:
            generation_config["maxOutputTokens"] = kwargs["max_tokens"]

        payload = {
            "contents": [{"role": "user", "parts": [{"text": text}]}],
        }
        if generation_config:
            payload["generationConfig"] = generation_config

        return {
            "url": f"{self.base_url}/models/{model}:generateContent",
            "json": payload,
            # Header, not ?key=: httpx logs request URLs at INFO.
            "headers": {
                "x-goog-api-key": api_key,
                "Content-Type": "application/json",
            },
        }
