"""Text-cleaning services used by Transform nodes.

A cleaner takes whatever the previous node produced and returns either the
cleaned text or ``{"error": message}``. Cleaners never raise for service
failures; the Transform executor turns the error payload into a failed node.
"""

import json
from typing import Any, Dict, Optional, Protocol, Union

import httpx

from ..core.logging import get_logger

logger = get_logger(__name__)

CleanResult = Union[str, Dict[str, str]]

SYSTEM_PROMPT = (
    "You are a helpful assistant that cleans and formats data to make it "
    "more readable for humans."
)


class TextCleaner(Protocol):
    """Anything able to turn arbitrary node data into readable text."""

    async def clean(self, data: Any) -> CleanResult:
        ...


def stringify(data: Any) -> str:
    """Render node data as text, pretty-printing structured values."""
    if isinstance(data, str):
        return data
    return json.dumps(data, indent=2, default=str)


class StaticTextCleaner:
    """Offline cleaner that returns the data rendered as text."""

    async def clean(self, data: Any) -> CleanResult:
        return stringify(data)


class OpenAITextCleaner:
    """Cleaner backed by the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: Optional[str],
        http_client: httpx.AsyncClient,
        model: str = "gpt-4o",
        base_url: str = "https://api.openai.com/v1",
        temperature: float = 0.7,
        max_tokens: int = 2000
    ):
        self.api_key = api_key
        self.http_client = http_client
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _build_payload(self, data: Any) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f"Clean the following data to make it easier for a human to read: {stringify(data)}"
                }
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens
        }

    async def clean(self, data: Any) -> CleanResult:
        if not self.api_key:
            return {"error": "OpenAI API key is not configured"}

        try:
            response = await self.http_client.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}"
                },
                json=self._build_payload(data)
            )
        except httpx.HTTPError as e:
            logger.error(f"Error cleaning data with OpenAI: {str(e)}")
            return {"error": str(e) or "Error cleaning data with OpenAI"}

        if response.is_error:
            return {"error": f"OpenAI API error: {self._error_message(response)}"}

        try:
            return response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected OpenAI response shape: {str(e)}")
            return {"error": "Unexpected response from OpenAI"}

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return "Unknown error"
