"""Chat-completion client abstraction."""

import json
import logging
import re
from abc import ABC, abstractmethod

import httpx
from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


class AIClient(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> str:
        """
        Generate a response from the model.

        Args:
            system_prompt: System instructions
            user_prompt: User message/query
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum response tokens

        Returns:
            Model response as string
        """
        pass

    async def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> dict | list:
        """
        Generate a JSON response from the model.

        Returns:
            Parsed JSON response

        Raises:
            ValueError: If no JSON can be extracted from the response
        """
        response = await self.generate(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        return self._parse_json_response(response)

    def _parse_json_response(self, response: str) -> dict:
        """Extract the JSON object from a reply, with or without a code fence."""
        text = FENCE_PATTERN.sub("", response).strip()

        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end < start:
            raise ValueError(f"No JSON object in response: {response[:200]}")

        result = json.loads(text[start : end + 1])
        if not isinstance(result, dict):
            raise ValueError("Response JSON is not an object")
        return result

    async def close(self) -> None:
        """Close any resources (override if needed)."""
        pass


class OpenAIClient(AIClient):
    """OpenAI-compatible chat completions client.

    SDK retries are disabled: every ``generate`` call sends exactly one
    request, and callers decide what to do when it fails.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4-turbo-preview",
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: API key sent as the bearer credential
            model: Model name
            base_url: Override for OpenAI-compatible endpoints
            timeout: Request timeout in seconds (SDK default when None)
            http_client: Optional preconfigured httpx client
        """
        kwargs: dict = {"api_key": api_key, "max_retries": 0}
        if base_url:
            kwargs["base_url"] = base_url
        if timeout is not None:
            kwargs["timeout"] = timeout
        if http_client is not None:
            kwargs["http_client"] = http_client

        self.client = AsyncOpenAI(**kwargs)
        self.model = model

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> str:
        """Generate response using the chat completions API."""
        logger.debug(f"OpenAI request: model={self.model}, temp={temperature}")

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )

        if not response.choices:
            raise ValueError("Chat completion returned no choices")
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        """Close the OpenAI client."""
        await self.client.close()
