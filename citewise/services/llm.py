"""
Generator Backends

Chat completion behind the ``Generator`` interface.

Backends:
    - OpenAIGenerator: async OpenAI SDK (``gpt-4o-mini`` by default).
    - OllamaGenerator: local Ollama ``/api/chat`` over httpx.

Both raise ``UpstreamError`` on any transport or API failure. There is no
mock fallback: the answer pipeline must never return text that was not
generated from the supplied snippets.
"""

from __future__ import annotations

import logging

import httpx
import openai
from openai import AsyncOpenAI

from citewise.core.exceptions import ConfigurationError, UpstreamError
from citewise.services.interfaces import Generator

logger = logging.getLogger(__name__)


class OpenAIGenerator(Generator):
    """
    Chat completions from the OpenAI API.

    Raises:
        ConfigurationError: At construction, if no API key is provided.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gpt-4o-mini",
        client: AsyncOpenAI | None = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise ConfigurationError("OpenAI API key not configured")
            client = AsyncOpenAI(api_key=api_key)
        self._client = client
        self._model = model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.OpenAIError as e:
            raise UpstreamError("openai-chat", str(e)) from e

        if not completion.choices:
            raise UpstreamError("openai-chat", "response contained no choices")
        content = completion.choices[0].message.content or ""
        logger.info(
            "OpenAI completion generated (model=%s, length=%d)",
            self._model,
            len(content),
        )
        return content


class OllamaGenerator(Generator):
    """
    Chat completions from a local Ollama server.

    Usage::

        generator = OllamaGenerator("http://localhost:11434", model="mistral")
        text = await generator.complete(system, user, temperature=0.3, max_tokens=300)

    Args:
        base_url: Ollama API base URL.
        model: Model name to use for generation.
        timeout: Request timeout in seconds.
        client: Optional shared ``httpx.AsyncClient`` (one is created per
            call otherwise).
    """

    def __init__(
        self,
        base_url: str,
        *,
        model: str = "mistral",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout
        self._client = client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }

        try:
            data = await self._post("/api/chat", payload)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.warning("Ollama unreachable (%s): %s", type(e).__name__, str(e))
            raise UpstreamError("ollama", f"unreachable: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.error("Ollama API error: %s", e.response.text)
            raise UpstreamError("ollama", f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UpstreamError("ollama", str(e)) from e
        except ValueError as e:
            raise UpstreamError("ollama", f"invalid JSON response: {e}") from e

        if not isinstance(data, dict):
            raise UpstreamError("ollama", "unexpected response shape")
        content = (data.get("message") or {}).get("content") or ""
        logger.info(
            "Ollama response generated (model=%s, length=%d)",
            self._model,
            len(content),
        )
        return content

    async def _post(self, path: str, payload: dict) -> dict:
        url = f"{self._base_url}{path}"
        if self._client is not None:
            response = await self._client.post(url, json=payload, timeout=self._timeout)
            response.raise_for_status()
            return response.json()

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            return response.json()

    async def health_check(self) -> bool:
        """
        Check if Ollama is reachable.

        Returns:
            True if Ollama API responds, False otherwise.
        """
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self._base_url}/api/tags")
                return response.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False
