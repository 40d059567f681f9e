"""LLM client for the Ollama-compatible generative backend."""

import json
import logging
from typing import Any

import httpx

from recipe_suggest.config import get_settings
from recipe_suggest.exceptions import GenerationTimeout

logger = logging.getLogger(__name__)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences that models like to wrap JSON in."""
    result = text.strip()
    if result.startswith("```json"):
        result = result[7:]
    if result.startswith("```"):
        result = result[3:]
    if result.endswith("```"):
        result = result[:-3]
    return result.strip()


class LLMService:
    """Service for interacting with the Ollama LLM."""

    def __init__(self, timeout: float | None = None) -> None:
        self.settings = get_settings()
        self.base_url = self.settings.ollama_base_url
        self.model = self.settings.llm_model
        self.timeout = timeout or self.settings.llm_timeout_seconds

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
    ) -> str:
        """Generate a response from the LLM.

        Raises:
            GenerationTimeout: if the backend does not answer within the timeout
            httpx.HTTPError: on transport or status errors
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/api/chat",
                    json={
                        "model": self.model,
                        "messages": messages,
                        "stream": False,
                        "options": {
                            "temperature": temperature,
                            "num_predict": max_tokens,
                        },
                    },
                )
                response.raise_for_status()
                data = response.json()
                return data["message"]["content"]
        except httpx.TimeoutException as e:
            logger.warning(f"LLM call timed out after {self.timeout}s")
            raise GenerationTimeout(f"LLM did not respond within {self.timeout}s") from e

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 2048,
    ) -> Any:
        """Generate a structured JSON response from the LLM."""
        result = None
        try:
            result = await self.generate(
                prompt=prompt,
                system_prompt=system_prompt,
                temperature=temperature,
                max_tokens=max_tokens,
            )
            return json.loads(strip_code_fences(result))
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse LLM response as JSON: {e}")
            logger.warning(f"Raw response: {result if result is not None else 'N/A'}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling Ollama: {e}")
            raise


def get_llm_service() -> LLMService:
    """Get an LLM service instance."""
    return LLMService()
