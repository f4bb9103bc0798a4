"""
AI Service wrapper for LiteLLM with Cerebras integration.
"""

from __future__ import annotations

import asyncio
import logging
import os

import litellm
from litellm import acompletion

logger = logging.getLogger("rift_bot.services.ai")


class AIService:
    """
    Wrapper for LiteLLM chat completions.

    Every call fails fast: errors and timeouts are logged and surface as None,
    so callers can substitute local text.
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        timeout: float = 8.0,
        max_tokens: int = 150,
        temperature: float = 0.9,
    ):
        """
        Initialize AIService.

        Args:
            model: LiteLLM model identifier (e.g., "cerebras/llama-3.3-70b")
            api_key: API key for the model provider
            timeout: Hard timeout in seconds for one completion
            max_tokens: Maximum tokens in response
            temperature: Default sampling temperature
        """
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

        # LiteLLM reads provider keys from the environment
        os.environ["CEREBRAS_API_KEY"] = api_key

        # Disable LiteLLM's automatic retries - we want to fail fast
        litellm.num_retries = 0

        logger.info(f"AIService initialized with model: {model}")

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str | None:
        """
        Simple completion.

        Returns:
            Generated text, or None on error or empty output
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await asyncio.wait_for(
                acompletion(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature if temperature is None else temperature,
                    timeout=self.timeout,
                    max_tokens=max_tokens or self.max_tokens,
                    num_retries=0,
                ),
                timeout=self.timeout,
            )
            content = response.choices[0].message.content
            if not content or not content.strip():
                return None
            return content.strip()
        except asyncio.TimeoutError:
            logger.warning(f"AI hard timeout after {self.timeout}s (failing fast)")
            return None
        except litellm.RateLimitError as e:
            logger.warning(f"AI rate limited (failing fast): {e}")
            return None
        except litellm.Timeout as e:
            logger.warning(f"AI timeout (failing fast): {e}")
            return None
        except Exception as e:
            logger.error(f"AI completion failed: {e}")
            return None
