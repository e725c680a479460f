from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from openai import APIError, AsyncOpenAI

from dream2design import config
from dream2design.run_utils.errors import ModelCallError

logger = logging.getLogger(__name__)

Message = Dict[str, str]


@dataclass
class Completion:
    ok: bool
    text: str = ""
    error: Optional[str] = None
    model: Optional[str] = None


class OpenRouterClient:
    """Chat completion client for the OpenRouter OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        api_key = api_key or config.OPENROUTER_API_KEY
        if not api_key:
            raise RuntimeError("Please set OPENROUTER_API_KEY environment variable for model access.")
        # retries and timeouts are owned by ModelGateway
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or config.OPENROUTER_BASE_URL,
            max_retries=0,
            default_headers={
                "HTTP-Referer": config.APP_REFERER,
                "X-Title": config.APP_TITLE,
            },
        )

    async def complete_chat(
        self,
        model: str,
        messages: List[Message],
        temperature: float,
        max_tokens: int,
    ) -> str:
        try:
            resp = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except APIError as e:
            raise ModelCallError(getattr(e, "message", None) or str(e)) from e

        if not resp.choices:
            raise ModelCallError("No choices returned from model")
        u = resp.usage
        if u:
            logger.debug(
                "usage model=%s prompt=%s completion=%s",
                model,
                getattr(u, "prompt_tokens", 0),
                getattr(u, "completion_tokens", 0),
            )
        return resp.choices[0].message.content or ""


class ModelGateway:
    """
    Primary model with per-attempt timeout and linear backoff, then a single
    attempt against the fallback model.
    """

    def __init__(
        self,
        client,
        primary_model: str = config.PRIMARY_MODEL,
        fallback_model: Optional[str] = config.FALLBACK_MODEL,
        timeout: float = config.MODEL_TIMEOUT_SEC,
        base_delay: float = config.RETRY_BASE_DELAY_SEC,
    ):
        self.client = client
        self.primary_model = primary_model
        self.fallback_model = fallback_model
        self.timeout = timeout
        self.base_delay = base_delay

    async def _attempt(
        self, model: str, messages: List[Message], temperature: float, max_tokens: int
    ) -> str:
        try:
            text = await asyncio.wait_for(
                self.client.complete_chat(model, messages, temperature, max_tokens),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise ModelCallError(f"Model call timed out after {self.timeout:g}s") from None

        content = (text or "").strip()
        if not content:
            raise ModelCallError("Empty response from model")
        return content

    async def complete(
        self,
        messages: List[Message],
        temperature: float = config.MODEL_TEMPERATURE,
        max_tokens: int = config.MODEL_MAX_TOKENS,
        retries: int = config.MODEL_RETRIES,
    ) -> Completion:
        last_error: Optional[Exception] = None

        for attempt in range(1, retries + 1):
            try:
                logger.info("%s - attempt %d/%d", self.primary_model, attempt, retries)
                content = await self._attempt(self.primary_model, messages, temperature, max_tokens)
                logger.info("received %d characters from %s", len(content), self.primary_model)
                return Completion(ok=True, text=content, model=self.primary_model)
            except Exception as e:
                last_error = e
                logger.warning("attempt %d/%d failed: %s", attempt, retries, e)
                if attempt < retries:
                    delay = self.base_delay * attempt
                    logger.info("waiting %.1fs before retry", delay)
                    await asyncio.sleep(delay)

        primary_error = str(last_error) if last_error else "Both models failed"
        if not self.fallback_model:
            return Completion(ok=False, error=primary_error)

        logger.info("falling back to %s", self.fallback_model)
        try:
            content = await self._attempt(self.fallback_model, messages, temperature, max_tokens)
        except Exception as e:
            # The primary error is what gets reported; the fallback error is only logged.
            logger.error("fallback %s failed: %s", self.fallback_model, e)
            return Completion(ok=False, error=primary_error)

        logger.info("received %d characters from %s", len(content), self.fallback_model)
        return Completion(ok=True, text=content, model=self.fallback_model)
