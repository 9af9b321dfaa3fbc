"""
Language model invoker.

Thin wrapper over the OpenAI-compatible chat completion endpoint. It makes
exactly one call per invocation and never touches the usage ledger.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

import openai
from openai import AsyncOpenAI

from ..core.errors import ModelTimeout, ModelUnavailable
from ..core.log import get_logger


logger = get_logger(__name__)

DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class ModelInvocation:
    """Outcome of one completion call."""
    raw_text: str
    input_tokens: int
    output_tokens: int
    elapsed_ms: int
    model: str
    request_id: Optional[str] = None


class ModelInvoker:
    """Calls the completion endpoint with a system role and user prompt.

    Args:
        model: Model name sent to the endpoint
        api_key: Provider API key
        base_url: Endpoint base URL (None for the provider default)
        timeout_seconds: Bounded wait for a single call
        max_retries: Transport-level retries (0 disables)

    Raises:
        ValueError: If model is missing/empty or timeout is not positive
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = 0,
    ):
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self.model = model
        self.timeout_seconds = timeout_seconds
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=max_retries,
        )

    async def invoke(
        self,
        system_role: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> ModelInvocation:
        """Run one chat completion.

        Returns:
            ModelInvocation with the raw text and token counters

        Raises:
            ValueError: If user_prompt is empty
            ModelTimeout: If the endpoint exceeds the bounded wait
            ModelUnavailable: On transport, auth or provider errors
        """
        if not user_prompt:
            raise ValueError("user_prompt is required and cannot be empty")

        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_role},
                        {"role": "user", "content": user_prompt},
                    ],
                    max_tokens=max_tokens,
                    temperature=temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except (asyncio.TimeoutError, openai.APITimeoutError) as e:
            raise ModelTimeout(f"Model call timed out after {self.timeout_seconds}s") from e
        except openai.OpenAIError as e:
            raise ModelUnavailable(f"Model call failed: {e}") from e
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        raw_text = ""
        if response.choices:
            raw_text = response.choices[0].message.content or ""

        usage = response.usage
        if usage is None:
            logger.warning("event=model.usage_missing | model=%s | request_id=%s", self.model, response.id)
            input_tokens, output_tokens = 0, 0
        else:
            input_tokens = usage.prompt_tokens or 0
            output_tokens = usage.completion_tokens or 0

        return ModelInvocation(
            raw_text=raw_text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            elapsed_ms=elapsed_ms,
            model=self.model,
            request_id=getattr(response, "id", None),
        )
