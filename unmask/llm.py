"""OpenAI completion and embedding client.

Thin wrapper over the ``openai`` SDK. Without an API key the client reports
``available = False``; ``complete`` then raises ``LLMError`` and ``embed``
returns a deterministic pseudo-embedding so chunking, vector storage and
search still work offline (and reproducibly in tests).
"""

from __future__ import annotations

import hashlib
import logging
import threading
from typing import Any

import numpy as np
from openai import APIError, APITimeoutError, OpenAI

from unmask.config import LLMConfig, get_config
from unmask.errors import ErrorCode, LLMError, llm_not_configured
from unmask.observability import timed_operation

logger = logging.getLogger(__name__)


def pseudo_embedding(text: str, dimension: int) -> list[float]:
    """Deterministic unit vector seeded from a hash of ``text``."""
    seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "little")
    rng = np.random.default_rng(seed)
    vec = rng.standard_normal(dimension).astype(np.float32)
    norm = float(np.linalg.norm(vec))
    if norm > 0:
        vec /= norm
    return vec.tolist()


class LLMClient:
    """Chat completion and embedding calls with error wrapping.

    Args:
        config: LLM settings. Defaults to the global config's ``llm`` section.
        client: Pre-built SDK client (tests inject a mock here).
    """

    def __init__(self, config: LLMConfig | None = None, client: Any | None = None) -> None:
        self.config = config or get_config().llm
        self._client = client

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self.config.api_key)

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.config.api_key:
                raise llm_not_configured()
            self._client = OpenAI(
                api_key=self.config.api_key,
                timeout=self.config.timeout_seconds,
            )
        return self._client

    def complete(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Run a chat completion.

        Args:
            messages: OpenAI-format messages (``{"role", "content"}``).
            model: Override for the configured chat model.
            temperature: Override for the configured temperature.
            max_tokens: Override for the configured token limit.

        Returns:
            The assistant message content ("" if the model returned none).

        Raises:
            LLMError: If no key is configured or the request fails.
        """
        model = model or self.config.chat_model
        with timed_operation(logger, "llm.complete", model=model):
            try:
                response = self.client.chat.completions.create(
                    model=model,
                    messages=messages,
                    temperature=self.config.temperature if temperature is None else temperature,
                    max_tokens=max_tokens or self.config.max_tokens,
                )
            except APITimeoutError as e:
                raise LLMError(
                    "Language model request timed out",
                    model=model,
                    code=ErrorCode.LLM_TIMEOUT,
                    cause=e,
                ) from e
            except APIError as e:
                raise LLMError(f"Language model request failed: {e}", model=model, cause=e) from e
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def embed(self, text: str) -> list[float]:
        """Embed ``text`` with the configured embedding model.

        Falls back to :func:`pseudo_embedding` when no API key is configured.

        Raises:
            LLMError: If the embedding request fails.
        """
        if not self.available:
            return pseudo_embedding(text, self.config.embedding_dimension)

        model = self.config.embedding_model
        try:
            response = self.client.embeddings.create(model=model, input=text)
        except APITimeoutError as e:
            raise LLMError(
                "Embedding request timed out", model=model, code=ErrorCode.LLM_TIMEOUT, cause=e
            ) from e
        except APIError as e:
            raise LLMError(
                f"Embedding request failed: {e}",
                model=model,
                code=ErrorCode.LLM_EMBEDDING_FAILED,
                cause=e,
            ) from e
        if not response.data:
            raise LLMError(
                "Embedding response was empty", model=model, code=ErrorCode.LLM_EMBEDDING_FAILED
            )
        return list(response.data[0].embedding)


_llm: LLMClient | None = None
_llm_lock = threading.Lock()


def get_llm_client() -> LLMClient:
    """Get or create the singleton client for the global config."""
    global _llm
    if _llm is None:
        with _llm_lock:
            if _llm is None:
                _llm = LLMClient()
    return _llm


def reset_llm_client() -> None:
    global _llm
    with _llm_lock:
        _llm = None


__all__ = [
    "LLMClient",
    "get_llm_client",
    "pseudo_embedding",
    "reset_llm_client",
]
