"""Embedding providers.

``OpenAIEmbeddingProvider`` calls the OpenAI embeddings API.
``FakeEmbeddingProvider`` produces deterministic vectors from character codes
and is used when no API key is configured (offline runs, tests).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import openai

from recall.errors import ExternalServiceError
from recall.vector.store import fake_embed

if TYPE_CHECKING:
    from openai import AsyncOpenAI

    from recall.config import Settings

logger = logging.getLogger(__name__)

FAKE_EMBEDDING_MODEL = "fake-embedding"


class EmbeddingProvider(ABC):
    """Turns text into a fixed-length vector."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Name recorded as ``embedding_model`` on stored vectors."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector this provider returns."""

    @abstractmethod
    async def create_embedding(self, text: str) -> list[float]:
        """Embed *text*. Raises ``ExternalServiceError`` on failure."""


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI ``text-embedding-3-*`` embeddings.

    Args:
        api_key: OpenAI API key.
        model: Embedding model name.
        dimensions: Output length. Passed to the API only when it is smaller
            than the model's native size (native dimension reduction).
    """

    MODEL_DEFAULT_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
    }

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-large",
        dimensions: int | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._client: AsyncOpenAI | None = None

        default_dim = self.MODEL_DEFAULT_DIMENSIONS.get(model, 1536)
        if dimensions is not None and dimensions < default_dim:
            self._dimension = dimensions
            self._requested_dimensions: int | None = dimensions
        else:
            if dimensions is not None and dimensions > default_dim:
                logger.warning(
                    "Requested dimensions (%d) exceed model default (%d), using %d",
                    dimensions,
                    default_dim,
                    default_dim,
                )
            self._dimension = default_dim
            self._requested_dimensions = None
        logger.info("Embedding provider: model=%s, dimensions=%d", model, self._dimension)

    @property
    def model(self) -> str:
        return self._model

    @property
    def dimension(self) -> int:
        return self._dimension

    def _get_client(self) -> AsyncOpenAI:
        """Lazily initialize the OpenAI client."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def create_embedding(self, text: str) -> list[float]:
        kwargs: dict = {"model": self._model, "input": text}
        if self._requested_dimensions is not None:
            kwargs["dimensions"] = self._requested_dimensions

        try:
            response = await self._get_client().embeddings.create(**kwargs)
        except openai.OpenAIError as exc:
            msg = f"Embedding request failed: {exc}"
            raise ExternalServiceError(msg) from exc

        if not response.data:
            msg = "Embedding response contained no data"
            raise ExternalServiceError(msg)
        return list(response.data[0].embedding)


class FakeEmbeddingProvider(EmbeddingProvider):
    """Deterministic character-code embeddings (see ``fake_embed``)."""

    def __init__(self, dimension: int = 1536) -> None:
        self._dimension = dimension

    @property
    def model(self) -> str:
        return FAKE_EMBEDDING_MODEL

    @property
    def dimension(self) -> int:
        return self._dimension

    async def create_embedding(self, text: str) -> list[float]:
        return fake_embed(text, self._dimension)


def create_embedding_provider(settings: Settings) -> EmbeddingProvider | None:
    """Build the configured provider, or None when no API key is set."""
    if not settings.embeddings_enabled:
        logger.warning("Embeddings disabled, set OPENAI_API_KEY to enable semantic search")
        return None
    return OpenAIEmbeddingProvider(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
    )
