"""
infrastructure.embeddings.huggingface_embedder - EmbedderPort over HuggingFace sentence embeddings.

The model is loaded lazily on first use, in a worker thread, and always
runs locally. Any load or inference failure surfaces as
EmbeddingUnavailableError so callers can degrade (keyword-only search).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from langchain_core.embeddings import Embeddings

from domain.exceptions import EmbeddingUnavailableError

logger = logging.getLogger(__name__)


class HuggingFaceEmbedder:
    """Sentence-transformer embeddings with normalised vectors.

    Pass `embeddings` to inject any LangChain Embeddings implementation
    instead of loading `model_name`.
    """

    def __init__(self, model_name: str, embeddings: Optional[Embeddings] = None):
        self._model_name = model_name
        self._embeddings = embeddings
        self._load_lock = asyncio.Lock()

    async def _model(self) -> Embeddings:
        if self._embeddings is not None:
            return self._embeddings
        async with self._load_lock:
            if self._embeddings is None:
                logger.info("Loading embedding model %s", self._model_name)
                loop = asyncio.get_running_loop()
                try:
                    self._embeddings = await loop.run_in_executor(None, self._load)
                except Exception as e:
                    raise EmbeddingUnavailableError(
                        f"Could not load embedding model {self._model_name}: {e}"
                    ) from e
                logger.info("Embedding model loaded")
        return self._embeddings

    def _load(self) -> Embeddings:
        from langchain_huggingface import HuggingFaceEmbeddings

        return HuggingFaceEmbeddings(
            model_name=self._model_name,
            encode_kwargs={"normalize_embeddings": True},
        )

    async def embed(self, text: str) -> list[float]:
        model = await self._model()
        try:
            return list(await model.aembed_query(text))
        except Exception as e:
            raise EmbeddingUnavailableError(f"Embedding failed: {e}") from e

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed every text concurrently and wait for all of them."""
        if not texts:
            return []
        return list(await asyncio.gather(*(self.embed(t) for t in texts)))
