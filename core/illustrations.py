"""Concurrent illustration fetching with partial-failure tolerance.

Only the first ``limit`` prompts are used; the rest are never sent. Every
selected prompt is requested at once, each request guarded on its own so a
failure never cancels its siblings, and the batch settles only after all of
them have finished.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

from core.generator import GenerationClient
from core.models import GeneratedImage

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 2


class LivenessFlag:
    """Marks whether the view that started a batch still wants its results.

    One flag per enrich() call; see IllustrationBatcher.enrich.
    """

    def __init__(self) -> None:
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def cancel(self) -> None:
        self._alive = False


class IllustrationBatcher:
    """Fan out illustration requests and keep the ones that succeed."""

    def __init__(self, client: GenerationClient) -> None:
        self.client = client

    async def _fetch_one(self, prompt: str) -> Optional[GeneratedImage]:
        try:
            return await self.client.request_illustration(prompt)
        except Exception as exc:
            logger.warning("Illustration failed for prompt=%r: %s", prompt[:60], exc)
            return None

    async def fetch_all(
        self,
        prompts: Sequence[str],
        limit: int = DEFAULT_LIMIT,
    ) -> list[GeneratedImage]:
        """Request illustrations for the first *limit* prompts concurrently.

        Args:
            prompts: Illustration prompts, in the order the study listed them.
            limit: Maximum number of prompts to send.

        Returns:
            The images that were produced, in no particular order. May be empty.
        """
        selected = list(prompts[: max(limit, 0)])
        if not selected:
            return []

        results = await asyncio.gather(*(self._fetch_one(p) for p in selected))
        images = [image for image in results if image is not None]
        logger.info("Illustration batch: %d/%d succeeded", len(images), len(selected))
        return images

    async def enrich(
        self,
        prompts: Sequence[str],
        commit: Callable[[list[GeneratedImage]], None],
        scope: LivenessFlag,
        limit: int = DEFAULT_LIMIT,
    ) -> bool:
        """Fetch a batch and hand it to *commit* unless *scope* was cancelled.

        This is the hook for presentation-layer views that hold illustrations in
        their own state: the view creates a LivenessFlag, cancels it when it is
        torn down (e.g. the topic changes), and passes its state setter as
        *commit*. The JSON API is request-scoped and uses fetch_all directly.

        All images from the batch are committed in a single call.

        Returns:
            True if *commit* was invoked.
        """
        images = await self.fetch_all(prompts, limit)
        if not scope.alive:
            logger.info("Discarding %d illustration(s) for a closed view", len(images))
            return False
        commit(images)
        return True
