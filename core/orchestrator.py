"""Single entry point used by the web layer.

``generate`` returns the study as soon as it is validated. Illustrations are
fetched separately through ``fetch_illustrations`` so a slow or failing image
batch never delays or fails the study itself.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional
from urllib.parse import quote_plus

from core.generator import AnthropicGeminiCapability, GenerationClient
from core.history import HistoryStore
from core.illustrations import DEFAULT_LIMIT, IllustrationBatcher
from core.models import GeneratedImage, Hymn, StudyContent, TimelineEntry
from core.storage import SQLiteStorage, ThemePreference

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

#: Topics offered to users who don't know where to start.
SUGGESTED_TOPICS: list[str] = [
    "A Volta de Jesus",
    "O Santuário",
    "Salvação pela Graça",
    "Os 10 Mandamentos",
]


def hymn_search_url(hymn: Hymn) -> str:
    """Return a YouTube search URL for a hymn from the Adventist hymnal."""
    query = " ".join(part for part in ("Hinário Adventista", hymn.number, hymn.title) if part)
    return f"https://www.youtube.com/results?search_query={quote_plus(query)}"


class StudyOrchestrator:
    """Ties generation, illustrations, history and theme together."""

    def __init__(
        self,
        client: GenerationClient,
        history: HistoryStore,
        theme: ThemePreference,
        illustration_limit: int = DEFAULT_LIMIT,
        auto_save: bool = True,
    ) -> None:
        self.client = client
        self.history = history
        self.theme = theme
        self.batcher = IllustrationBatcher(client)
        self.illustration_limit = illustration_limit
        self.auto_save = auto_save

    @classmethod
    def from_settings(cls, settings: Settings) -> StudyOrchestrator:
        """Build the production orchestrator backed by SQLite and the vendor SDKs."""
        storage = SQLiteStorage(settings.db_path)
        return cls(
            client=GenerationClient(AnthropicGeminiCapability(settings)),
            history=HistoryStore(storage, max_entries=settings.history_limit),
            theme=ThemePreference(storage),
            illustration_limit=settings.illustration_limit,
        )

    async def generate(self, topic: str) -> StudyContent:
        """Generate a study for a non-blank *topic*.

        Raises:
            GenerationError: Propagated unchanged; nothing is recorded.
        """
        content = await self.client.request_content(topic)
        if self.auto_save:
            self.save_to_history(content)
        return content

    def save_to_history(self, content: StudyContent) -> Optional[TimelineEntry]:
        return self.history.add(content.title, content.theme)

    async def fetch_illustrations(
        self,
        prompts: list[str],
        limit: Optional[int] = None,
    ) -> list[GeneratedImage]:
        return await self.batcher.fetch_all(
            prompts, self.illustration_limit if limit is None else limit
        )
