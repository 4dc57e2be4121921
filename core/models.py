"""
Pydantic models shared across the BibliaAI core.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class BibleVerse(BaseModel):
    """A key verse quoted in the study (Almeida version)."""

    reference: str
    text: str


class Hymn(BaseModel):
    """A hymn suggestion from the Adventist hymnal."""

    title: str
    number: Optional[str] = None
    reason: str


class StudyContent(BaseModel):
    """Structured study + sermon produced for a given topic."""

    title: str
    theme: str = ""
    introduction: str
    key_verses: list[BibleVerse]
    sermon_body: str  # Markdown
    illustration_prompts: list[str]  # image-generation input only, never displayed
    practical_application: str = ""
    conclusion: str
    hymns: list[Hymn]


class GeneratedImage(BaseModel):
    """An illustration held in per-view state only; never persisted."""

    model_config = ConfigDict(frozen=True)

    url: str
    prompt: str


class TimelineEntry(BaseModel):
    """A persisted record of a past generation."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    theme: str
    timestamp: int  # epoch milliseconds
