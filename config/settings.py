"""Application settings — all configuration loaded from environment variables.

Usage:
    from config.settings import Settings
    settings = Settings()
    settings.validate()   # raises ValueError if ANTHROPIC_API_KEY is missing
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "biblia.db"


def _gemini_key() -> str:
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY", "")


@dataclass
class Settings:
    """Centralised application configuration.

    All values are read from environment variables at instantiation time
    so that tests can override them by patching ``os.environ``.
    """

    # ── API Keys ────────────────────────────────────────────────────────────
    anthropic_api_key: str = field(
        default_factory=lambda: os.environ.get("ANTHROPIC_API_KEY", "")
    )
    gemini_api_key: str = field(default_factory=_gemini_key)

    # ── Flask ───────────────────────────────────────────────────────────────
    debug: bool = field(
        default_factory=lambda: os.environ.get("FLASK_DEBUG", "0") == "1"
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("PORT", "5000"))
    )

    # ── Storage ─────────────────────────────────────────────────────────────
    db_path: Path = field(
        default_factory=lambda: Path(os.environ.get("DB_PATH") or DEFAULT_DB_PATH)
    )
    history_limit: int = field(
        default_factory=lambda: int(os.environ.get("HISTORY_LIMIT", "10"))
    )

    # ── Illustrations ───────────────────────────────────────────────────────
    illustration_limit: int = field(
        default_factory=lambda: int(os.environ.get("ILLUSTRATION_LIMIT", "2"))
    )

    # ── AI Models ───────────────────────────────────────────────────────────
    #: Model used for the structured study + sermon pass.
    content_model: str = "claude-sonnet-4-5"
    #: Image-capable model used for sermon illustrations.
    image_model: str = "gemini-2.5-flash-image"

    @property
    def illustrations_enabled(self) -> bool:
        return bool(self.gemini_api_key)

    def validate(self) -> None:
        """Raise ``ValueError`` if any required setting is missing."""
        if not self.anthropic_api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Copy .env.example to .env and add your key."
            )
