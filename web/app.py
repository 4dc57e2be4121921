"""
Flask web server for BibliaAI.

Routes
──────
POST   /api/generate                 Generate a study for {"topic": ...}
POST   /api/illustrations            Illustrate {"prompts": [...], "limit": n}
GET    /api/history                  List timeline entries (newest first)
POST   /api/history                  Save {"title": ..., "theme": ...}
DELETE /api/history                  Clear the timeline
POST   /api/history/<id>/resume      Regenerate a study from a timeline entry
GET    /api/theme                    Current theme preference
POST   /api/theme/toggle             Flip light/dark
GET    /api/suggestions              Suggested starter topics
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

# Allow running as `python web/app.py` from the project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from config.settings import Settings
from core.generator import GenerationError
from core.models import StudyContent
from core.orchestrator import SUGGESTED_TOPICS, StudyOrchestrator, hymn_search_url

logger = logging.getLogger(__name__)

GENERATION_FAILED_MESSAGE = (
    "Houve um erro ao gerar o estudo. Por favor, tente novamente com um tema diferente."
)


def _study_payload(study: StudyContent) -> dict:
    data = study.model_dump()
    for hymn, dumped in zip(study.hymns, data["hymns"]):
        dumped["search_url"] = hymn_search_url(hymn)
    return data


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _bad_request(message: str):
    return jsonify({"error": message}), 400


def create_app(orchestrator: Optional[StudyOrchestrator] = None) -> Flask:
    """Build the Flask app around *orchestrator* (production one if omitted)."""
    if orchestrator is None:
        settings = Settings()
        settings.validate()
        orchestrator = StudyOrchestrator.from_settings(settings)

    app = Flask(__name__)

    def _generate(topic: str):
        try:
            study = asyncio.run(orchestrator.generate(topic))
        except GenerationError:
            logger.exception("Generation failed for topic=%r", topic)
            return jsonify({"error": GENERATION_FAILED_MESSAGE}), 502
        return jsonify(
            {
                "study": _study_payload(study),
                "history": [e.model_dump() for e in orchestrator.history.list()],
            }
        )

    # ── Generation ─────────────────────────────────────────────────────────

    @app.post("/api/generate")
    def generate():
        """Generate a study; the caller keeps its previous state on failure."""
        topic = _json_body().get("topic")
        if not isinstance(topic, str) or not topic.strip():
            return _bad_request("topic must be a non-empty string")
        return _generate(topic.strip())

    @app.post("/api/illustrations")
    def illustrations():
        """Return whichever illustrations succeeded; never an error for partial failure."""
        body = _json_body()
        prompts = body.get("prompts", [])
        if not isinstance(prompts, list) or not all(isinstance(p, str) for p in prompts):
            return _bad_request("prompts must be a list of strings")
        limit = body.get("limit")
        # bool is an int subclass; reject it explicitly.
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
            return _bad_request("limit must be a non-negative integer")
        images = asyncio.run(orchestrator.fetch_illustrations(prompts, limit))
        return jsonify({"images": [image.model_dump() for image in images]})

    # ── History ────────────────────────────────────────────────────────────

    @app.get("/api/history")
    def list_history():
        return jsonify([e.model_dump() for e in orchestrator.history.list()])

    @app.post("/api/history")
    def save_history():
        body = _json_body()
        title = body.get("title")
        theme = body.get("theme", "")
        if not isinstance(title, str) or not title.strip():
            return _bad_request("title must be a non-empty string")
        if not isinstance(theme, str):
            return _bad_request("theme must be a string")
        entry = orchestrator.history.add(title.strip(), theme)
        if entry is None:
            return jsonify({"duplicate": True})
        return jsonify(entry.model_dump()), 201

    @app.delete("/api/history")
    def clear_history():
        orchestrator.history.clear()
        return jsonify({"cleared": True})

    @app.post("/api/history/<entry_id>/resume")
    def resume_history(entry_id: str):
        """Regenerate a study using a past entry's title as the topic."""
        entry = orchestrator.history.get(entry_id)
        if entry is None:
            return jsonify({"error": "Not found"}), 404
        return _generate(entry.title)

    # ── Theme & suggestions ────────────────────────────────────────────────

    @app.get("/api/theme")
    def get_theme():
        return jsonify({"theme": orchestrator.theme.value})

    @app.post("/api/theme/toggle")
    def toggle_theme():
        return jsonify({"theme": orchestrator.theme.toggle()})

    @app.get("/api/suggestions")
    def suggestions():
        return jsonify(SUGGESTED_TOPICS)

    return app


# ── Entry point ────────────────────────────────────────────────────────────

if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    settings = Settings()
    create_app().run(debug=settings.debug, host="0.0.0.0", port=settings.port)
