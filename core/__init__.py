"""
BibliaAI core package.

Modules
───────
models        — Pydantic data models (StudyContent, GeneratedImage, TimelineEntry)
schema        — structured-output schema + strict response parsing
generator     — Claude/Gemini capability and GenerationClient
illustrations — bounded concurrent illustration batch with partial results
storage       — SQLite key-value persistence and the theme preference
history       — capped, deduplicated study timeline
orchestrator  — StudyOrchestrator, the entry point used by web/app.py
"""
