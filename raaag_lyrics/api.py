# api.py  – Flask routes for generation, settings, examples and feedback

from __future__ import annotations
import logging
from typing import Any

from flask import Flask, jsonify, request
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError

from raaag_lyrics.composer import (
    DEFAULT_QUALITY_CHECKLIST,
    DEFAULT_STYLE_GUIDE,
    PromptComposer,
    extract_fields,
    extract_order_number,
)
from raaag_lyrics.generator import GenerationError, LyricsGenerator
from raaag_lyrics.models import FEEDBACK_TYPES
from raaag_lyrics.store import LyricsStore

logger = logging.getLogger(__name__)


def _body() -> dict[str, Any]:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def _text(data: dict[str, Any], key: str) -> str:
    return str(data.get(key) or "").strip()


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _limit(default: int, maximum: int = 500) -> int:
    value = request.args.get("limit", type=int)
    if value is None or value < 1:
        return default
    return min(value, maximum)


def create_app(
    store: LyricsStore | None = None,
    generator: LyricsGenerator | None = None,
) -> Flask:
    store     = store or LyricsStore()
    generator = generator or LyricsGenerator()
    composer  = PromptComposer(store)

    store.create_schema()

    # ── Flask app ─────────────────────────────────────────────────────────
    app = Flask(__name__)
    CORS(app)
    app.extensions["raaag"] = {"store": store, "generator": generator, "composer": composer}

    @app.get("/")
    def index() -> tuple[str, int]:
        return "RAAAG Lyrics API live", 200

    @app.get("/api/health")
    def health():
        return jsonify({"status": "ok", "apiKeyConfigured": generator.configured})

    # ── generation ────────────────────────────────────────────────────────

    @app.post("/api/generate")
    def generate():
        data = _body()
        client_request = _text(data, "clientRequest") or _text(data, "prompt")
        if not client_request:
            return _error("clientRequest is required", 400)
        if not generator.configured:
            return _error("API key not configured", 500)

        order_number  = extract_order_number(client_request)
        system_prompt = composer.compose(client_request)

        try:
            lyrics = generator.generate(system_prompt, client_request)
        except GenerationError as exc:
            logger.error("Generation failed for order %s: %s", order_number, exc)
            return _error("Failed to generate lyrics", 500)

        try:
            row = store.save_generated_lyrics(order_number, client_request, lyrics)
        except SQLAlchemyError as exc:
            logger.error("Saving lyrics for order %s failed: %s", order_number, exc)
            return _error("Failed to save lyrics", 500)
        logger.info("Saved lyrics %s for order %s", row.id, order_number)
        return jsonify({"id": row.id, "orderNumber": order_number, "lyrics": lyrics})

    @app.post("/api/prompt/preview")
    def prompt_preview():
        client_request = _text(_body(), "clientRequest")
        if not client_request:
            return _error("clientRequest is required", 400)
        return jsonify({
            "orderNumber": extract_order_number(client_request),
            "fields":      extract_fields(client_request),
            "prompt":      composer.compose(client_request),
        })

    # ── style guide / checklist ───────────────────────────────────────────

    def _register_setting(path: str, name: str, read, write, default: str) -> None:
        def get_setting():
            content = read()
            return jsonify({"content": content or default, "source": "stored" if content else "default"})

        def put_setting():
            content = _text(_body(), "content")
            if not content:
                return _error("content is required", 400)
            write(content)
            logger.info("Updated %s", name.replace("_", " "))
            return jsonify({"content": content, "source": "stored"})

        app.add_url_rule(path, f"get_{name}", get_setting, methods=["GET"])
        app.add_url_rule(path, f"put_{name}", put_setting, methods=["PUT", "POST"])

    _register_setting(
        "/api/style-guide", "style_guide",
        store.get_latest_style_guide, store.save_style_guide, DEFAULT_STYLE_GUIDE,
    )
    _register_setting(
        "/api/quality-checklist", "quality_checklist",
        store.get_latest_quality_checklist, store.save_quality_checklist, DEFAULT_QUALITY_CHECKLIST,
    )

    # ── reference examples ────────────────────────────────────────────────

    @app.get("/api/examples")
    def list_examples():
        offset = max(request.args.get("offset", 0, type=int), 0)
        examples = store.list_reference_examples(limit=_limit(100), offset=offset)
        return jsonify([e.to_dict() for e in examples])

    @app.post("/api/examples")
    def create_example():
        data   = _body()
        title  = _text(data, "title")
        lyrics = _text(data, "generatedLyrics")
        if not title or not lyrics:
            return _error("title and generatedLyrics are required", 400)

        example = store.add_reference_example(
            title            = title,
            generated_lyrics = lyrics,
            order_no         = _text(data, "orderNo") or None,
            mood             = _text(data, "mood") or None,
            occasion         = _text(data, "occasion") or None,
            language         = _text(data, "language") or None,
            client_story     = _text(data, "clientStory") or None,
            learning_notes   = _text(data, "learningNotes") or None,
        )
        logger.info("Added reference example %s", example.id)
        return jsonify(example.to_dict()), 201

    @app.get("/api/examples/<int:example_id>")
    def get_example(example_id: int):
        example = store.get_reference_example(example_id)
        if example is None:
            return _error("Example not found", 404)
        return jsonify(example.to_dict())

    @app.delete("/api/examples/<int:example_id>")
    def delete_example(example_id: int):
        if not store.delete_reference_example(example_id):
            return _error("Example not found", 404)
        return jsonify({"deleted": example_id})

    # ── lyrics history & feedback ─────────────────────────────────────────

    @app.get("/api/lyrics")
    def list_lyrics():
        status = request.args.get("status") or None
        rows = store.list_generated_lyrics(status=status, limit=_limit(50))
        return jsonify([r.to_dict() for r in rows])

    @app.get("/api/lyrics/<int:lyrics_id>")
    def get_lyrics(lyrics_id: int):
        row = store.get_generated_lyrics(lyrics_id)
        if row is None:
            return _error("Lyrics not found", 404)
        return jsonify(row.to_dict())

    @app.post("/api/lyrics/<int:lyrics_id>/feedback")
    def feedback(lyrics_id: int):
        data = _body()
        feedback_type = _text(data, "feedbackType")
        if feedback_type not in FEEDBACK_TYPES:
            return _error(f"feedbackType must be one of {', '.join(FEEDBACK_TYPES)}", 400)

        signal = store.record_feedback(
            lyrics_id,
            feedback_type,
            what_worked      = _text(data, "whatWorked") or None,
            what_failed      = _text(data, "whatFailed") or None,
            learning_pattern = _text(data, "learningPattern") or None,
            notes            = _text(data, "notes") or None,
        )
        if signal is None:
            return _error("Lyrics not found", 404)

        result: dict[str, Any] = {"feedback": signal.to_dict()}
        if feedback_type == "approved" and data.get("addAsExample"):
            result["example"] = _promote(store, lyrics_id, signal.what_worked).to_dict()
        return jsonify(result), 201

    @app.get("/api/stats")
    def stats():
        return jsonify(store.get_stats())

    return app


def _promote(store: LyricsStore, lyrics_id: int, notes: str | None):
    """Copy approved lyrics into the reference examples, once per order."""
    row      = store.get_generated_lyrics(lyrics_id)
    existing = store.find_reference_example_by_order(row.order_number, "generated")
    if existing is not None:
        logger.info("Lyrics %s already promoted as example %s", lyrics_id, existing.id)
        return existing

    fields = extract_fields(row.client_request)
    title  = f"Order {row.order_number}"
    if fields["occasion"]:
        title += f" - {fields['occasion']}"

    example = store.add_reference_example(
        title            = title,
        generated_lyrics = row.generated_lyrics,
        order_no         = row.order_number,
        mood             = fields["mood"] or None,
        occasion         = fields["occasion"] or None,
        language         = fields["language"] or None,
        client_story     = row.client_request,
        learning_notes   = notes,
        source           = "generated",
    )
    logger.info("Promoted lyrics %s to reference example %s", lyrics_id, example.id)
    return example
