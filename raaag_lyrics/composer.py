# composer.py  – builds the system prompt sent to the lyrics model

from __future__ import annotations
import logging
import re
import time
from typing import Any, Callable, Iterable, TypeVar
from uuid import uuid4

logger = logging.getLogger(__name__)

T = TypeVar("T")

STORY_EXCERPT_LIMIT = 300
MAX_EXAMPLES        = 5
MAX_SIGNALS         = 10
ORDER_PREFIX        = "ORD-"

DEFAULT_STYLE_GUIDE = """\
- Write in simple, conversational Hindi (Devanagari) unless another language is requested.
- Personalise every song: use the names, places and memories from the client story.
- Structure: Mukhda (chorus) + 2-3 Antaras (verses), repeat the Mukhda after each Antara.
- Keep lines singable: 8-14 syllables, consistent meter within a stanza.
- Prefer fresh imagery over clichés; emotion should come from concrete details."""

DEFAULT_QUALITY_CHECKLIST = """\
- Every line is grammatically correct, with verb and adjective gender matching the subject.
- Rhymes are natural and not forced; no repeated rhyme word within a stanza.
- All names from the client story appear at least once, spelled exactly as given.
- Tone matches the requested mood and occasion throughout.
- No banned or overused phrases; no English filler words in Hindi lyrics.
- The Mukhda is memorable and can stand on its own."""

HEADER = """\
# RAAAG LYRICS GENERATION SYSTEM

You are an expert lyricist for RAAAG, writing personalised songs for clients' special occasions.
Follow the style guide and quality checklist below exactly."""

CLOSING_TASK = """\
## YOUR TASK

Write complete, original song lyrics for the client request in the user message.
Return only the lyrics with section labels (Mukhda / Antara), no commentary.

Before you answer, check:
- Grammar and gender agreement: every verb and adjective agrees with its subject (e.g. "वो आई" for a woman, "वो आया" for a man).
- Rhyme quality: natural, unforced rhymes; never rhyme a word with itself.
- Name inclusion: every name from the client story appears, spelled exactly as given.
- Tone: stay true to the requested mood and occasion from first line to last.
- Banned phrases: do not use "dil ki dhadkan", "chand sitare", "tu hi meri duniya", "pyaar ka safar", "saath jiyenge saath marenge"."""

_ORDER_RE = re.compile(r"\bOrder[ \t]*(?:no|number)\b\.?[ \t]*[:#\-]?[ \t]*([A-Za-z0-9]+)", re.IGNORECASE)


def _label_re(label: str) -> re.Pattern:
    # value stays on the label's own line
    return re.compile(rf"\b{label}[ \t]*[:\-][ \t]*([^\n]*)", re.IGNORECASE)


_FIELD_RES = {name: _label_re(name) for name in ("occasion", "mood", "language")}


def extract_field(text: str, label: str) -> str:
    """Value after ``<label>:`` on the same line, or '' when the label is absent."""
    pattern = _FIELD_RES.get(label.lower()) or _label_re(re.escape(label))
    match = pattern.search(text or "")
    return match.group(1).strip() if match else ""


def extract_fields(text: str) -> dict[str, str]:
    return {name: extract_field(text, name) for name in _FIELD_RES}


def extract_order_number(text: str) -> str:
    match = _ORDER_RE.search(text or "")
    if match:
        return match.group(1)
    # unique per call: lyrics rows are keyed by order number
    return f"{ORDER_PREFIX}{time.time_ns() // 1_000_000}-{uuid4().hex[:6]}"


def excerpt(story: str, limit: int = STORY_EXCERPT_LIMIT) -> str:
    return story if len(story) <= limit else story[:limit] + "..."


def _attr(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _resolve(source: str, read: Callable[[], T], default: T) -> T:
    """Run one store read; a failure or empty result degrades to ``default``."""
    try:
        value = read()
    except Exception as exc:
        logger.warning("%s unavailable, using fallback: %s", source, exc)
        return default
    return value if value else default


# ── sections ──────────────────────────────────────────────────────────────

def _examples_section(examples: Iterable[Any]) -> str:
    blocks = []
    for i, ex in enumerate(examples, 1):
        lines = [f"### Example {i}: {_attr(ex, 'title')}"]
        story = _attr(ex, "client_story")
        if story:
            lines.append(f"Client story: {excerpt(story)}")
        lines.append(f"Lyrics:\n{_attr(ex, 'generated_lyrics')}")
        notes = _attr(ex, "learning_notes")
        if notes:
            lines.append(f"Learning notes: {notes}")
        blocks.append("\n".join(lines))
    return "## REFERENCE EXAMPLES (approved lyrics for similar orders)\n\n" + "\n\n".join(blocks)


def _patterns_section(signals: Iterable[Any]) -> str:
    items = []
    for s in signals:
        text = _attr(s, "what_worked") or _attr(s, "learning_pattern")
        if text:
            items.append(f"- {text}")
    return "## APPROVED PATTERNS (what clients loved)\n\n" + "\n".join(items)


def _mistakes_section(signals: Iterable[Any]) -> str:
    items = [f"- {_attr(s, 'what_failed')}" for s in signals if _attr(s, "what_failed")]
    return "## COMMON MISTAKES TO AVOID\n\n" + "\n".join(items)


def assemble(
    style_guide: str,
    checklist: str,
    examples: list | None = None,
    approved: list | None = None,
    mistakes: list | None = None,
) -> str:
    sections = [
        HEADER,
        f"## STYLE GUIDE\n\n{style_guide}",
        f"## QUALITY CHECKLIST\n\n{checklist}",
    ]
    if examples:
        sections.append(_examples_section(examples))
    if approved:
        sections.append(_patterns_section(approved))
    if mistakes:
        sections.append(_mistakes_section(mistakes))
    sections.append(CLOSING_TASK)
    return "\n\n".join(sections) + "\n"


def fallback_prompt() -> str:
    """Static prompt used when nothing can be read from the store."""
    return assemble(DEFAULT_STYLE_GUIDE, DEFAULT_QUALITY_CHECKLIST)


class PromptComposer:
    """
    Merges the stored style guide, checklist, matching examples and learning
    signals into one system prompt. Every store read is optional: a missing
    or failing source is replaced by its default (or left out) and
    ``compose`` always returns a usable prompt.
    """

    def __init__(self, store: Any):
        self.store = store

    def compose(self, client_request: str) -> str:
        try:
            return self._compose(client_request)
        except Exception:
            logger.exception("Prompt composition failed, using static template")
            return fallback_prompt()

    def _compose(self, client_request: str) -> str:
        fields = extract_fields(client_request)

        style_guide = _resolve("style guide", self.store.get_latest_style_guide, DEFAULT_STYLE_GUIDE)
        checklist = _resolve("quality checklist", self.store.get_latest_quality_checklist, DEFAULT_QUALITY_CHECKLIST)
        examples = _resolve(
            "reference examples",
            lambda: self.store.find_reference_examples(
                fields["occasion"], fields["mood"], fields["language"], limit=MAX_EXAMPLES
            ),
            [],
        )
        approved = _resolve(
            "approved patterns",
            lambda: self.store.find_learning_signals("approved", limit=MAX_SIGNALS),
            [],
        )
        mistakes = _resolve(
            "common mistakes",
            lambda: [
                s for s in self.store.find_learning_signals("needs_work", limit=MAX_SIGNALS)
                if _attr(s, "what_failed")
            ],
            [],
        )

        logger.debug(
            "Composing prompt: occasion=%r mood=%r language=%r examples=%d approved=%d mistakes=%d",
            fields["occasion"], fields["mood"], fields["language"],
            len(examples), len(approved), len(mistakes),
        )
        return assemble(
            style_guide,
            checklist,
            list(examples)[:MAX_EXAMPLES],
            [s for s in approved if _attr(s, "what_worked") or _attr(s, "learning_pattern")][:MAX_SIGNALS],
            list(mistakes)[:MAX_SIGNALS],
        )
