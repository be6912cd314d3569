"""
Relational storage for style guides, checklists, reference examples,
generated lyrics and feedback.

`LyricsStore` owns the engine and hands out short-lived sessions per call.
Returned ORM objects are detached (``expire_on_commit=False``) so callers can
read their columns after the session closes.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from raaag_lyrics import config
from raaag_lyrics.models import (
    EXAMPLE_SOURCES,
    FEEDBACK_TYPES,
    LYRICS_STATUSES,
    Base,
    FeedbackLearning,
    GeneratedLyrics,
    QualityChecklist,
    ReferenceExample,
    StyleGuide,
    utcnow,
)

logger = logging.getLogger(__name__)


def make_engine(url: Optional[str] = None) -> Engine:
    url = config.database_url(url)
    if url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection so every session sees the same in-memory db
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


def _escape_like(value: str) -> str:
    """Make ``%`` and ``_`` literal inside a LIKE pattern escaped with backslash."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _has_text(column):
    return (column.is_not(None)) & (func.trim(column) != "")


class LyricsStore:
    """Read/write access to everything the lyrics service persists."""

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or make_engine()
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    # ── style guide / checklist ──────────────────────────────────────────

    def get_latest_style_guide(self) -> Optional[str]:
        return self._latest_content(StyleGuide)

    def save_style_guide(self, content: str) -> StyleGuide:
        return self._add(StyleGuide(content=content))

    def get_latest_quality_checklist(self) -> Optional[str]:
        return self._latest_content(QualityChecklist)

    def save_quality_checklist(self, content: str) -> QualityChecklist:
        return self._add(QualityChecklist(content=content))

    def _latest_content(self, model) -> Optional[str]:
        with self.Session() as session:
            stmt = select(model.content).order_by(model.updated_at.desc(), model.id.desc()).limit(1)
            return session.scalars(stmt).first()

    # ── reference examples ───────────────────────────────────────────────

    def find_reference_examples(
        self,
        occasion: str = "",
        mood: str = "",
        language: str = "",
        limit: int = 5,
    ) -> List[ReferenceExample]:
        """
        Examples whose occasion, mood or language contains the given value
        (case-insensitive). Any one field matching is enough; blank values
        are not used as match terms.
        """
        terms = [
            (ReferenceExample.occasion, occasion),
            (ReferenceExample.mood, mood),
            (ReferenceExample.language, language),
        ]
        clauses = [
            column.ilike(f"%{_escape_like(value.strip())}%", escape="\\")
            for column, value in terms
            if value and value.strip()
        ]
        if not clauses:
            return []

        stmt = (
            select(ReferenceExample)
            .where(or_(*clauses))
            .order_by(ReferenceExample.created_at.desc(), ReferenceExample.id.desc())
            .limit(limit)
        )
        with self.Session() as session:
            return list(session.scalars(stmt))

    def add_reference_example(
        self,
        title: str,
        generated_lyrics: str,
        order_no: Optional[str] = None,
        mood: Optional[str] = None,
        occasion: Optional[str] = None,
        language: Optional[str] = None,
        client_story: Optional[str] = None,
        learning_notes: Optional[str] = None,
        source: str = "manual",
    ) -> ReferenceExample:
        if source not in EXAMPLE_SOURCES:
            raise ValueError(f"source must be one of {', '.join(EXAMPLE_SOURCES)}")
        example = ReferenceExample(
            title=title,
            generated_lyrics=generated_lyrics,
            order_no=order_no,
            mood=mood,
            occasion=occasion,
            language=language,
            client_story=client_story,
            learning_notes=learning_notes,
            source=source,
        )
        return self._add(example)

    def list_reference_examples(self, limit: int = 100, offset: int = 0) -> List[ReferenceExample]:
        stmt = (
            select(ReferenceExample)
            .order_by(ReferenceExample.created_at.desc(), ReferenceExample.id.desc())
            .limit(limit)
            .offset(offset)
        )
        with self.Session() as session:
            return list(session.scalars(stmt))

    def get_reference_example(self, example_id: int) -> Optional[ReferenceExample]:
        with self.Session() as session:
            return session.get(ReferenceExample, example_id)

    def find_reference_example_by_order(self, order_no: str, source: str) -> Optional[ReferenceExample]:
        stmt = (
            select(ReferenceExample)
            .where(ReferenceExample.order_no == order_no, ReferenceExample.source == source)
            .order_by(ReferenceExample.id.desc())
            .limit(1)
        )
        with self.Session() as session:
            return session.scalars(stmt).first()

    def delete_reference_example(self, example_id: int) -> bool:
        with self.Session() as session, session.begin():
            example = session.get(ReferenceExample, example_id)
            if example is None:
                return False
            session.delete(example)
        logger.info("Deleted reference example %s", example_id)
        return True

    # ── learning signals ─────────────────────────────────────────────────

    def find_learning_signals(self, feedback_type: str, limit: int = 10) -> List[FeedbackLearning]:
        """
        Most recent feedback of one type that carries usable text: a worked
        pattern for ``approved``, a failure description for ``needs_work``.
        """
        if feedback_type == "approved":
            usable = or_(_has_text(FeedbackLearning.what_worked), _has_text(FeedbackLearning.learning_pattern))
        else:
            usable = _has_text(FeedbackLearning.what_failed)

        stmt = (
            select(FeedbackLearning)
            .where(FeedbackLearning.feedback_type == feedback_type, usable)
            .order_by(FeedbackLearning.created_at.desc(), FeedbackLearning.id.desc())
            .limit(limit)
        )
        with self.Session() as session:
            return list(session.scalars(stmt))

    # ── generated lyrics & feedback ──────────────────────────────────────

    def save_generated_lyrics(self, order_number: str, client_request: str, lyrics: str) -> GeneratedLyrics:
        """Insert lyrics for an order, or replace them when the order is regenerated."""
        with self.Session() as session, session.begin():
            row = session.scalars(
                select(GeneratedLyrics).where(GeneratedLyrics.order_number == order_number)
            ).first()
            if row is None:
                row = GeneratedLyrics(order_number=order_number, client_request=client_request, generated_lyrics=lyrics)
                session.add(row)
            else:
                logger.info("Regenerating lyrics for order %s", order_number)
                row.client_request = client_request
                row.generated_lyrics = lyrics
                row.status = "pending"
                row.updated_at = utcnow()
        return row

    def list_generated_lyrics(self, status: Optional[str] = None, limit: int = 50) -> List[GeneratedLyrics]:
        stmt = select(GeneratedLyrics)
        if status:
            stmt = stmt.where(GeneratedLyrics.status == status)
        stmt = stmt.order_by(GeneratedLyrics.created_at.desc(), GeneratedLyrics.id.desc()).limit(limit)
        with self.Session() as session:
            return list(session.scalars(stmt))

    def get_generated_lyrics(self, lyrics_id: int) -> Optional[GeneratedLyrics]:
        with self.Session() as session:
            return session.get(GeneratedLyrics, lyrics_id)

    def record_feedback(
        self,
        lyrics_id: int,
        feedback_type: str,
        what_worked: Optional[str] = None,
        what_failed: Optional[str] = None,
        learning_pattern: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[FeedbackLearning]:
        """
        Mark lyrics as approved / needs_work and store the learning signal.

        Returns None when the lyrics do not exist.
        Raises ValueError for an unknown feedback type.
        """
        if feedback_type not in FEEDBACK_TYPES:
            raise ValueError(f"feedback_type must be one of {', '.join(FEEDBACK_TYPES)}")

        with self.Session() as session, session.begin():
            lyrics = session.get(GeneratedLyrics, lyrics_id)
            if lyrics is None:
                return None
            lyrics.status = feedback_type
            if notes is not None:
                lyrics.feedback_notes = notes
            lyrics.updated_at = utcnow()

            signal = FeedbackLearning(
                lyrics_id=lyrics_id,
                feedback_type=feedback_type,
                what_worked=what_worked,
                what_failed=what_failed,
                learning_pattern=learning_pattern,
            )
            session.add(signal)

        logger.info("Recorded %s feedback for lyrics %s", feedback_type, lyrics_id)
        return signal

    def get_stats(self) -> Dict[str, Any]:
        with self.Session() as session:
            rows = session.execute(
                select(GeneratedLyrics.status, func.count()).group_by(GeneratedLyrics.status)
            ).all()
        counts = {status: 0 for status in LYRICS_STATUSES}
        counts.update({status: count for status, count in rows})

        reviewed = counts["approved"] + counts["needs_work"]
        approval_rate = round(counts["approved"] * 100 / reviewed, 2) if reviewed else None
        return {
            "totalGenerated": sum(counts.values()),
            "approved": counts["approved"],
            "needsWork": counts["needs_work"],
            "pending": counts["pending"],
            "approvalRate": approval_rate,
        }

    def _add(self, obj):
        with self.Session() as session, session.begin():
            session.add(obj)
        return obj
