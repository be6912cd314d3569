"""
Database models for the lyrics backend
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

FEEDBACK_TYPES = ("approved", "needs_work")
LYRICS_STATUSES = ("pending",) + FEEDBACK_TYPES
EXAMPLE_SOURCES = ("manual", "extracted", "generated")


def utcnow() -> datetime:
    # naive UTC, matching TIMESTAMP WITHOUT TIME ZONE
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None


class StyleGuide(Base):
    """Writing conventions; the most recently written row is current"""
    __tablename__ = "style_guide"

    id = Column(Integer, primary_key=True)
    content = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)


class QualityChecklist(Base):
    """Acceptance criteria; the most recently written row is current"""
    __tablename__ = "quality_checklist"

    id = Column(Integer, primary_key=True)
    content = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)


class ReferenceExample(Base):
    """Past lyrics used as few-shot exemplars"""
    __tablename__ = "reference_examples"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    order_no = Column(String(50), nullable=True)
    mood = Column(String(50), nullable=True, index=True)
    occasion = Column(String(100), nullable=True, index=True)
    language = Column(String(50), nullable=True)
    client_story = Column(Text, nullable=True)
    generated_lyrics = Column(Text, nullable=False)
    learning_notes = Column(Text, nullable=True)
    source = Column(String(50), nullable=False, default="manual")  # manual, extracted, generated
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False, index=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "orderNo": self.order_no,
            "mood": self.mood,
            "occasion": self.occasion,
            "language": self.language,
            "clientStory": self.client_story,
            "generatedLyrics": self.generated_lyrics,
            "learningNotes": self.learning_notes,
            "source": self.source,
            "createdAt": _iso(self.created_at),
        }


class GeneratedLyrics(Base):
    """Every lyrics text produced for a client order"""
    __tablename__ = "generated_lyrics"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(50), nullable=False, unique=True, index=True)
    client_request = Column(Text, nullable=False)
    generated_lyrics = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, approved, needs_work
    feedback_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    feedback = relationship("FeedbackLearning", back_populates="lyrics", cascade="all, delete-orphan")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "clientRequest": self.client_request,
            "lyrics": self.generated_lyrics,
            "status": self.status,
            "feedbackNotes": self.feedback_notes,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class FeedbackLearning(Base):
    """Learning signal recorded when an operator reviews generated lyrics"""
    __tablename__ = "feedback_learning"

    id = Column(Integer, primary_key=True)
    lyrics_id = Column(Integer, ForeignKey("generated_lyrics.id", ondelete="CASCADE"), nullable=True)
    feedback_type = Column(String(20), nullable=False)  # approved, needs_work
    what_worked = Column(Text, nullable=True)
    what_failed = Column(Text, nullable=True)
    learning_pattern = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    lyrics = relationship("GeneratedLyrics", back_populates="feedback")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "lyricsId": self.lyrics_id,
            "feedbackType": self.feedback_type,
            "whatWorked": self.what_worked,
            "whatFailed": self.what_failed,
            "learningPattern": self.learning_pattern,
            "createdAt": _iso(self.created_at),
        }
