"""
Bulk-load extracted training examples into the reference examples table.

Usage:
    raaag-populate extracted_examples.json [--database-url URL]

The input is a JSON array of objects with ``order_no``, ``mood``,
``occasion``, ``language`` and ``story`` keys.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Tuple

from sqlalchemy.exc import SQLAlchemyError

from raaag_lyrics.config import configure_logging
from raaag_lyrics.store import LyricsStore, make_engine

logger = logging.getLogger(__name__)

PLACEHOLDER_LYRICS = "Lyrics from training data"


def populate(store: LyricsStore, examples: Iterable[Dict[str, Any]]) -> Tuple[int, int]:
    """Insert every example; returns (inserted, failed)."""
    examples = list(examples)
    logger.info("Populating database with %d examples", len(examples))

    inserted = failed = 0
    for index, example in enumerate(examples, 1):
        if not isinstance(example, dict):
            failed += 1
            logger.error("Skipping item %d: expected an object, got %s", index, type(example).__name__)
            continue

        order_no = example.get("order_no")
        occasion = example.get("occasion")
        mood = example.get("mood")
        language = example.get("language")
        try:
            store.add_reference_example(
                title=f"Order {order_no} - {occasion}",
                order_no=str(order_no) if order_no is not None else None,
                mood=mood,
                occasion=occasion,
                language=language,
                client_story=example.get("story"),
                generated_lyrics=PLACEHOLDER_LYRICS,
                learning_notes=f"Extracted from training data - {mood} {occasion} in {language}",
                source="extracted",
            )
            inserted += 1
        except (SQLAlchemyError, ValueError) as exc:
            failed += 1
            logger.error("Error inserting example %s: %s", order_no, exc)

        if index % 10 == 0:
            logger.info("Processed %d/%d examples", index, len(examples))

    logger.info("Inserted %d examples, %d errors", inserted, failed)
    return inserted, failed


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Load extracted lyrics examples into the database")
    parser.add_argument("path", type=Path, help="JSON file with extracted examples")
    parser.add_argument("--database-url", default=None, help="override DATABASE_URL")
    args = parser.parse_args(argv)

    configure_logging()

    try:
        examples = json.loads(args.path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Cannot read %s: %s", args.path, exc)
        return 2
    if not isinstance(examples, list):
        logger.error("%s must contain a JSON array", args.path)
        return 2

    store = LyricsStore(make_engine(args.database_url))
    store.create_schema()
    _, failed = populate(store, examples)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
