import json

from raaag_lyrics.populate import PLACEHOLDER_LYRICS, main, populate
from raaag_lyrics.store import LyricsStore, make_engine

EXTRACTED = [
    {"order_no": "1021", "mood": "Happy", "occasion": "Birthday", "language": "Hindi", "story": "Turning 60"},
    {"order_no": 1022, "mood": "Emotional", "occasion": "Farewell", "language": "Punjabi", "story": None},
]


def test_populate_inserts_extracted_examples(store):
    inserted, failed = populate(store, EXTRACTED)

    assert (inserted, failed) == (2, 0)
    examples = store.list_reference_examples()
    assert {e.title for e in examples} == {"Order 1021 - Birthday", "Order 1022 - Farewell"}
    farewell = next(e for e in examples if e.order_no == "1022")
    assert farewell.source == "extracted"
    assert farewell.generated_lyrics == PLACEHOLDER_LYRICS
    assert farewell.learning_notes == "Extracted from training data - Emotional Farewell in Punjabi"


def test_populate_counts_failures(store):
    bad = {"order_no": "X" * 80, "occasion": "Birthday"}

    def failing_add(**kwargs):
        from sqlalchemy.exc import IntegrityError
        raise IntegrityError("INSERT", {}, Exception("value too long"))

    store.add_reference_example = failing_add
    assert populate(store, [bad]) == (0, 1)


def test_main_reads_json_file(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'raaag.db'}"
    path = tmp_path / "extracted_examples.json"
    path.write_text(json.dumps(EXTRACTED), encoding="utf-8")

    assert main([str(path), "--database-url", db_url]) == 0
    found = LyricsStore(make_engine(db_url)).find_reference_examples(occasion="birthday")
    assert [e.order_no for e in found] == ["1021"]


def test_main_rejects_bad_input(tmp_path):
    path = tmp_path / "examples.json"
    path.write_text('{"not": "a list"}', encoding="utf-8")

    assert main([str(path), "--database-url", "sqlite://"]) == 2
    assert main([str(tmp_path / "missing.json"), "--database-url", "sqlite://"]) == 2


def test_populate_skips_items_that_are_not_objects(store):
    inserted, failed = populate(store, ["oops", 42, None, EXTRACTED[0]])

    assert (inserted, failed) == (1, 3)
    assert [e.order_no for e in store.list_reference_examples()] == ["1021"]
