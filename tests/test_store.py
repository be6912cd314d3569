import pytest

from raaag_lyrics import config
from raaag_lyrics.store import LyricsStore, make_engine


def test_latest_style_guide_and_checklist_win(store):
    assert store.get_latest_style_guide() is None
    assert store.get_latest_quality_checklist() is None

    store.save_style_guide("v1")
    store.save_style_guide("v2")
    store.save_quality_checklist("check v1")

    assert store.get_latest_style_guide() == "v2"
    assert store.get_latest_quality_checklist() == "check v1"


def test_find_reference_examples_matches_any_field(store):
    store.add_reference_example(title="wedding", occasion="Wedding", mood="Romantic", language="Hindi", generated_lyrics="a")
    store.add_reference_example(title="farewell", occasion="Farewell", mood="happy", language="English", generated_lyrics="b")
    store.add_reference_example(title="bday", occasion="Surprise Birthday Party", mood="Nostalgic", generated_lyrics="c")
    store.add_reference_example(title="other", occasion="Anniversary", mood="Calm", language="Tamil", generated_lyrics="d")

    found = store.find_reference_examples("birthday", "Happy", "hindi")

    assert [e.title for e in found] == ["bday", "farewell", "wedding"]


def test_find_reference_examples_ignores_blank_terms(store):
    store.add_reference_example(title="x", occasion="Birthday", generated_lyrics="a")

    assert store.find_reference_examples("", "", "") == []
    assert [e.title for e in store.find_reference_examples("", "  ", "")] == []
    assert [e.title for e in store.find_reference_examples("birth", "", "")] == ["x"]


def test_find_reference_examples_limit(store):
    for i in range(8):
        store.add_reference_example(title=f"e{i}", mood="Happy", generated_lyrics="la")

    found = store.find_reference_examples(mood="happy")

    assert [e.title for e in found] == ["e7", "e6", "e5", "e4", "e3"]


def test_find_learning_signals_filters_unusable_text(store):
    row = store.save_generated_lyrics("A1", "Occasion: Birthday", "lyrics")
    store.record_feedback(row.id, "approved", what_worked="Used nickname")
    store.record_feedback(row.id, "approved", learning_pattern="Short Mukhda")
    store.record_feedback(row.id, "approved")
    store.record_feedback(row.id, "needs_work", what_failed="  ")
    store.record_feedback(row.id, "needs_work", what_failed="Gender mismatch")

    approved = store.find_learning_signals("approved")
    needs_work = store.find_learning_signals("needs_work")

    assert [(s.what_worked, s.learning_pattern) for s in approved] == [(None, "Short Mukhda"), ("Used nickname", None)]
    assert [s.what_failed for s in needs_work] == ["Gender mismatch"]


def test_find_learning_signals_limit(store):
    row = store.save_generated_lyrics("A2", "req", "lyrics")
    for i in range(12):
        store.record_feedback(row.id, "needs_work", what_failed=f"mistake {i}")

    signals = store.find_learning_signals("needs_work")

    assert len(signals) == 10
    assert signals[0].what_failed == "mistake 11"


def test_save_generated_lyrics_regenerates_same_order(store):
    first = store.save_generated_lyrics("ORD-9", "req", "old lyrics")
    store.record_feedback(first.id, "needs_work", what_failed="too long")

    second = store.save_generated_lyrics("ORD-9", "req v2", "new lyrics")

    assert second.id == first.id
    row = store.get_generated_lyrics(first.id)
    assert row.generated_lyrics == "new lyrics"
    assert row.client_request == "req v2"
    assert row.status == "pending"


def test_record_feedback_updates_status(store):
    row = store.save_generated_lyrics("ORD-1", "req", "lyrics")

    signal = store.record_feedback(row.id, "approved", what_worked="great rhyme", notes="client cried")

    assert signal.lyrics_id == row.id
    updated = store.get_generated_lyrics(row.id)
    assert updated.status == "approved"
    assert updated.feedback_notes == "client cried"


def test_record_feedback_unknown_lyrics_or_type(store):
    assert store.record_feedback(999, "approved") is None

    row = store.save_generated_lyrics("ORD-2", "req", "lyrics")
    with pytest.raises(ValueError):
        store.record_feedback(row.id, "rejected")


def test_list_generated_lyrics_by_status(store):
    a = store.save_generated_lyrics("A", "req", "l")
    store.save_generated_lyrics("B", "req", "l")
    store.record_feedback(a.id, "approved")

    assert [r.order_number for r in store.list_generated_lyrics()] == ["B", "A"]
    assert [r.order_number for r in store.list_generated_lyrics(status="approved")] == ["A"]


def test_delete_reference_example(store):
    ex = store.add_reference_example(title="t", generated_lyrics="l")

    assert store.delete_reference_example(ex.id) is True
    assert store.get_reference_example(ex.id) is None
    assert store.delete_reference_example(ex.id) is False


def test_stats(store):
    assert store.get_stats() == {
        "totalGenerated": 0, "approved": 0, "needsWork": 0, "pending": 0, "approvalRate": None,
    }

    ids = [store.save_generated_lyrics(f"S{i}", "req", "l").id for i in range(4)]
    store.record_feedback(ids[0], "approved")
    store.record_feedback(ids[1], "approved")
    store.record_feedback(ids[2], "needs_work")

    assert store.get_stats() == {
        "totalGenerated": 4, "approved": 2, "needsWork": 1, "pending": 1, "approvalRate": 66.67,
    }


def test_database_url_normalises_postgres_scheme():
    assert config.database_url("postgres://u:p@db/raaag") == "postgresql://u:p@db/raaag"
    assert config.database_url("sqlite://") == "sqlite://"


def test_file_backed_sqlite(tmp_path):
    s = LyricsStore(make_engine(f"sqlite:///{tmp_path / 'raaag.db'}"))
    s.create_schema()
    s.save_style_guide("persisted")

    assert LyricsStore(make_engine(f"sqlite:///{tmp_path / 'raaag.db'}")).get_latest_style_guide() == "persisted"


def test_add_reference_example_rejects_unknown_source(store):
    with pytest.raises(ValueError):
        store.add_reference_example(title="t", generated_lyrics="l", source="scraped")


def test_find_reference_examples_treats_wildcards_literally(store):
    store.add_reference_example(title="percent", mood="100% happy", generated_lyrics="a")
    store.add_reference_example(title="plain", mood="1000 happy", generated_lyrics="b")
    store.add_reference_example(title="no underscore", mood="calm", generated_lyrics="c")

    assert [e.title for e in store.find_reference_examples(mood="100%")] == ["percent"]
    assert store.find_reference_examples(mood="_") == []
    assert [e.title for e in store.find_reference_examples(mood="%")] == ["percent"]


def test_find_reference_example_by_order(store):
    store.add_reference_example(title="manual", order_no="RG7", generated_lyrics="a")
    promoted = store.add_reference_example(title="generated", order_no="RG7", generated_lyrics="b", source="generated")

    assert store.find_reference_example_by_order("RG7", "generated").id == promoted.id
    assert store.find_reference_example_by_order("RG8", "generated") is None
