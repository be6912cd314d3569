"""
Pytest configuration and fixtures
"""
import pytest

from raaag_lyrics.api import create_app
from raaag_lyrics.generator import GenerationError
from raaag_lyrics.store import LyricsStore, make_engine


class FakeGenerator:
    """Stands in for the OpenAI-backed generator; records every call."""

    def __init__(self, lyrics="मुखड़ा\nतेरी हँसी से रोशन है घर", fail=False, configured=True):
        self.lyrics = lyrics
        self.fail = fail
        self.configured = configured
        self.calls = []

    def generate(self, system_instruction, user_message):
        self.calls.append((system_instruction, user_message))
        if self.fail:
            raise GenerationError("upstream timeout")
        return self.lyrics


@pytest.fixture
def store() -> LyricsStore:
    """Fresh in-memory database per test"""
    s = LyricsStore(make_engine("sqlite://"))
    s.create_schema()
    return s


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def app(store, generator):
    app = create_app(store=store, generator=generator)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
