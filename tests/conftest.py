"""
Pytest fixtures for the karaoke coordinator tests.
"""

import os
import random
from collections.abc import Generator
from typing import Any, Callable, List

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing app
os.environ.setdefault("SEED_DEMO_CATALOG", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from config import Settings  # noqa: E402
from core.state import KaraokeState  # noqa: E402
from models import Round, RoundState, Song, Vote, none_option  # noqa: E402
from services.catalog_service import demo_catalog  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Default poll rules, independent of the environment."""
    return Settings(
        min_poll_songs=10,
        poll_size=10,
        quorum_threshold=3,
        detect_ties=True,
        one_vote_per_user=False,
        _env_file=None,
    )


@pytest.fixture
def make_songs() -> Callable[[int], List[Song]]:
    """Factory for a catalog of ``n`` songs with distinct titles."""

    def _make(n: int) -> List[Song]:
        return [
            Song(id=i, title=f"Song {i:02d}", artist=f"Artist {i}", year=1980 + i)
            for i in range(1, n + 1)
        ]

    return _make


@pytest.fixture
def state() -> KaraokeState:
    """Coordinator state seeded with the demo catalog and a fixed RNG."""
    rng = random.Random(1234)
    return KaraokeState(songs=demo_catalog(rng), rng=rng)


@pytest.fixture
def empty_state() -> KaraokeState:
    return KaraokeState(rng=random.Random(1234))


@pytest.fixture
def make_round() -> Callable[..., Round]:
    """Build a voting round from songs and ``(user_id, song_id)`` pairs."""

    def _make(songs: List[Song], votes: List[Any] = (), round_id: int = 1) -> Round:
        return Round(
            id=round_id,
            songs=[*songs, none_option()],
            voting_open=True,
            state=RoundState.VOTING,
            votes=[Vote(user_id=u, song_id=s, round_id=round_id) for u, s in votes],
        )

    return _make


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Test client with the lifespan running, so every test gets fresh state."""
    from main import app

    with TestClient(app) as test_client:
        yield test_client
