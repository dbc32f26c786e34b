"""
Catalog service: building, cleaning and sampling the song catalog.

Pure computation, no state transitions.
"""
import logging
import random
from typing import Any, List

from pydantic import ValidationError

from models import NONE_SONG_ID, Song

logger = logging.getLogger(__name__)


DEMO_TITLES = [
    "Bohemian Rhapsody", "Sweet Child O' Mine", "Hotel California",
    "Livin' On A Prayer", "Don't Stop Believin'", "Every Breath You Take",
    "Billie Jean", "Like a Prayer", "Wonderwall", "Mr. Brightside",
    "Take On Me", "Africa", "Sweet Caroline", "Dancing Queen",
    "Smells Like Teen Spirit", "Lose Yourself", "Rolling in the Deep",
    "Shape of You", "Uptown Funk", "Shake It Off", "Despacito",
    "Old Town Road", "Blinding Lights", "Someone Like You", "Halo",
]

DEMO_ARTISTS = [
    "Queen", "Guns N' Roses", "Eagles", "Bon Jovi", "Journey",
    "The Police", "Michael Jackson", "Madonna", "Oasis", "The Killers",
    "a-ha", "Toto", "Neil Diamond", "ABBA", "Nirvana",
    "Eminem", "Adele", "Ed Sheeran", "Mark Ronson", "Taylor Swift",
    "Luis Fonsi", "Lil Nas X", "The Weeknd", "Adele", "Beyoncé",
]


def demo_catalog(rng: random.Random = None) -> List[Song]:
    """
    Build the 25-song demo catalog used when the server starts empty.

    Ids run 1..25; years are random in 1970..2019.
    """
    rng = rng or random.Random()
    return [
        Song(id=i + 1, title=title, artist=DEMO_ARTISTS[i], year=1970 + rng.randrange(50))
        for i, title in enumerate(DEMO_TITLES)
    ]


def normalize_catalog(raw: Any) -> List[Song]:
    """
    Turn a client-supplied catalog into a list of songs.

    Anything that is not a list yields an empty catalog. Missing titles and
    blank years are coerced by ``Song``; only entries without a usable id,
    with the reserved None id, or repeating an id already accepted are
    skipped.
    """
    if not isinstance(raw, list):
        logger.warning(f"Catalog replacement is not a list ({type(raw).__name__}), using empty catalog")
        return []

    songs: List[Song] = []
    seen = set()
    for index, item in enumerate(raw):
        try:
            song = Song.model_validate(item)
        except ValidationError as e:
            logger.warning(f"Skipping invalid catalog entry #{index}: {e.error_count()} error(s)")
            continue

        if song.id == NONE_SONG_ID:
            logger.warning(f"Skipping catalog entry #{index}: id {NONE_SONG_ID} is reserved")
            continue
        if song.id in seen:
            logger.warning(f"Skipping catalog entry #{index}: duplicate id {song.id}")
            continue

        seen.add(song.id)
        songs.append(song)

    return songs


def sample_candidates(songs: List[Song], size: int, rng: random.Random) -> List[Song]:
    """
    Pick ``size`` songs uniformly at random without replacement.

    Shuffles a copy of the catalog and takes the head; the catalog itself is
    not reordered.
    """
    pool = list(songs)
    rng.shuffle(pool)
    return pool[:size]
