"""
Tests for whole-catalog replacement.
"""

import pytest

from core.catalog_manager import CatalogManager
from core.events import names
from core.round_manager import RoundManager


@pytest.mark.unit
class TestReplaceCatalog:
    def test_replace(self, state):
        events = CatalogManager.replace(state, [{"id": 7, "title": "Seven", "artist": "S", "year": 2001}])
        assert [s.id for s in state.songs] == [7]
        assert names(events) == ["songs:updated", "round:reset"]
        assert events[0].data == [{"id": 7, "title": "Seven", "artist": "S", "year": 2001}]

    def test_non_list_empties_catalog(self, state):
        CatalogManager.replace(state, "not a list")
        assert state.songs == []

    def test_clears_active_round_and_history(self, state, settings):
        RoundManager.prepare_poll(state, settings)
        RoundManager.close_round(state, settings)
        RoundManager.prepare_poll(state, settings)
        RoundManager.open_voting(state)

        CatalogManager.replace(state, [])

        assert state.current_round is None
        assert state.rounds == []

    def test_small_catalog_blocks_poll(self, state, settings, make_songs):
        from core.exceptions import NotEnoughSongs

        CatalogManager.replace(state, [s.to_wire() for s in make_songs(9)])
        with pytest.raises(NotEnoughSongs):
            RoundManager.prepare_poll(state, settings)


@pytest.mark.unit
class TestLooseSongInput:
    """Importer-style entries are coerced, not dropped."""

    def test_null_title_and_blank_year_kept(self, state):
        CatalogManager.replace(state, [
            {"id": 1, "title": None, "artist": "A"},
            {"id": 2, "title": "X", "artist": "B", "year": ""},
        ])
        assert [s.id for s in state.songs] == [1, 2]
        assert state.songs[0].title == ""
        assert state.songs[1].year is None

    def test_extra_fields_round_trip(self, state):
        events = CatalogManager.replace(state, [
            {"id": 1, "title": "T", "artist": "A", "year": 2001, "chord_sheet": "[C]la"},
        ])
        assert events[0].data == [
            {"id": 1, "title": "T", "artist": "A", "year": 2001, "chord_sheet": "[C]la"}
        ]
        assert state.songs[0].to_wire()["chord_sheet"] == "[C]la"

    def test_untitled_song_still_counts_toward_poll(self, state, settings, make_songs):
        catalog = [s.to_wire() for s in make_songs(9)]
        catalog.append({"id": 10, "title": None, "artist": "Anon", "year": ""})
        CatalogManager.replace(state, catalog)

        RoundManager.prepare_poll(state, settings)

        assert len(state.current_round.songs) == 11
