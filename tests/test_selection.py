"""Tests for SelectionController transitions."""

import pytest

from classroadmap.errors import NotFoundError
from classroadmap.roadmap import RoadmapStore, SelectionController, SelectionState

from conftest import make_section


class TestInitialState:

    def test_first_section_active(self, selection):
        assert selection.active_id == "A"
        assert selection.state == SelectionState.SECTION_ACTIVE

    def test_empty_store(self):
        selection = SelectionController(RoadmapStore())
        assert selection.active_id is None
        assert selection.state == SelectionState.NONE_SELECTED


class TestSelect:

    def test_select(self, selection):
        selection.select("C")
        assert selection.active_id == "C"
        assert selection.is_active("C")
        assert not selection.is_active("A")

    def test_select_unknown(self, selection):
        with pytest.raises(NotFoundError):
            selection.select("Q")
        assert selection.active_id == "A"

    def test_clear(self, selection):
        selection.clear()
        assert selection.state == SelectionState.NONE_SELECTED

    def test_listeners_only_hear_changes(self, selection):
        heard = []
        selection.subscribe(heard.append)
        selection.select("B")
        selection.select("B")
        selection.clear()
        assert heard == ["B", None]

    def test_unsubscribe(self, selection):
        heard = []
        unsubscribe = selection.subscribe(heard.append)
        unsubscribe()
        selection.select("B")
        assert heard == []


class TestRemoval:

    def test_removing_active_middle_picks_right_sibling(self, store, selection):
        selection.select("B")
        store.remove_section("B")
        assert selection.active_id == "C"

    def test_removing_active_last_picks_left_sibling(self, store, selection):
        selection.select("C")
        store.remove_section("C")
        assert selection.active_id == "B"

    def test_delete_sequence(self, store, selection):
        selection.select("B")
        store.remove_section("B")
        assert selection.active_id == "C"
        store.remove_section("C")
        assert selection.active_id == "A"
        store.remove_section("A")
        assert selection.active_id is None
        assert selection.state == SelectionState.NONE_SELECTED

    def test_removing_inactive_section_keeps_selection(self, store, selection):
        selection.select("C")
        store.remove_section("A")
        assert selection.active_id == "C"

    def test_removing_lesson_keeps_selection(self, store, selection):
        selection.select("B")
        store.remove_lesson("b1")
        assert selection.active_id == "B"

    def test_cleared_selection_stays_cleared(self, store, selection):
        selection.clear()
        store.remove_section("A")
        assert selection.active_id is None


class TestOtherChanges:

    def test_insert_does_not_change_selection(self, store, selection):
        selection.select("B")
        store.insert_section(make_section("D", 0), at_index=0)
        assert selection.active_id == "B"

    def test_insert_into_empty_roadmap_keeps_none(self):
        store = RoadmapStore()
        selection = SelectionController(store)
        store.insert_section(make_section("A", 0))
        assert selection.active_id is None

    def test_move_and_update_keep_selection(self, store, selection):
        selection.select("B")
        store.move_section("B", 0)
        store.update_section("B", {"title": "moved"})
        assert selection.active_id == "B"


class TestReload:

    def test_active_survives_reload(self, store, selection):
        selection.select("C")
        store.load([make_section("C", 0), make_section("D", 1)])
        assert selection.active_id == "C"

    def test_active_dropped_by_reload(self, store, selection):
        selection.select("B")
        store.load([make_section("X", 0), make_section("Y", 1)])
        assert selection.active_id == "X"

    def test_reload_empty(self, store, selection):
        store.load([])
        assert selection.active_id is None

    def test_reload_after_clear_picks_first(self, store, selection):
        selection.clear()
        store.load([make_section("X", 0)])
        assert selection.active_id == "X"

    def test_detach(self, store, selection):
        selection.select("B")
        selection.detach()
        store.remove_section("B")
        assert selection.active_id == "B"
