"""
Selection Coordinator Tests
===========================

VERIFICATION:
=============
1. Re-selecting the selected id toggles it off
2. Every change is broadcast synchronously, no-ops are not
3. Timeline filtering: explicit associations first, name/alias heuristic
   only for events with none
"""

import pytest

from evidence_graph.contracts.records import TimelineEntityRef, TimelineEventRecord
from graph_views.selection import (
    SelectionCoordinator, filter_timeline_events, event_matches_entity, highlight_opacity,
)


class TestSelectionState:

    @pytest.fixture
    def coordinator(self):
        return SelectionCoordinator()

    def test_select(self, coordinator):
        assert coordinator.select("X") == "X"
        assert coordinator.selected == "X"
        assert coordinator.is_selected("X")

    def test_reselect_toggles_off(self, coordinator):
        coordinator.select("X")
        assert coordinator.select("X") is None
        assert coordinator.selected is None

    def test_select_other_replaces(self, coordinator):
        coordinator.select("X")
        coordinator.select("Y")
        assert coordinator.selected == "Y"

    def test_clear(self, coordinator):
        coordinator.select("X")
        coordinator.clear()
        assert coordinator.selected is None

    def test_listeners_receive_changes(self, coordinator):
        seen = []
        coordinator.on_change(seen.append)
        coordinator.select("X")
        coordinator.select("Y")
        coordinator.select("Y")
        coordinator.clear()
        assert seen == ["X", "Y", None]

    def test_clear_without_selection_not_broadcast(self, coordinator):
        seen = []
        coordinator.on_change(seen.append)
        coordinator.clear()
        coordinator.reset()
        assert seen == []

    def test_disposed_listener_not_called(self, coordinator):
        seen = []
        subscription = coordinator.on_change(seen.append)
        subscription.dispose()
        coordinator.select("X")
        assert seen == []
        assert not subscription.active

    def test_change_count_drained(self, coordinator):
        coordinator.select("X")
        coordinator.select("X")
        assert coordinator.drain_change_count() == 2
        assert coordinator.drain_change_count() == 0

    def test_audit_actions(self, coordinator):
        coordinator.select("X")
        coordinator.select("X")
        actions = [e.action for e in coordinator.get_audit_log()]
        assert actions == ["entity_selected", "selection_toggled_off"]


class TestHighlight:

    def test_no_selection_full_opacity(self):
        assert highlight_opacity("A", None, 0.35) == 1.0

    def test_selected_full_others_dimmed(self):
        assert highlight_opacity("A", "A", 0.35) == 1.0
        assert highlight_opacity("B", "A", 0.35) == 0.35


class TestTimelineFilter:

    @pytest.fixture
    def trip(self):
        return TimelineEventRecord(
            event_id="t1", title="Departure", description="Notes on bob's trip to Lisbon",
        )

    def test_alias_matches_case_insensitively(self, trip):
        result = filter_timeline_events([trip], "X", name="Robert", aliases=["Bob"])
        assert result == [trip]

    def test_other_entity_excluded(self, trip):
        assert filter_timeline_events([trip], "Y", name="Yvonne", aliases=[]) == []

    def test_explicit_association_wins(self):
        event = TimelineEventRecord(
            event_id="t2", title="Bob arrives",
            entities=(TimelineEntityRef(entity_id="Y", name="Yvonne"),),
        )
        assert event_matches_entity(event, "Y", "Yvonne")
        # Explicit list present: the heuristic is not consulted
        assert not event_matches_entity(event, "X", "Robert", ["Bob"])

    def test_empty_names_ignored(self, trip):
        assert not event_matches_entity(trip, "Z", "", ["  "])

    def test_title_match(self):
        event = TimelineEventRecord(event_id="t3", title="ROBERT sails")
        assert event_matches_entity(event, "X", "Robert")

    def test_no_selection_keeps_all(self, trip):
        other = TimelineEventRecord(event_id="t4", title="Other")
        assert filter_timeline_events([trip, other], None) == [trip, other]

    def test_from_mapping(self):
        record = TimelineEventRecord.from_mapping({
            "id": "t5", "title": "Meeting", "date_text": "March 1805",
            "entities": [{"id": "X", "name": "Robert", "role": "host"}, {"name": "no id"}],
        })
        assert record.entities == (TimelineEntityRef("X", "Robert", None, "host"),)
        assert filter_timeline_events([record], "X") == [record]
