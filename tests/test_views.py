"""
View Mapper Tests
=================

Model + layout + selection -> renderable view contracts.
"""

import pytest

from evidence_graph.contracts.records import DocumentRecord
from evidence_graph.model import GraphModel, GraphModelBuilder
from graph_views.layout.swimlane import SwimlaneLayoutEngine
from graph_views.mapper import ViewMapper, truncate, document_colors
from graph_views.state import AvailabilityState, LayoutPosition
from graph_views.visualization.graph import CATEGORY_COLORS, FALLBACK_COLOR

from tests.fixtures import (
    chain_model, star_model, nelson_export, entity, node, events_only_export,
)


def grid_positions(model: GraphModel):
    return {nid: LayoutPosition(float(i * 10), float(i * 5)) for i, nid in enumerate(model.node_ids)}


class TestTruncation:

    def test_short_text_unchanged(self):
        assert truncate("Nelson", 24) == "Nelson"

    def test_long_text_clipped(self):
        assert truncate("A" * 30, 24) == "A" * 22 + "..."
        assert truncate("Naval Chronicle Vol. 14", 14, "..") == "Naval Chroni.."

    def test_document_colors_cycle(self):
        docs = [DocumentRecord(f"d{i}", f"Doc {i}") for i in range(6)]
        colors = document_colors(docs, ("#1", "#2", "#3", "#4", "#5"))
        assert colors["d0"] == colors["d5"] == "#1"
        assert colors["d4"] == "#5"


class TestNetworkView:

    def test_empty_model_placeholder(self):
        view = ViewMapper().map_network(GraphModel.empty(), {})
        assert view.availability == AvailabilityState.EMPTY
        assert view.placeholder
        assert view.nodes == ()

    def test_colors_and_labels(self):
        model = star_model(3)
        view = ViewMapper().map_network(model, grid_positions(model))
        hub = next(n for n in view.nodes if n.node_id == "H")
        leaf = next(n for n in view.nodes if n.node_id == "L0")
        assert hub.color == CATEGORY_COLORS["organization"]
        assert hub.show_label
        assert not leaf.show_label
        assert hub.radius > leaf.radius

    def test_unknown_category_falls_back(self):
        model = GraphModelBuilder().from_entities([entity("Q", "Q", "vehicle")], [])
        view = ViewMapper().map_network(model, grid_positions(model))
        assert view.nodes[0].color == FALLBACK_COLOR
        assert view.legend[0].category == "vehicle"

    def test_selection_never_hides(self):
        model = chain_model()
        view = ViewMapper(dimmed_opacity=0.2).map_network(model, grid_positions(model), "A")
        assert len(view.nodes) == 3
        opacities = {n.node_id: n.opacity for n in view.nodes}
        assert opacities == {"A": 1.0, "B": 0.2, "C": 0.2}
        selected = next(n for n in view.nodes if n.is_selected)
        assert selected.stroke_width > next(n for n in view.nodes if not n.is_selected).stroke_width

    def test_legend_counts(self):
        model = star_model(2)
        legend = {e.category: e.count for e in ViewMapper().map_network(model, grid_positions(model)).legend}
        assert legend == {"organization": 1, "place": 2}


class TestSwimlaneView:

    @pytest.fixture
    def layout(self):
        nodes, edges = nelson_export()
        return SwimlaneLayoutEngine().layout(GraphModelBuilder().from_export(nodes, edges))

    def test_geometry(self, layout):
        view = ViewMapper().map_swimlane(layout)
        trafalgar = [c for c in view.cards if c.event_id == "ev_trafalgar"]
        column = layout.column_of("ev_trafalgar")
        assert {c.x for c in trafalgar} == {column * 172.0}
        assert sorted(c.y for c in trafalgar) == [8.0, 92.0]
        assert all(c.height == 64.0 for c in view.cards)
        assert [lane.y for lane in view.lanes] == [0.0, 84.0, 168.0]

    def test_minimum_size(self, layout):
        view = ViewMapper().map_swimlane(layout)
        assert view.width == 1100.0
        assert view.height == 600.0

    def test_cards_text(self, layout):
        view = ViewMapper().map_swimlane(layout)
        card = next(c for c in view.cards if c.event_id == "ev_trafalgar")
        assert card.title == "Battle of Trafalgar"
        assert card.date_text == "1805-10-21"
        assert card.badge == "Naval Chroni.."

    def test_document_colours_from_events(self, layout):
        view = ViewMapper().map_swimlane(layout)
        colors = {d.document_id: d.color for d in view.documents}
        # Derived in column order: ev_letter (doc2) comes first
        assert colors == {"doc2": "#3B6FED", "doc1": "#0D9488"}

    def test_supplied_documents_order_colours(self, layout):
        docs = [{"id": "doc1", "title": "Chronicle"}, {"id": "doc2", "title": "Despatches"}]
        view = ViewMapper().map_swimlane(layout, docs)
        card = next(c for c in view.cards if c.event_id == "ev_trafalgar")
        assert card.color == "#3B6FED"

    def test_markers_suppress_overlap(self, layout):
        view = ViewMapper().map_swimlane(layout)
        # doc2 events at columns 0 and 1: mean centre 166; doc1 at column 2: 424
        assert [(m.document_id, m.x) for m in view.markers] == [("doc2", 166.0), ("doc1", 424.0)]

    def test_markers_close_together_dropped(self):
        nodes = [
            node("p", "P", "person"),
            node("e1", "One", "event", entity_id="p", document_id="a", date="1"),
            node("e2", "Two", "event", entity_id="p", document_id="b", date="2"),
        ]
        layout = SwimlaneLayoutEngine().layout(GraphModelBuilder().from_export(nodes, []))
        view = ViewMapper().map_swimlane(layout)
        # a centres at 80, within 100px of the axis start; b centres at 252
        assert [m.document_id for m in view.markers] == ["b"]

    def test_empty_state(self):
        layout = SwimlaneLayoutEngine().layout(GraphModel.empty())
        view = ViewMapper().map_swimlane(layout)
        assert view.availability == AvailabilityState.EMPTY
        assert view.placeholder == "No events extracted yet."

    def test_filtered_empty_state(self):
        nodes, edges = events_only_export()
        engine = SwimlaneLayoutEngine()
        layout = engine.filter_for_entity(engine.layout(GraphModelBuilder().from_export(nodes, edges)), "x")
        view = ViewMapper().map_swimlane(layout, selected_id="x", filtered=True)
        assert view.availability == AvailabilityState.FILTERED
        assert view.placeholder != "No events extracted yet."
        assert view.cards == ()

    def test_fallback_flag_carried(self):
        nodes, edges = events_only_export()
        layout = SwimlaneLayoutEngine().layout(GraphModelBuilder().from_export(nodes, edges))
        view = ViewMapper().map_swimlane(layout)
        assert view.uses_fallback_lane
        assert view.lanes[0].label == "All Events"

    def test_selected_lane_flag(self, layout):
        view = ViewMapper().map_swimlane(layout, selected_id="collingwood")
        assert [lane.is_selected for lane in view.lanes] == [False, True, False]


class TestEntityList:

    @pytest.fixture
    def model(self):
        return GraphModelBuilder().from_entities(
            [
                entity("o", "Admiralty", "organization"),
                entity("p1", "Horatio Nelson", "person", aliases=["Nelson"]),
                entity("p2", "Emma Hamilton", "person"),
                entity("v", "Victory", "vehicle"),
                entity("pl", "Cadiz", "place"),
            ],
            [
                {"id": "r1", "category": "knows", "entityAId": "p2", "entityBId": "p1"},
                {"id": "r2", "category": "serves", "entityAId": "p2", "entityBId": "o"},
            ],
        )

    def test_group_order(self, model):
        view = ViewMapper().map_entity_list(model)
        assert [g.category for g in view.groups] == ["person", "place", "organization", "vehicle"]

    def test_sorted_by_relationship_count(self, model):
        people = ViewMapper().map_entity_list(model).groups[0]
        assert [i.entity_id for i in people.items] == ["p2", "p1"]

    def test_search_by_alias(self, model):
        view = ViewMapper().map_entity_list(model, "nELSon")
        assert view.total == 1
        assert view.groups[0].items[0].entity_id == "p1"

    def test_no_match_is_empty(self, model):
        view = ViewMapper().map_entity_list(model, "zzz")
        assert view.availability == AvailabilityState.EMPTY
        assert view.groups == ()

    def test_selection_flags(self, model):
        view = ViewMapper().map_entity_list(model, selected_id="pl")
        assert view.can_clear_filter
        place = next(g for g in view.groups if g.category == "place")
        assert place.items[0].is_selected
