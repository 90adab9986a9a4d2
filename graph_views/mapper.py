"""
Model to View Mapper

Converts the model, layout outputs and selection into renderable views.

MAPPING BOUNDARY:
=================
This is the ONLY place where layout and model data become view contracts.
Colour, truncation, highlight and geometry are resolved here, nowhere else.

MAPPING RULES:
==============
1. Always include explicit availability
2. Never hide a node for selection; dim it
3. Preserve layout ordering (lane rows, event columns)
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from evidence_graph.contracts.records import DocumentRecord
from evidence_graph.model import GraphModel

from .layout.swimlane import SwimlaneConfig, SwimlaneLayout, SwimlaneEvent
from .selection import highlight_opacity
from .state import AvailabilityState, LayoutPosition, ViewportTransform
from .visualization.graph import (
    GraphNode, GraphEdge, LegendEntry, NetworkGraphView, category_color,
    SELECTED_STROKE, DEFAULT_STROKE, SELECTED_STROKE_WIDTH, DEFAULT_STROKE_WIDTH,
    EDGE_OPACITY, LABEL_MIN_DEGREE, EMPTY_GRAPH_MESSAGE,
)
from .visualization.timeline import (
    LaneRow, EventCard, DocumentMarker, DocumentLegendEntry, SwimlaneView,
    ENTITY_TYPE_COLORS, ENTITY_TYPE_BACKGROUNDS, LANE_FALLBACK_COLOR,
    LANE_FALLBACK_BACKGROUND, CARD_DEFAULT_COLOR,
    EMPTY_TIMELINE_MESSAGE, EMPTY_TIMELINE_HINT,
    FILTERED_TIMELINE_MESSAGE, FILTERED_TIMELINE_HINT,
)
from .visualization.entity_list import (
    EntityListItem, EntityGroup, EntityListView, CATEGORY_ORDER,
)


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Clip to `limit - 2` characters plus `suffix` when longer than `limit`."""
    if len(text) <= limit:
        return text
    return text[:limit - 2] + suffix


def document_colors(documents: Iterable[DocumentRecord], palette: Tuple[str, ...]) -> Dict[str, str]:
    """Palette colour per document, cycling in document order."""
    return {
        doc.document_id: palette[i % len(palette)]
        for i, doc in enumerate(documents)
    }


class ViewMapper:
    """
    Maps model state to view contracts.

    SINGLE POINT OF CONVERSION:
    ===========================
    All model -> view conversion goes through this class.
    """

    def __init__(
        self,
        swimlane_config: Optional[SwimlaneConfig] = None,
        dimmed_opacity: float = 0.35,
    ):
        self._swimlane = swimlane_config or SwimlaneConfig()
        self._dimmed_opacity = dimmed_opacity

    # =========================================================================
    # NETWORK GRAPH
    # =========================================================================

    def map_network(
        self,
        model: GraphModel,
        positions: Mapping[str, LayoutPosition],
        selected_id: Optional[str] = None,
        transform: Optional[ViewportTransform] = None,
        view_id: str = "network",
    ) -> NetworkGraphView:
        transform = transform or ViewportTransform.identity()
        if model.is_empty:
            return NetworkGraphView(
                view_id=view_id,
                nodes=(),
                edges=(),
                legend=(),
                transform=transform,
                selected_id=None,
                availability=AvailabilityState.EMPTY,
                placeholder=EMPTY_GRAPH_MESSAGE,
            )

        nodes = []
        counts: Dict[str, int] = {}
        for node in model.nodes:
            counts[node.category] = counts.get(node.category, 0) + 1
            position = positions.get(node.node_id)
            if position is None:
                continue
            selected = node.node_id == selected_id
            nodes.append(GraphNode(
                node_id=node.node_id,
                x=position.x,
                y=position.y,
                radius=model.radius(node.node_id),
                color=category_color(node.category),
                label=node.display_name,
                category=node.category,
                degree=node.degree,
                opacity=highlight_opacity(node.node_id, selected_id, self._dimmed_opacity),
                stroke=SELECTED_STROKE if selected else DEFAULT_STROKE,
                stroke_width=SELECTED_STROKE_WIDTH if selected else DEFAULT_STROKE_WIDTH,
                is_selected=selected,
                show_label=node.degree >= LABEL_MIN_DEGREE,
            ))

        edges = tuple(
            GraphEdge(
                edge_id=e.edge_id,
                source_id=e.source_node_id,
                target_id=e.target_node_id,
                category=e.category,
                opacity=EDGE_OPACITY,
                label=e.description,
            )
            for e in model.edges
        )
        legend = tuple(
            LegendEntry(category=category, color=category_color(category), count=count)
            for category, count in counts.items()
        )
        return NetworkGraphView(
            view_id=view_id,
            nodes=tuple(nodes),
            edges=edges,
            legend=legend,
            transform=transform,
            selected_id=selected_id,
            availability=AvailabilityState.PRESENT,
        )

    # =========================================================================
    # SWIMLANE
    # =========================================================================

    def map_swimlane(
        self,
        layout: SwimlaneLayout,
        documents: Optional[Iterable[Any]] = None,
        selected_id: Optional[str] = None,
        view_id: str = "swimlane",
        filtered: bool = False,
    ) -> SwimlaneView:
        """
        `filtered` marks a layout already narrowed to the selection, so an
        empty result reads as "nothing for this entity" rather than "no events".
        """
        cfg = self._swimlane
        docs = self._documents(documents, layout.events)
        colors = document_colors(docs, cfg.document_palette)

        if layout.is_empty:
            return SwimlaneView(
                view_id=view_id,
                lanes=(),
                cards=(),
                markers=(),
                documents=(),
                width=cfg.min_width,
                height=cfg.min_height,
                uses_fallback_lane=False,
                availability=AvailabilityState.FILTERED if filtered else AvailabilityState.EMPTY,
                placeholder=FILTERED_TIMELINE_MESSAGE if filtered else EMPTY_TIMELINE_MESSAGE,
                placeholder_hint=FILTERED_TIMELINE_HINT if filtered else EMPTY_TIMELINE_HINT,
            )

        lane_pitch = cfg.lane_height + cfg.lane_gap
        column_pitch = cfg.event_width + cfg.event_gap
        card_height = cfg.lane_height - 2 * cfg.card_inset

        lanes = tuple(
            LaneRow(
                entity_id=lane.entity.entity_id,
                row=lane.row,
                y=lane.row * lane_pitch,
                height=cfg.lane_height,
                label=truncate(lane.entity.label, cfg.lane_label_limit),
                category=lane.entity.category,
                color=ENTITY_TYPE_COLORS.get(lane.entity.category, LANE_FALLBACK_COLOR),
                background=ENTITY_TYPE_BACKGROUNDS.get(lane.entity.category, LANE_FALLBACK_BACKGROUND),
                is_selected=lane.entity.entity_id == selected_id,
            )
            for lane in layout.lanes
        )

        cards = []
        for card in layout.cards:
            event = layout.events[card.column]
            cards.append(EventCard(
                event_id=card.event_id,
                entity_id=card.entity_id,
                column=card.column,
                x=card.column * column_pitch,
                y=card.row * lane_pitch + cfg.card_inset,
                width=cfg.event_width,
                height=card_height,
                title=truncate(event.label, cfg.card_title_limit),
                date_text=event.date[:cfg.date_limit] if event.date else None,
                badge=truncate(event.document_title, cfg.badge_limit, "..")
                if event.document_title else None,
                color=colors.get(event.document_id, CARD_DEFAULT_COLOR)
                if event.document_id else CARD_DEFAULT_COLOR,
            ))

        width = max(
            cfg.min_width,
            len(layout.events) * column_pitch + cfg.margin_left + cfg.margin_right,
        )
        height = max(
            cfg.min_height,
            len(layout.lanes) * lane_pitch + cfg.margin_top + cfg.margin_bottom,
        )
        return SwimlaneView(
            view_id=view_id,
            lanes=lanes,
            cards=tuple(cards),
            markers=self._document_markers(layout, docs, colors),
            documents=tuple(
                DocumentLegendEntry(document_id=d.document_id, title=d.title, color=colors[d.document_id])
                for d in docs
            ),
            width=width,
            height=height,
            uses_fallback_lane=layout.uses_fallback_lane,
            availability=AvailabilityState.PRESENT,
        )

    def _document_markers(
        self,
        layout: SwimlaneLayout,
        documents: List[DocumentRecord],
        colors: Dict[str, str],
    ) -> Tuple[DocumentMarker, ...]:
        cfg = self._swimlane
        column_pitch = cfg.event_width + cfg.event_gap
        centres: Dict[str, List[float]] = {}
        for column, event in enumerate(layout.events):
            if event.document_id:
                centres.setdefault(event.document_id, []).append(
                    column * column_pitch + cfg.event_width / 2.0
                )

        markers = []
        last_x = 0.0
        for doc in documents:
            xs = centres.get(doc.document_id)
            if not xs:
                continue
            mean_x = sum(xs) / len(xs)
            # Suppress markers that would overlap the previous one
            if mean_x > last_x + cfg.marker_min_spacing:
                markers.append(DocumentMarker(
                    document_id=doc.document_id,
                    x=mean_x,
                    label=doc.title[:12],
                    color=colors[doc.document_id],
                ))
                last_x = mean_x
        return tuple(markers)

    def _documents(
        self,
        documents: Optional[Iterable[Any]],
        events: Tuple[SwimlaneEvent, ...],
    ) -> List[DocumentRecord]:
        """Supplied documents in order, or those referenced by events in column order."""
        if documents is not None:
            parsed = []
            seen = set()
            for raw in documents:
                doc = raw if isinstance(raw, DocumentRecord) else DocumentRecord.from_mapping(raw)
                if doc is None or doc.document_id in seen:
                    continue
                seen.add(doc.document_id)
                parsed.append(doc)
            return parsed

        derived: Dict[str, DocumentRecord] = {}
        for event in events:
            if event.document_id and event.document_id not in derived:
                derived[event.document_id] = DocumentRecord(
                    document_id=event.document_id,
                    title=event.document_title or event.document_id,
                )
        return list(derived.values())

    # =========================================================================
    # ENTITY LIST
    # =========================================================================

    def map_entity_list(
        self,
        model: GraphModel,
        query: str = "",
        selected_id: Optional[str] = None,
        view_id: str = "entities",
    ) -> EntityListView:
        needle = query.strip().lower()
        grouped: Dict[str, List[EntityListItem]] = {}
        total = 0
        for node in model.nodes:
            if node.is_event:
                continue
            if needle and not (
                needle in node.display_name.lower()
                or any(needle in alias.lower() for alias in node.aliases)
            ):
                continue
            total += 1
            grouped.setdefault(node.category, []).append(EntityListItem(
                entity_id=node.node_id,
                name=node.display_name,
                category=node.category,
                aliases=node.aliases,
                relationship_count=node.degree,
                is_selected=node.node_id == selected_id,
            ))

        order = [c for c in CATEGORY_ORDER if c in grouped]
        order += [c for c in grouped if c not in CATEGORY_ORDER]
        groups = tuple(
            EntityGroup(
                category=category,
                items=tuple(sorted(grouped[category], key=lambda item: -item.relationship_count)),
            )
            for category in order
        )
        return EntityListView(
            view_id=view_id,
            query=query,
            groups=groups,
            total=total,
            selected_id=selected_id,
            can_clear_filter=selected_id is not None,
            availability=AvailabilityState.PRESENT if total else AvailabilityState.EMPTY,
        )
