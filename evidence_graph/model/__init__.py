"""
Graph Model
===========

Normalizes raw entity/relationship (or node/edge export) records into the
validated, typed graph every view consumes.

RESPONSIBILITY:
===============
- Parse raw records into Node / Edge contracts
- Drop edges whose endpoints are not in the node set
- Compute per-node degree (both endpoints of every retained edge, once each)

FAIL CLOSED:
============
Construction NEVER raises. Malformed input produces an empty or partial
model plus `diagnostics` describing what was dropped.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
import networkx as nx

from ..contracts.base import Error, ErrorCode
from ..contracts.events import AuditEventType, AuditLogEntry
from ..contracts.graph import (
    Node, Edge, EventDetails, node_radius, DEFAULT_CATEGORY, EVENT_CATEGORY,
)
from ..contracts.records import (
    EntityRecord, RelationshipRecord, NodeRecord, EdgeRecord,
)
from ..observability import AuditRecorder


@dataclass
class GraphModelConfig:
    """Configuration for model construction and node sizing."""
    default_category: str = DEFAULT_CATEGORY
    event_category: str = EVENT_CATEGORY
    min_radius: float = 5.0
    radius_scale: float = 5.0


@dataclass(frozen=True)
class GraphModel:
    """
    Immutable, validated graph.

    INVARIANTS:
    - every edge endpoint is a node id in `nodes`
    - `degree[n]` equals the number of edges in `edges` touching `n`
    """
    nodes: Tuple[Node, ...]
    edges: Tuple[Edge, ...]
    degree: Dict[str, int] = field(default_factory=dict)
    diagnostics: Tuple[Error, ...] = field(default_factory=tuple)
    min_radius: float = 5.0
    radius_scale: float = 5.0

    @staticmethod
    def empty() -> GraphModel:
        return GraphModel(nodes=(), edges=())

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    @property
    def node_ids(self) -> Tuple[str, ...]:
        return tuple(n.node_id for n in self.nodes)

    def node(self, node_id: str) -> Optional[Node]:
        for candidate in self.nodes:
            if candidate.node_id == node_id:
                return candidate
        return None

    def edge(self, edge_id: str) -> Optional[Edge]:
        for candidate in self.edges:
            if candidate.edge_id == edge_id:
                return candidate
        return None

    def radius(self, node_id: str) -> float:
        return node_radius(self.degree.get(node_id, 0), self.min_radius, self.radius_scale)

    def to_networkx(self) -> nx.MultiGraph:
        """Undirected multigraph view of the model (parallel edges kept)."""
        graph = nx.MultiGraph()
        for n in self.nodes:
            graph.add_node(n.node_id, category=n.category)
        for e in self.edges:
            graph.add_edge(e.source_node_id, e.target_node_id, key=e.edge_id, category=e.category)
        return graph

    def connected_components(self) -> List[Set[str]]:
        """Disjoint subgraphs, in arbitrary order."""
        if self.is_empty:
            return []
        return [set(c) for c in nx.connected_components(self.to_networkx())]


class GraphModelBuilder:
    """
    Builds GraphModel instances from either collaborator input variant.

    Accepts record instances or raw mappings; raw mappings are parsed
    with the records' `from_mapping` parsers.
    """

    def __init__(self, config: Optional[GraphModelConfig] = None):
        self._config = config or GraphModelConfig()
        self._audit = AuditRecorder('model', AuditEventType.MODEL)

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def from_entities(
        self,
        entities: Any,
        relationships: Any,
    ) -> GraphModel:
        """Build from entity and relationship records."""
        diagnostics: List[Error] = []
        nodes: List[Node] = []
        for raw in self._iterate(entities, 'entities', diagnostics):
            record = raw if isinstance(raw, EntityRecord) else EntityRecord.from_mapping(raw)
            if record is None:
                diagnostics.append(Error.create(
                    ErrorCode.MALFORMED_RECORD, "Entity record without a usable id dropped"
                ))
                continue
            category = self._category(record.category)
            nodes.append(Node(
                node_id=record.entity_id,
                display_name=record.name,
                category=category,
                degree=0,
                aliases=record.aliases,
                event=EventDetails() if category == self._config.event_category else None,
            ))

        edges: List[Edge] = []
        for raw in self._iterate(relationships, 'relationships', diagnostics):
            record = raw if isinstance(raw, RelationshipRecord) else RelationshipRecord.from_mapping(raw)
            if record is None:
                diagnostics.append(Error.create(
                    ErrorCode.MALFORMED_RECORD, "Relationship record without a usable id dropped"
                ))
                continue
            edges.append(Edge(
                edge_id=record.relationship_id,
                category=self._category(record.category),
                source_node_id=record.entity_a_id or '',
                target_node_id=record.entity_b_id or '',
                description=record.description,
            ))

        return self._assemble(nodes, edges, diagnostics)

    def from_export(
        self,
        nodes: Any,
        edges: Any,
    ) -> GraphModel:
        """Build from project-graph export node and edge records."""
        diagnostics: List[Error] = []
        parsed_nodes: List[Node] = []
        for raw in self._iterate(nodes, 'nodes', diagnostics):
            record = raw if isinstance(raw, NodeRecord) else NodeRecord.from_mapping(raw)
            if record is None:
                diagnostics.append(Error.create(
                    ErrorCode.MALFORMED_RECORD, "Node record without a usable id dropped"
                ))
                continue
            parsed_nodes.append(self._node_from_export(record))

        parsed_edges: List[Edge] = []
        for raw in self._iterate(edges, 'edges', diagnostics):
            record = raw if isinstance(raw, EdgeRecord) else EdgeRecord.from_mapping(raw)
            if record is None:
                diagnostics.append(Error.create(
                    ErrorCode.MALFORMED_RECORD, "Edge record without a usable id dropped"
                ))
                continue
            description = dict(record.properties).get('description')
            parsed_edges.append(Edge(
                edge_id=record.edge_id,
                category=self._category(record.category),
                source_node_id=record.source_id or '',
                target_node_id=record.target_id or '',
                description=description if isinstance(description, str) else None,
            ))

        return self._assemble(parsed_nodes, parsed_edges, diagnostics)

    def get_audit_log(self) -> List[AuditLogEntry]:
        """Return copy of audit log entries."""
        return self._audit.entries()

    @property
    def audit(self) -> AuditRecorder:
        return self._audit

    # =========================================================================
    # ASSEMBLY
    # =========================================================================

    def _assemble(
        self,
        nodes: List[Node],
        edges: List[Edge],
        diagnostics: List[Error],
    ) -> GraphModel:
        unique_nodes: Dict[str, Node] = {}
        for n in nodes:
            if n.node_id in unique_nodes:
                diagnostics.append(Error.create(
                    ErrorCode.DUPLICATE_NODE, "Duplicate node id ignored", node_id=n.node_id
                ))
                continue
            unique_nodes[n.node_id] = n

        graph = nx.MultiGraph()
        graph.add_nodes_from(unique_nodes)

        retained: List[Edge] = []
        seen_edge_ids: Set[str] = set()
        dropped = 0
        for e in edges:
            if e.source_node_id not in unique_nodes or e.target_node_id not in unique_nodes:
                dropped += 1
                diagnostics.append(Error.create(
                    ErrorCode.DANGLING_EDGE,
                    "Edge endpoint missing from node set",
                    edge_id=e.edge_id,
                    source=e.source_node_id,
                    target=e.target_node_id,
                ))
                continue
            if e.edge_id in seen_edge_ids:
                continue
            seen_edge_ids.add(e.edge_id)
            graph.add_edge(e.source_node_id, e.target_node_id, key=e.edge_id)
            retained.append(e)

        # MultiGraph degree counts both endpoints of every edge once each
        degree = {node_id: int(d) for node_id, d in graph.degree()}
        final_nodes = tuple(
            Node(
                node_id=n.node_id,
                display_name=n.display_name,
                category=n.category,
                degree=degree.get(n.node_id, 0),
                aliases=n.aliases,
                document_ids=n.document_ids,
                event=n.event,
            )
            for n in unique_nodes.values()
        )

        if not final_nodes:
            diagnostics.append(Error.create(ErrorCode.EMPTY_GRAPH, "Model has no nodes"))

        self._audit.record(
            action="model_built",
            metadata=(
                ("nodes", str(len(final_nodes))),
                ("edges", str(len(retained))),
                ("edges_dropped", str(dropped)),
                ("diagnostics", str(len(diagnostics))),
            ),
        )

        return GraphModel(
            nodes=final_nodes,
            edges=tuple(retained),
            degree=degree,
            diagnostics=tuple(diagnostics),
            min_radius=self._config.min_radius,
            radius_scale=self._config.radius_scale,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _node_from_export(self, record: NodeRecord) -> Node:
        category = self._category(record.category)
        properties = record.property_map()

        aliases = properties.get('aliases')
        alias_tuple = tuple(a for a in aliases if isinstance(a, str) and a) \
            if isinstance(aliases, (list, tuple)) else ()

        document_id = properties.get('document_id')
        document_ids = (document_id,) if isinstance(document_id, str) and document_id else ()

        return Node(
            node_id=record.node_id,
            display_name=record.label,
            category=category,
            degree=0,
            aliases=alias_tuple,
            document_ids=document_ids,
            event=EventDetails.from_properties(properties)
            if category == self._config.event_category else None,
        )

    def _category(self, raw: Optional[str]) -> str:
        if not raw or not raw.strip():
            return self._config.default_category
        return raw.strip().lower()

    def _iterate(self, raw: Any, label: str, diagnostics: List[Error]) -> Iterable[Any]:
        if raw is None:
            return ()
        if isinstance(raw, (str, bytes)) or not hasattr(raw, '__iter__'):
            diagnostics.append(Error.create(
                ErrorCode.MALFORMED_RECORD, f"Expected a sequence of {label}", input=label
            ))
            return ()
        return list(raw)
