"""
Graph Fixtures

Explicit, hand-written graphs shared by the test modules.

RULES:
======
1. All fixtures are EXPLICIT, not random (hypothesis strategies live with
   the property tests)
2. Raw mappings, the way collaborators send them
"""

from __future__ import annotations
from typing import Dict, List, Tuple

from evidence_graph.model import GraphModel, GraphModelBuilder
from graph_views.layout.force import ForceLayoutConfig


def entity(entity_id: str, name: str, category: str = "person", aliases=None) -> Dict:
    raw = {"id": entity_id, "name": name, "category": category}
    if aliases is not None:
        raw["aliases"] = aliases
    return raw


def relationship(rel_id: str, a: str, b: str, category: str = "knows", description=None) -> Dict:
    raw = {"id": rel_id, "category": category, "entityAId": a, "entityBId": b}
    if description is not None:
        raw["description"] = description
    return raw


def node(node_id: str, label: str, category: str, **properties) -> Dict:
    return {"id": node_id, "category": category, "label": label, "properties": properties}


def edge(edge_id: str, source: str, target: str, category: str) -> Dict:
    return {"id": edge_id, "category": category, "sourceId": source, "targetId": target}


def chain_records() -> Tuple[List[Dict], List[Dict]]:
    """A - B - C."""
    return (
        [entity("A", "Alice"), entity("B", "Bob"), entity("C", "Carol")],
        [relationship("r1", "A", "B"), relationship("r2", "B", "C")],
    )


def chain_model() -> GraphModel:
    entities, relationships = chain_records()
    return GraphModelBuilder().from_entities(entities, relationships)


def star_model(leaves: int = 4) -> GraphModel:
    """Hub H connected to `leaves` leaf nodes."""
    entities = [entity("H", "Hub", "organization")]
    relationships = []
    for i in range(leaves):
        entities.append(entity(f"L{i}", f"Leaf {i}", "place"))
        relationships.append(relationship(f"s{i}", "H", f"L{i}", "located_in"))
    return GraphModelBuilder().from_entities(entities, relationships)


def nelson_export() -> Tuple[List[Dict], List[Dict]]:
    """
    Entities and events from two documents.

    - ev_trafalgar: explicit involved_entities [nelson], plus an edge
      `collingwood involved_in ev_trafalgar`
    - ev_blockade: `ev_blockade involves villeneuve` edge only
    - ev_letter: explicit entity_id nelson, no date
    - hardy: associated with nothing
    """
    nodes = [
        node("nelson", "Horatio Nelson", "person", aliases=["Nelson"], document_id="doc1"),
        node("collingwood", "Cuthbert Collingwood", "person"),
        node("villeneuve", "Pierre-Charles Villeneuve", "person"),
        node("hardy", "Thomas Hardy", "person"),
        node("ev_trafalgar", "Battle of Trafalgar", "event",
             date="1805-10-21", involved_entities=["nelson"], document_id="doc1",
             document_title="Naval Chronicle Vol. 14", confidence=0.9),
        node("ev_blockade", "Blockade of Cadiz", "event",
             date="1805-08-20", document_id="doc2", document_title="Despatches"),
        node("ev_letter", "Letter to Emma", "event",
             entity_id="nelson", document_id="doc2", document_title="Despatches"),
    ]
    edges = [
        edge("e1", "collingwood", "ev_trafalgar", "involved_in"),
        edge("e2", "ev_blockade", "villeneuve", "involves"),
        edge("e3", "nelson", "hardy", "commands"),
    ]
    return nodes, edges


def events_only_export() -> Tuple[List[Dict], List[Dict]]:
    """Events with no associations at all, plus an unrelated entity."""
    nodes = [
        node("x", "Unlinked", "person"),
        node("ev1", "First", "event", date="1805-03-01"),
        node("ev2", "Second", "event"),
        node("ev3", "Third", "event", date="1805-01-01"),
    ]
    return nodes, []


def fast_layout_config(**overrides) -> ForceLayoutConfig:
    """Deterministic, quickly-settling simulation."""
    values = dict(seed=7, max_iterations=400)
    values.update(overrides)
    return ForceLayoutConfig(**values)
