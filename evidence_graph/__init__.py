"""
Evidence Graph - data side of the graph views.

Layers (leaves first):
- contracts: immutable records, graph types, errors-as-data
- model: GraphModel construction (validation, degree)
- observability: audit logs and metrics for every layer
"""

from .contracts.graph import Node, Edge, EventDetails, node_radius
from .model import GraphModel, GraphModelBuilder, GraphModelConfig

__all__ = [
    'Node', 'Edge', 'EventDetails', 'node_radius',
    'GraphModel', 'GraphModelBuilder', 'GraphModelConfig',
]
