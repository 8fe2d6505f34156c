"""Normalize node references into edges and prepare visualization data."""

import logging
from dataclasses import dataclass

from .config import (
    DEFAULT_KIND,
    MAX_REF_WEIGHT,
    NODE_BASE_SIZES,
    NODE_STYLES,
    REF_WEIGHT_STEP,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderNode:
    id: str
    label: str
    kind: str
    visual_weight: float


def build_edges(nodes):
    """Collapse directed node references into unique undirected edges.

    References to ids outside ``nodes`` and self references are dropped.
    A pair referenced from either side, any number of times, yields one
    edge, oriented as it was first seen.

    Returns:
        list of (a, b) id tuples in discovery order.
    """
    valid_ids = {n.id for n in nodes}
    seen = set()
    edges = []
    dropped = 0

    for node in nodes:
        for target in node.outbound_refs:
            if target not in valid_ids or target == node.id:
                dropped += 1
                continue
            key = tuple(sorted((node.id, target)))
            if key in seen:
                continue
            seen.add(key)
            edges.append((node.id, target))

    if dropped:
        logger.debug("Dropped %d dangling or self references", dropped)
    return edges


def visual_weight(node):
    base = NODE_BASE_SIZES.get(node.kind, NODE_BASE_SIZES[DEFAULT_KIND])
    return base + min(len(node.outbound_refs) * REF_WEIGHT_STEP, MAX_REF_WEIGHT)


def build_render_nodes(nodes):
    return [
        RenderNode(id=n.id, label=n.label, kind=n.kind, visual_weight=visual_weight(n))
        for n in nodes
    ]


def prepare_viz_data(graph):
    """Prepare a SkillGraph for the D3 force layout.

    Returns dict with "nodes" and "links"; links use "source"/"target".
    """
    style_default = NODE_STYLES[DEFAULT_KIND]
    descriptions = {n.id: n.description for n in graph.nodes}
    nodes = [
        {
            "id": r.id,
            "label": r.label,
            "type": r.kind,
            "val": r.visual_weight,
            "description": descriptions.get(r.id, ""),
            "color": NODE_STYLES.get(r.kind, style_default)["fill"],
        }
        for r in build_render_nodes(graph.nodes)
    ]
    links = [{"source": a, "target": b} for a, b in build_edges(graph.nodes)]
    return {"nodes": nodes, "links": links}
