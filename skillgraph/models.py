"""Typed records for documents and graph nodes, plus payload validation."""

import logging
import re
from dataclasses import dataclass, field

from .config import DEFAULT_KIND, KIND_ALIASES, NODE_ID_PATTERN
from .errors import MalformedSynthesisOutput

logger = logging.getLogger(__name__)

HUB = "hub"

_NODE_ID_RE = re.compile(NODE_ID_PATTERN)


@dataclass(frozen=True)
class SourceDocument:
    """A fetched page reduced to its main text."""

    url: str
    content: str


@dataclass(frozen=True)
class KnowledgeNode:
    id: str
    label: str
    kind: str = DEFAULT_KIND
    description: str = ""
    content: str = ""
    outbound_refs: tuple = ()

    @property
    def is_hub(self):
        return self.kind == HUB


@dataclass(frozen=True)
class SkillGraph:
    topic: str
    nodes: tuple = field(default_factory=tuple)

    def get(self, node_id):
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    @property
    def hub(self):
        """First hub node, or None if the graph has none."""
        for node in self.nodes:
            if node.is_hub:
                return node
        return None

    def to_dict(self):
        """Serialize with the wire field names the synthesis step uses."""
        return {
            "topic": self.topic,
            "nodes": [
                {
                    "id": n.id,
                    "label": n.label,
                    "type": "moc" if n.is_hub else n.kind,
                    "description": n.description,
                    "content": n.content,
                    "links": list(n.outbound_refs),
                }
                for n in self.nodes
            ],
        }


def normalize_kind(raw):
    """Map a wire node type onto a known kind, defaulting to concept."""
    if not isinstance(raw, str):
        return DEFAULT_KIND
    return KIND_ALIASES.get(raw.strip().lower(), DEFAULT_KIND)


def parse_node(raw):
    """Build a KnowledgeNode from one payload entry, or None if unusable."""
    if not isinstance(raw, dict):
        return None
    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id.strip():
        return None
    node_id = node_id.strip()
    if not _NODE_ID_RE.match(node_id):
        logger.warning("Rejecting node id %r: not kebab-case", node_id)
        return None

    links = raw.get("links") or []
    if not isinstance(links, list):
        links = []
    refs = tuple(ref.strip() for ref in links if isinstance(ref, str) and ref.strip())

    label = raw.get("label")
    return KnowledgeNode(
        id=node_id,
        label=label if isinstance(label, str) and label.strip() else node_id,
        kind=normalize_kind(raw.get("type")),
        description=str(raw.get("description") or ""),
        content=str(raw.get("content") or ""),
        outbound_refs=refs,
    )


def parse_skill_graph(payload, topic, min_nodes=3):
    """Validate a synthesis payload and return a SkillGraph.

    Unknown kinds become concepts, entries without an id are skipped and a
    repeated id keeps its first occurrence. Raises MalformedSynthesisOutput
    if fewer than ``min_nodes`` usable nodes remain.
    """
    if not isinstance(payload, dict):
        raise MalformedSynthesisOutput("Generated graph is not a JSON object")
    raw_nodes = payload.get("nodes")
    if not isinstance(raw_nodes, list):
        raise MalformedSynthesisOutput("Generated graph has no node list")

    nodes = []
    seen = set()
    for raw in raw_nodes:
        node = parse_node(raw)
        if node is None:
            logger.warning("Skipping malformed node entry: %r", raw)
            continue
        if node.id in seen:
            logger.warning("Duplicate node id %s, keeping the first", node.id)
            continue
        seen.add(node.id)
        nodes.append(node)

    if len(nodes) < min_nodes:
        raise MalformedSynthesisOutput("Generated graph has too few nodes")

    hubs = sum(1 for n in nodes if n.is_hub)
    if hubs != 1:
        logger.warning("Generated graph has %d hub nodes, expected 1", hubs)

    graph_topic = payload.get("topic")
    if not isinstance(graph_topic, str) or not graph_topic.strip():
        graph_topic = topic
    return SkillGraph(topic=graph_topic, nodes=tuple(nodes))
