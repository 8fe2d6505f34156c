"""Builders shared by the test modules."""

from skillgraph.models import KnowledgeNode

LONG_TEXT = "Postgres query planning depends on table statistics. " * 5


def make_node(node_id, refs=(), kind="concept", label=None, content=""):
    return KnowledgeNode(
        id=node_id,
        label=label or node_id.replace("-", " ").title(),
        kind=kind,
        description=f"About {node_id}",
        content=content or f"# {node_id}\n\nSee [[other]].",
        outbound_refs=tuple(refs),
    )
