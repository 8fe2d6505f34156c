"""Package a skill graph as a folder of markdown notes inside a zip."""

import io
import re
import zipfile


def slugify(text):
    """Lower-case, collapse non-alphanumerics to single dashes."""
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def build_files(graph):
    """One markdown file per node at ``<topic-slug>/<node-id>.md``.

    Returns list of {"path", "content"} dicts in node order.
    """
    folder = slugify(graph.topic) or "skill-graph"
    return [
        {"path": f"{folder}/{node.id}.md", "content": node.content}
        for node in graph.nodes
    ]


def build_readme(graph):
    folder = slugify(graph.topic) or "skill-graph"
    hub = graph.hub
    entry = hub.id if hub else "moc"
    lines = [
        f"# {graph.topic} Skill Graph",
        "",
        f"A traversable knowledge graph of **{len(graph.nodes)} interconnected nodes** "
        f"covering the {graph.topic} domain.",
        "",
        "## Usage",
        "",
        "Copy this folder into your agent's skills directory.",
        f"Point your agent at `{folder}/{entry}.md` as the entry point.",
        "",
        "Each node is one complete thought. Follow [[wikilinks]] to traverse the domain.",
        "",
        "## Node Types",
        "",
        "- **MOC**: Map of Content; the entry point and domain overview",
        "- **Concept**: foundational ideas, theories, and frameworks",
        "- **Pattern**: reusable approaches and techniques",
        "- **Gotcha**: failure modes, counterintuitive findings, common mistakes",
        "",
        "## Nodes",
        "",
    ]
    lines.extend(f"- `{node.id}.md`: {node.description}" for node in graph.nodes)
    lines.append("")
    return "\n".join(lines)


def build_zip(graph):
    """Return the zip archive bytes: every node file plus README.md."""
    folder = slugify(graph.topic) or "skill-graph"
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for f in build_files(graph):
            zf.writestr(f["path"], f["content"])
        zf.writestr(f"{folder}/README.md", build_readme(graph))
    return buf.getvalue()
