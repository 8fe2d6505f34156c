#!/usr/bin/env python3
"""
build_skill_graph.py — Build a skill graph for a topic.

Given a topic, this script:
1. Searches the web for documentation (SERPER_API_KEY)
2. Scrapes the results under SCRAPER_MAX_CONCURRENCY (default 1)
3. Synthesizes interlinked notes via the OpenAI API
4. Writes skill_graph.json, skill_graph.html and <topic>.zip to --dir

Usage:
    python3 build_skill_graph.py "topic" --dir <path>      # Full pipeline
    python3 build_skill_graph.py --dir <path> --viz-only   # Regenerate HTML only
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

from skillgraph.errors import ConcurrencyPlanError, SkillGraphError
from skillgraph.models import parse_skill_graph
from skillgraph.package import build_zip, slugify
from skillgraph.pipeline import run_pipeline
from skillgraph.visualize import generate_html


def write_outputs(graph, out_dir):
    graph_file = out_dir / "skill_graph.json"
    html_file = out_dir / "skill_graph.html"
    zip_file = out_dir / f"{slugify(graph.topic) or 'skill-graph'}.zip"

    with open(graph_file, 'w') as f:
        json.dump(graph.to_dict(), f, indent=2)

    html, n_nodes, n_links = generate_html(graph)
    with open(html_file, 'w') as f:
        f.write(html)

    zip_file.write_bytes(build_zip(graph))

    print(f"  Graph:  {graph_file}")
    print(f"  Viewer: {html_file} ({n_nodes} nodes, {n_links} links)")
    print(f"  Notes:  {zip_file}")


def main():
    args = sys.argv[1:]

    # Parse arguments
    out_dir = None
    viz_only = False
    topic_parts = []

    i = 0
    while i < len(args):
        if args[i] == '--dir' and i + 1 < len(args):
            out_dir = Path(args[i + 1])
            i += 2
        elif args[i] == '--viz-only':
            viz_only = True
            i += 1
        else:
            topic_parts.append(args[i])
            i += 1

    if out_dir is None:
        print("Error: --dir <path> is required")
        print(__doc__)
        sys.exit(1)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    out_dir.mkdir(parents=True, exist_ok=True)
    graph_file = out_dir / "skill_graph.json"

    # Viz-only mode: regenerate HTML from existing graph
    if viz_only:
        if not graph_file.exists():
            print(f"Error: no skill_graph.json in {out_dir}")
            sys.exit(1)
        with open(graph_file) as f:
            payload = json.load(f)
        graph = parse_skill_graph(payload, payload.get("topic", ""), min_nodes=0)
        html, n_nodes, n_links = generate_html(graph)
        with open(out_dir / "skill_graph.html", 'w') as f:
            f.write(html)
        print(f"Wrote skill_graph.html ({n_nodes} nodes, {n_links} links)")
        return

    topic = " ".join(topic_parts).strip()
    if not topic:
        print("Error: a topic is required")
        print(__doc__)
        sys.exit(1)

    from openai import OpenAI

    print(f"Building skill graph for: {topic}")
    try:
        graph, files = asyncio.run(run_pipeline(topic, OpenAI()))
    except ConcurrencyPlanError as e:
        print(f"Error: {e}")
        print("Hint: keep SCRAPER_MAX_CONCURRENCY=1 and run one build at a time.")
        sys.exit(2)
    except SkillGraphError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except asyncio.TimeoutError:
        print("Error: generation timed out")
        sys.exit(1)

    print(f"Synthesized {len(graph.nodes)} nodes ({len(files)} files)")
    write_outputs(graph, out_dir)


if __name__ == "__main__":
    main()
