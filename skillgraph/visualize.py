"""Generate a standalone interactive HTML view of a skill graph."""

import html as html_lib
import json

from .config import NODE_RADIUS_SCALE, NODE_STYLES
from .graph import prepare_viz_data
from .layout import LayoutController, force_config_dict


def generate_html(graph, title=None, positions=None):
    """Generate a standalone D3 force-layout page for ``graph``.

    Args:
        graph: SkillGraph
        title: page title (defaults to "<topic> Skill Graph")
        positions: optional {node_id: (x, y)} starting positions; when None
            the layout is pre-settled server-side with LayoutController

    Returns:
        (html_string, node_count, link_count)
    """
    if positions is None:
        controller = LayoutController()
        controller.set_graph(graph)
        positions = controller.run()

    title = title or f"{graph.topic} Skill Graph"
    viz = prepare_viz_data(graph)
    contents = {n.id: n.content for n in graph.nodes}
    for node in viz["nodes"]:
        node["content"] = contents.get(node["id"], "")
        if node["id"] in positions:
            node["x"], node["y"] = positions[node["id"]]
    hub = graph.hub

    data = json.dumps({
        "nodes": viz["nodes"],
        "links": viz["links"],
        "forces": force_config_dict(),
        "styles": NODE_STYLES,
        "radiusScale": NODE_RADIUS_SCALE,
        "initialSelection": hub.id if hub else None,
    }).replace("</", "<\\/")

    legend_html = "".join(
        f'<div class="legend-item"><span class="legend-dot" '
        f'style="background:{s["fill"]};border:1.5px solid {s["stroke"]}"></span>{s["label"]}</div>'
        for s in NODE_STYLES.values()
    )
    safe_title = html_lib.escape(title)

    page = f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{safe_title}</title>
<style>
  body {{ margin: 0; overflow: hidden; font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
    background-color: #fafafa; background-image: radial-gradient(circle, #d4d4d8 1px, transparent 1px);
    background-size: 28px 28px; }}
  svg {{ width: 70vw; height: 100vh; }}
  .link {{ stroke: rgba(161,161,170,0.4); stroke-width: 1.2px; }}
  .node {{ cursor: pointer; }}
  .node text {{ fill: #404040; font-size: 10px; font-weight: 500; pointer-events: none;
    paint-order: stroke; stroke: rgba(255,255,255,0.95); stroke-width: 3.5px; stroke-linejoin: round; }}
  .node.selected text {{ fill: #000; font-weight: 700; }}
  .ring {{ fill: none; stroke-width: 1.5px; }}
  #panel {{ position: absolute; top: 0; right: 0; width: 30vw; height: 100vh; overflow-y: auto;
    background: #fff; border-left: 1px solid #e4e4e7; padding: 20px; box-sizing: border-box; }}
  #panel .type {{ color: #71717a; font-size: 11px; text-transform: uppercase; letter-spacing: 0.05em; }}
  #panel h2 {{ margin: 4px 0 8px; }}
  #panel .desc {{ color: #52525b; margin-bottom: 12px; }}
  #panel pre {{ white-space: pre-wrap; font-family: inherit; font-size: 13px; color: #27272a; }}
  #legend {{ position: absolute; bottom: 16px; left: 16px; font-size: 9px; font-weight: 600;
    color: #71717a; background: rgba(255,255,255,0.9); border: 1px solid #e4e4e7;
    padding: 10px 12px; border-radius: 8px; }}
  .legend-item {{ display: flex; align-items: center; margin: 4px 0; }}
  .legend-dot {{ width: 10px; height: 10px; border-radius: 50%; margin-right: 8px; display: inline-block;
    box-sizing: border-box; }}
</style>
</head>
<body>
<svg></svg>
<div id="panel"><div class="desc">Click a node to read it.</div></div>
<div id="legend">
  <div style="margin-bottom:4px;color:#a1a1aa">Node types</div>
  {legend_html}
</div>
<script src="https://d3js.org/d3.v7.min.js"></script>
<script>
const data = {data};
const F = data.forces;
const svg = d3.select("svg");
const width = svg.node().clientWidth, height = svg.node().clientHeight;
const g = svg.append("g");
const zoom = d3.zoom().scaleExtent([0.1, 8]).on("zoom", (e) => g.attr("transform", e.transform));
svg.call(zoom);
const byId = new Map(data.nodes.map(n => [n.id, n]));
const nr = d => (d.val || 1) * data.radiusScale;
const style = d => data.styles[d.type] || data.styles.concept;
let selectedId = null, hoveredId = null;

const simulation = d3.forceSimulation(data.nodes)
  .alphaDecay(F.alpha_decay).alphaMin(F.alpha_min).velocityDecay(F.velocity_decay)
  .force("charge", d3.forceManyBody().strength(F.charge_strength).distanceMax(F.charge_distance_max))
  .force("link", d3.forceLink(data.links).id(d => d.id)
    .distance(l => (l.source.type === "hub" || l.target.type === "hub") ? F.hub_link_distance : F.link_distance))
  .force("center", d3.forceCenter(0, 0));

const link = g.append("g").selectAll("line").data(data.links).join("line").attr("class", "link");
const node = g.append("g").selectAll("g").data(data.nodes).join("g")
  .attr("class", "node")
  .call(d3.drag().on("start", ds).on("drag", dd).on("end", de));
node.append("circle").attr("class", "ring").attr("r", d => nr(d) + 4);
node.append("circle").attr("class", "body").attr("r", nr)
  .attr("fill", d => style(d).fill).attr("stroke", d => style(d).stroke)
  .attr("stroke-width", d => style(d).stroke_width);
node.filter(d => d.type === "hub").append("circle").attr("class", "dot")
  .attr("r", d => nr(d) * 0.35).attr("fill", "rgba(255,255,255,0.85)");
node.append("text").text(d => d.label).attr("text-anchor", "middle").attr("y", d => nr(d) + 14);

node.on("mouseover", (e, d) => {{ hoveredId = d.id; paint(); }})
    .on("mouseout", () => {{ hoveredId = null; paint(); }})
    .on("click", (e, d) => select(d.id));

function paint() {{
  node.classed("selected", d => d.id === selectedId);
  node.select(".ring")
    .attr("stroke", d => d.id === selectedId ? "rgba(0,0,0,0.8)" : (d.id === hoveredId ? "rgba(0,0,0,0.15)" : "none"));
  node.select(".body")
    .attr("fill", d => d.id === selectedId ? "#ffffff" : style(d).fill)
    .attr("stroke", d => d.id === selectedId ? "#000000" : style(d).stroke)
    .attr("stroke-width", d => d.id === selectedId ? 2 : style(d).stroke_width);
  node.select(".dot").attr("display", d => d.id === selectedId ? "none" : null);
}}

function select(id) {{
  const d = byId.get(id);
  if (!d) return;
  selectedId = id;
  const panel = document.getElementById("panel");
  panel.replaceChildren();
  const add = (tag, cls, text) => {{
    const el = document.createElement(tag);
    if (cls) el.className = cls;
    el.textContent = text;
    panel.appendChild(el);
  }};
  add("div", "type", style(d).label);
  add("h2", null, d.label);
  add("div", "desc", d.description);
  add("pre", null, d.content);
  paint();
}}

function fit(duration, padding) {{
  const xs = data.nodes.map(n => n.x), ys = data.nodes.map(n => n.y);
  if (!xs.length) return;
  const x0 = Math.min(...xs), x1 = Math.max(...xs), y0 = Math.min(...ys), y1 = Math.max(...ys);
  const k = Math.min(8, Math.min((width - 2 * padding) / Math.max(x1 - x0, 1),
                                 (height - 2 * padding) / Math.max(y1 - y0, 1)));
  const t = d3.zoomIdentity.translate(width / 2, height / 2).scale(k)
    .translate(-(x0 + x1) / 2, -(y0 + y1) / 2);
  svg.transition().duration(duration).call(zoom.transform, t);
}}

let ticks = 0;
simulation.on("tick", () => {{
  link.attr("x1", d => d.source.x).attr("y1", d => d.source.y)
      .attr("x2", d => d.target.x).attr("y2", d => d.target.y);
  node.attr("transform", d => `translate(${{d.x}},${{d.y}})`);
  if (++ticks >= F.cooldown_ticks) simulation.stop(), fit(F.fit_duration_ms, F.fit_padding);
}});
simulation.on("end", () => fit(F.fit_duration_ms, F.fit_padding));
setTimeout(() => fit(F.fit_duration_ms, F.fit_padding), F.fit_delay_ms);

function ds(e) {{ ticks = 0; if (!e.active) simulation.alphaTarget(0.3).restart(); e.subject.fx = e.subject.x; e.subject.fy = e.subject.y; }}
function dd(e) {{ e.subject.fx = e.x; e.subject.fy = e.y; }}
function de(e) {{ if (!e.active) simulation.alphaTarget(0); e.subject.fx = null; e.subject.fy = null; }}

paint();
if (data.initialSelection) select(data.initialSelection);
</script>
</body>
</html>"""
    return page, len(viz["nodes"]), len(viz["links"])
