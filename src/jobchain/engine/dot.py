# dot.py
# Graphviz renderings of a flow: the full step graph and its stage breakdown.
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Dict, List

if TYPE_CHECKING:
    from .flow import Flow, Step


def dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _node_ids(steps: List["Step"]) -> Dict[str, str]:
    return {s.name: f"step_{i}" for i, s in enumerate(steps)}


def _header(name: str, title: str) -> List[str]:
    return [
        f'digraph "{dot_escape(name)}" {{',
        f'  graph [rankdir=TB, fontsize=10, fontname="Helvetica", labelloc=t, label="{dot_escape(title)}"];',
        '  node  [shape=box, style="rounded,filled", fillcolor=white, color="#4b5563", fontname="Helvetica", fontsize=10];',
        '  edge  [color="#6b7280"];',
        "",
    ]


def render_flow_dot(flow: "Flow") -> str:
    steps = flow.steps
    ids = _node_ids(steps)
    lines = _header(flow.name, f"{flow.name} (flow)")

    lines.append('  head [shape=circle, label="head", fillcolor="#e8f0fe"];')
    lines.append('  tail [shape=circle, label="tail", fillcolor="#e8f0fe"];')
    for s in steps:
        label = f"{dot_escape(s.name)}\\n{dot_escape(s.describe())}"
        lines.append(f'  {ids[s.name]} [label="{label}"];')
    lines.append("")

    needed = {n for s in steps for n in s.needs}
    for s in steps:
        if not s.needs:
            lines.append(f"  head -> {ids[s.name]};")
        for need in s.needs:
            if need in ids:
                lines.append(f"  {ids[need]} -> {ids[s.name]};")
        if s.name not in needed:
            lines.append(f"  {ids[s.name]} -> tail;")

    lines.append("}")
    return "\n".join(lines) + "\n"


def render_steps_dot(flow: "Flow") -> str:
    steps = flow.steps
    ids = _node_ids(steps)
    levels = flow.stages()
    lines = _header(flow.name, f"{flow.name} (stages)")

    for i, level in enumerate(levels, start=1):
        lines.append(f"  subgraph cluster_stage_{i} {{")
        lines.append(f'    label="stage {i} ({len(level)} step(s))";')
        lines.append('    style="rounded,filled";')
        lines.append('    color="#f3f4f6";')
        for name in level:
            lines.append(f'    {ids[name]} [label="{dot_escape(name)}"];')
        lines.append("  }")
        lines.append("")

    # one edge per stage boundary, drawn between the clusters
    for i in range(1, len(levels)):
        src, dst = ids[levels[i - 1][0]], ids[levels[i][0]]
        lines.append(f'  {src} -> {dst} [ltail="cluster_stage_{i}", lhead="cluster_stage_{i + 1}"];')

    lines.append("}")
    return "\n".join(lines) + "\n"


def write_dot(text: str, path: str | Path) -> Path:
    p = Path(path)
    p.write_text(text, encoding="utf-8")
    return p
