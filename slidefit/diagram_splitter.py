"""Deterministic two-way split of flowchart/graph diagram text.

The parser is line based, not a full diagram grammar: each line is sorted
into a small taxonomy (global directive, edge, node, style, class, other)
and the node graph is rebuilt from edges and declarations. Grouping blocks
(``subgraph``/``end``) and edge-indexed ``linkStyle`` lines are dropped
because their meaning depends on positions that a split does not keep.

Every choice is driven by sorted collections so identical input always
yields identical output.
"""

from __future__ import annotations

import math
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

HEADER_RE = re.compile(r"^(flowchart|graph)\b", re.IGNORECASE)
ARROW_RE = re.compile(r"(-->|---|--|==>|==|\.\.>|\.\.)")
NODE_ID_RE = re.compile(r"^([A-Za-z0-9_][A-Za-z0-9_-]*)")
STYLE_RE = re.compile(r"^style\s+([A-Za-z0-9_][A-Za-z0-9_-]*)\b", re.IGNORECASE)
CLASS_RE = re.compile(r"^class\s+(.+?)\s+([A-Za-z0-9_][A-Za-z0-9_-]*)\s*$", re.IGNORECASE)
CLASSDEF_RE = re.compile(r"^classDef\b", re.IGNORECASE)
DROPPED_RE = re.compile(r"^(linkStyle|subgraph|end)\b", re.IGNORECASE)
NODE_SHAPE_RE = re.compile(r"[\[({]")


@dataclass(frozen=True)
class _Entry:
    kind: str  # global | edge | node | style | class | other
    pos: int
    line: str
    ids: Tuple[str, ...] = ()
    class_name: str = ""


@dataclass
class ParsedDiagram:
    preamble: List[str]
    header: str
    entries: List[_Entry] = field(default_factory=list)

    @property
    def edges(self) -> List[Tuple[str, str]]:
        return [(e.ids[0], e.ids[1]) for e in self.entries if e.kind == "edge"]

    @property
    def nodes(self) -> Set[str]:
        found: Set[str] = set()
        for entry in self.entries:
            if entry.kind in ("edge", "node", "style", "class"):
                found.update(entry.ids)
        return found


@dataclass(frozen=True)
class DiagramStats:
    node_count: int
    edge_count: int


def node_id(token: str) -> Optional[str]:
    match = NODE_ID_RE.match(token)
    return match.group(1) if match else None


def edge_endpoints(line: str) -> Optional[Tuple[str, str]]:
    """First and last token ids of a line containing an arrow."""
    if not ARROW_RE.search(line):
        return None
    tokens = line.split()
    if len(tokens) < 3:
        return None
    left = node_id(tokens[0])
    right = node_id(tokens[-1])
    if not left or not right or left.lower() in ("flowchart", "graph"):
        return None
    return left, right


def _classify(line: str, pos: int) -> Optional[_Entry]:
    text = line.strip()
    if text.startswith("%%") or CLASSDEF_RE.match(text):
        return _Entry("global", pos, line)
    if DROPPED_RE.match(text):
        return None

    endpoints = edge_endpoints(line)
    if endpoints:
        return _Entry("edge", pos, line, endpoints)

    style = STYLE_RE.match(text)
    if style:
        return _Entry("style", pos, line, (style.group(1),))

    cls = CLASS_RE.match(text)
    if cls:
        ids = tuple(i for i in (node_id(part.strip()) for part in cls.group(1).split(",")) if i)
        if ids:
            return _Entry("class", pos, line, ids, cls.group(2))

    ident = node_id(text)
    if ident and NODE_SHAPE_RE.search(text):
        return _Entry("node", pos, line, (ident,))
    return _Entry("other", pos, line)


def parse_diagram(code: str) -> Optional[ParsedDiagram]:
    """Parse flowchart/graph text; other diagram kinds return None."""
    lines = code.replace("\r\n", "\n").replace("\r", "\n").strip().split("\n")

    header_index = None
    for i, line in enumerate(lines):
        text = line.strip()
        if text and not text.startswith("%%"):
            header_index = i
            break
    if header_index is None:
        return None

    header = lines[header_index].strip()
    if not HEADER_RE.match(header):
        return None

    parsed = ParsedDiagram(preamble=[l for l in lines[:header_index] if l.strip()], header=header)
    for offset, line in enumerate(lines[header_index + 1 :]):
        if not line.strip():
            continue
        entry = _classify(line, header_index + 1 + offset)
        if entry is not None:
            parsed.entries.append(entry)
    return parsed


def diagram_stats(code: str) -> Optional[DiagramStats]:
    parsed = parse_diagram(code)
    if parsed is None:
        return None
    return DiagramStats(node_count=len(parsed.nodes), edge_count=len(parsed.edges))


def split_flowchart(code: str) -> Optional[Tuple[str, str]]:
    """Split a flowchart/graph into two standalone diagrams.

    Returns None when the text is not a flowchart, has fewer than two
    nodes, or one half would contain no node or edge.
    """
    parsed = parse_diagram(code)
    if parsed is None:
        return None

    nodes = parsed.nodes
    if len(nodes) < 2:
        return None
    edges = parsed.edges

    group_a, group_b = partition_nodes(nodes, edges)
    if not group_a or not group_b:
        return None

    if _internal_edges(group_a, edges) == 0 or _internal_edges(group_b, edges) == 0:
        hub = hub_node(nodes, edges)
        if hub is not None:
            group_a.add(hub)
            group_b.add(hub)

    part_a = _build_part(parsed, group_a)
    part_b = _build_part(parsed, group_b)
    if part_a is None or part_b is None:
        return None
    return part_a, part_b


def _adjacency(nodes: Set[str], edges: Sequence[Tuple[str, str]]) -> Dict[str, List[str]]:
    neighbours: Dict[str, Set[str]] = {n: set() for n in nodes}
    for a, b in edges:
        neighbours[a].add(b)
        neighbours[b].add(a)
    return {n: sorted(adj) for n, adj in neighbours.items()}


def partition_nodes(nodes: Set[str], edges: Sequence[Tuple[str, str]]) -> Tuple[Set[str], Set[str]]:
    adjacency = _adjacency(nodes, edges)

    seen: Set[str] = set()
    components: List[List[str]] = []
    for start in sorted(nodes):
        if start in seen:
            continue
        seen.add(start)
        component = []
        stack = [start]
        while stack:
            current = stack.pop()
            component.append(current)
            for nxt in adjacency[current]:
                if nxt not in seen:
                    seen.add(nxt)
                    stack.append(nxt)
        components.append(sorted(component))

    components.sort(key=lambda comp: (-len(comp), comp[0]))
    group_a: Set[str] = set()
    group_b: Set[str] = set()
    for component in components:
        target = group_a if len(group_a) <= len(group_b) else group_b
        target.update(component)

    if group_a and group_b:
        return group_a, group_b

    # One component holds everything: take half of it breadth first.
    half = math.ceil(len(nodes) / 2)
    start = min(nodes)
    visited = {start}
    queue = deque([start])
    while queue and len(visited) < half:
        current = queue.popleft()
        for nxt in adjacency[current]:
            if nxt in visited:
                continue
            visited.add(nxt)
            queue.append(nxt)
            if len(visited) >= half:
                break
    return set(visited), set(nodes) - visited


def hub_node(nodes: Set[str], edges: Sequence[Tuple[str, str]]) -> Optional[str]:
    """Highest-degree node, smallest id on ties; None for an edgeless graph."""
    degree = {n: 0 for n in nodes}
    for a, b in edges:
        degree[a] += 1
        degree[b] += 1
    best = min(sorted(degree), key=lambda n: -degree[n], default=None)
    if best is None or degree[best] == 0:
        return None
    return best


def _internal_edges(group: Set[str], edges: Sequence[Tuple[str, str]]) -> int:
    return sum(1 for a, b in edges if a in group and b in group)


def _build_part(parsed: ParsedDiagram, group: Set[str]) -> Optional[str]:
    selected: List[Tuple[int, str]] = []
    has_diagram_line = False

    for entry in parsed.entries:
        if entry.kind == "global":
            selected.append((entry.pos, entry.line))
        elif entry.kind in ("edge", "node"):
            if all(i in group for i in entry.ids):
                selected.append((entry.pos, entry.line))
                has_diagram_line = True
        elif entry.kind == "style":
            if entry.ids[0] in group:
                selected.append((entry.pos, entry.line))
        elif entry.kind == "class":
            kept = [i for i in entry.ids if i in group]
            if kept:
                selected.append((entry.pos, f"class {','.join(kept)} {entry.class_name}"))

    if not has_diagram_line:
        return None

    selected.sort(key=lambda item: item[0])
    out = list(parsed.preamble) + [parsed.header] + [line for _, line in selected]
    return "\n".join(out).strip()
