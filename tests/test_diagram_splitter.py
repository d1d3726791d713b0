from __future__ import annotations

from slidefit.diagram_splitter import diagram_stats, edge_endpoints, parse_diagram, split_flowchart

STAR = """flowchart TD
    H --> L1
    H --> L2
    H --> L3
    H --> L4
"""

TWO_CHAINS = """%% two independent flows
flowchart LR
    classDef hot fill:#f96
    A[Start] --> B[Check]
    B --> C[Done]
    X --> Y
    Y --> Z
    style A fill:#fff
    style X fill:#000
    class A,X hot
    linkStyle 0 stroke:#f00
    subgraph group
    end
"""


def test_edge_endpoints_take_first_and_last_tokens() -> None:
    assert edge_endpoints("A[Start] -->|yes| B[Next]") == ("A", "B")
    assert edge_endpoints("style A fill:#fff") is None
    assert edge_endpoints("A-->B") is None


def test_stats_count_nodes_and_edges() -> None:
    stats = diagram_stats(STAR)
    assert (stats.node_count, stats.edge_count) == (5, 4)
    assert diagram_stats("sequenceDiagram\nA->>B: hi") is None


def test_parse_skips_dropped_constructs() -> None:
    parsed = parse_diagram(TWO_CHAINS)
    kinds = [entry.kind for entry in parsed.entries]
    assert "linkStyle" not in " ".join(entry.line for entry in parsed.entries)
    assert kinds.count("edge") == 4
    assert parsed.preamble == ["%% two independent flows"]


def test_split_is_deterministic() -> None:
    first = split_flowchart(TWO_CHAINS)
    second = split_flowchart(TWO_CHAINS)
    assert first is not None
    assert first == second


def test_split_separates_components_and_filters_styles() -> None:
    part_a, part_b = split_flowchart(TWO_CHAINS)
    for part in (part_a, part_b):
        assert part.startswith("%% two independent flows\nflowchart LR")
        assert "classDef hot fill:#f96" in part
        assert "linkStyle" not in part
        assert "subgraph" not in part

    assert "A[Start] --> B[Check]" in part_a
    assert "style A fill:#fff" in part_a
    assert "class A hot" in part_a
    assert "X --> Y" not in part_a

    assert "X --> Y" in part_b
    assert "style X fill:#000" in part_b
    assert "class X hot" in part_b
    assert "A[Start]" not in part_b


def test_star_split_keeps_hub_in_both_parts() -> None:
    part_a, part_b = split_flowchart(STAR)
    for part in (part_a, part_b):
        assert "H --> " in part
    assert "L1" in part_a and "L2" in part_a
    assert "L3" in part_b and "L4" in part_b


def test_unsplittable_inputs_return_none() -> None:
    assert split_flowchart("pie title Pets\n\"Dogs\" : 3") is None
    assert split_flowchart("flowchart TD\n    A[Alone]") is None
    assert split_flowchart("") is None
