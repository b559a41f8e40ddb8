"""
Graph utilities shared by validation and estimation.

Both functions are deterministic: node order and edge order follow the
caller's input order, and BFS visits neighbors in the order their first
connecting edge was supplied. NetworkX preserves insertion order for
nodes and adjacency, which is what makes that guarantee hold.
"""

from collections.abc import Iterable, Sequence
from typing import Any

import networkx as nx


def connected_components(
    nodes: Iterable[str],
    edges: Iterable[tuple[str, str]],
) -> list[list[str]]:
    """
    Partition nodes into connected components.

    Edges touching a node outside `nodes` are ignored. Every input node
    appears in exactly one component, including isolated nodes.

    Args:
        nodes: Node names, in the order components should be discovered
        edges: Undirected (a, b) pairs

    Returns:
        List of components, each a list of node names in BFS order

    Example:
        >>> connected_components(["A", "B", "C"], [("A", "B")])
        [['A', 'B'], ['C']]
    """
    G = nx.Graph()
    G.add_nodes_from(nodes)
    G.add_edges_from((a, b) for a, b in edges if a in G and b in G)

    visited: set[str] = set()
    components: list[list[str]] = []
    for node in G:
        if node in visited:
            continue
        component = [node] + [v for _, v in nx.bfs_edges(G, node)]
        visited.update(component)
        components.append(component)

    return components


def spanning_tree_edges(
    nodes: Sequence[str],
    edges: Iterable[tuple[str, str, Any]],
) -> list[tuple[str, str, Any]]:
    """
    BFS spanning tree over a connected group of nodes.

    The root is nodes[0]. When several edges join the same pair of nodes,
    the first one supplied is the one the tree uses.

    Args:
        nodes: Node names; nodes[0] is the root
        edges: (a, b, payload) triples; payload is returned untouched

    Returns:
        Tree edges in discovery order as (parent, child, payload), where
        the parent was already in the tree when the edge was added
    """
    if not nodes:
        return []

    G = nx.MultiGraph()
    G.add_nodes_from(nodes)
    for a, b, payload in edges:
        if a in G and b in G:
            G.add_edge(a, b, payload=payload)

    tree: list[tuple[str, str, Any]] = []
    for parent, child in nx.bfs_edges(G, nodes[0]):
        first_key = next(iter(G[parent][child]))
        tree.append((parent, child, G[parent][child][first_key]["payload"]))
    return tree
