"""
Graph-importance algorithms over the rendered subgraph.

Both functions take the viewport's own networkx graph and never look at the
store's canonical view model.
"""

from typing import Dict

import networkx as nx
import numpy as np


def pagerank_scores(graph: nx.MultiDiGraph, damping: float = 0.85, max_iter: int = 50,
                    tol: float = 1.0e-6) -> Dict[int, float]:
    """
    Damped PageRank by power iteration, capped at max_iter rounds.

    Unlike ``nx.pagerank`` this never raises on non-convergence: the scores
    after the last round are returned as they stand.
    """
    nodes = list(graph.nodes)
    n = len(nodes)
    if n == 0:
        return {}

    # Row-stochastic matrix with teleportation; dangling rows are uniform.
    google = np.asarray(nx.google_matrix(graph, alpha=damping, nodelist=nodes))
    scores = np.full(n, 1.0 / n)
    for _ in range(max_iter):
        previous = scores
        scores = previous @ google
        if np.abs(scores - previous).sum() < n * tol:
            break

    total = scores.sum()
    if total > 0:
        scores = scores / total
    return {node: float(score) for node, score in zip(nodes, scores)}


def normalized_degrees(graph: nx.MultiDiGraph) -> Dict[int, float]:
    """Undirected, unweighted degree divided by n - 1. Parallel edges and self loops are ignored."""
    simple = nx.Graph(graph.to_undirected(as_view=True))
    simple.remove_edges_from(list(nx.selfloop_edges(simple)))
    n = simple.number_of_nodes()
    if n == 0:
        return {}
    if n == 1:
        return {node: 0.0 for node in simple.nodes}
    return {node: degree / (n - 1) for node, degree in simple.degree()}


def scale_sizes(scores: Dict[int, float], base_size: float, max_growth: float) -> Dict[int, float]:
    """Linear map from score to size: base_size for a zero score, base_size + max_growth for the top score."""
    if not scores:
        return {}
    top = max(scores.values())
    if top <= 0:
        return {node: float(base_size) for node in scores}
    return {node: base_size + (score / top) * max_growth for node, score in scores.items()}
