# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Cycle detection for job dependency graphs.

The graph is given as an adjacency mapping ``node -> successors``. Successors
that are not themselves keys of the mapping are ignored, so dangling
references (reported separately by the linter) never cause a false positive.
"""

from typing import Dict, Iterable, List, Mapping, Optional


def detect_cycle(graph: Mapping[str, Iterable[str]]) -> Optional[List[str]]:
    """Return the first cycle found as a closed path, or ``None``.

    The returned path starts and ends with the same node, e.g.
    ``["a", "b", "c", "a"]``. A self-loop is reported as ``["a", "a"]``.
    Traversal order follows the iteration order of *graph* and of each
    successor list, so the result is deterministic.
    """
    adjacency: Dict[str, List[str]] = {
        node: [nbr for nbr in successors if nbr in graph] for node, successors in graph.items()
    }

    WHITE, GRAY, BLACK = 0, 1, 2
    color: Dict[str, int] = {n: WHITE for n in adjacency}
    parent: Dict[str, Optional[str]] = {n: None for n in adjacency}

    def dfs(node: str) -> Optional[List[str]]:
        color[node] = GRAY
        for nbr in adjacency[node]:
            if color[nbr] == GRAY:
                # Walk parents back from node to nbr to rebuild the cycle
                cycle = [nbr]
                cur: Optional[str] = node
                while cur is not None and cur != nbr:
                    cycle.append(cur)
                    cur = parent[cur]
                cycle.append(nbr)
                cycle.reverse()
                return cycle
            if color[nbr] == WHITE:
                parent[nbr] = node
                result = dfs(nbr)
                if result is not None:
                    return result
        color[node] = BLACK
        return None

    for node in adjacency:
        if color[node] == WHITE:
            result = dfs(node)
            if result is not None:
                return result
    return None
