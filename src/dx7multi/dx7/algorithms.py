"""
The 32 DX7 operator routing graphs.

Each algorithm is stored as data: the carriers summed into the output, the
(modulator, target) edges, and the operator that carries the self-feedback
loop. Operator numbers are 1-6 (DX7 convention).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Algorithm:
    """
    One operator routing graph.

    Attributes:
        carriers: Operators summed into the audio output
        edges: (modulator, target) pairs
        feedback: Operator modulated by its own output
    """
    carriers: tuple[int, ...]
    edges: tuple[tuple[int, int], ...]
    feedback: int

    def modulators_of(self, op: int) -> list[int]:
        """Operators feeding op, highest number first."""
        return sorted((m for m, t in self.edges if t == op), reverse=True)

    def as_graph(self) -> dict[int, list[int]]:
        """Operator -> list of its modulators."""
        return {op: self.modulators_of(op) for op in range(1, 7)}


def _alg(carriers, edges, feedback) -> Algorithm:
    return Algorithm(tuple(carriers), tuple(edges), feedback)


# =============================================================================
# Routing table
# =============================================================================

ALGORITHMS: dict[int, Algorithm] = {
    1: _alg([1, 3], [(2, 1), (4, 3), (5, 4), (6, 5)], 6),
    2: _alg([1, 3], [(2, 1), (4, 3), (5, 4), (6, 5)], 2),
    3: _alg([1, 4], [(2, 1), (3, 2), (5, 4), (6, 5)], 6),
    4: _alg([1, 4], [(2, 1), (3, 2), (5, 4), (6, 5)], 6),  # loop OP4->OP6 taken as OP6 self-feedback
    5: _alg([1, 3, 5], [(2, 1), (4, 3), (6, 5)], 6),
    6: _alg([1, 3, 5], [(2, 1), (4, 3), (6, 5)], 6),  # loop OP5->OP6 taken as OP6 self-feedback
    7: _alg([1, 3], [(2, 1), (4, 3), (5, 3), (6, 5)], 6),
    8: _alg([1, 3], [(2, 1), (4, 3), (5, 3), (6, 5)], 4),
    9: _alg([1, 3], [(2, 1), (4, 3), (5, 3), (6, 5)], 2),
    10: _alg([1, 4], [(2, 1), (3, 2), (5, 4), (6, 4)], 3),
    11: _alg([1, 4], [(2, 1), (3, 2), (5, 4), (6, 4)], 6),
    12: _alg([1, 3], [(2, 1), (4, 3), (5, 3), (6, 3)], 2),
    13: _alg([1, 3], [(2, 1), (4, 3), (5, 3), (6, 3)], 6),
    14: _alg([1, 3], [(2, 1), (4, 3), (5, 4), (6, 4)], 6),
    15: _alg([1, 3], [(2, 1), (4, 3), (5, 4), (6, 4)], 2),
    16: _alg([1], [(2, 1), (3, 1), (5, 1), (4, 3), (6, 5)], 6),
    17: _alg([1], [(2, 1), (3, 1), (5, 1), (4, 3), (6, 5)], 2),
    18: _alg([1], [(2, 1), (3, 1), (4, 1), (5, 4), (6, 5)], 3),
    19: _alg([1, 4, 5], [(2, 1), (3, 2), (6, 4), (6, 5)], 6),
    20: _alg([1, 2, 4], [(3, 1), (3, 2), (5, 4), (6, 4)], 3),
    21: _alg([1, 2, 4, 5], [(3, 1), (3, 2), (6, 4), (6, 5)], 3),
    22: _alg([1, 3, 4, 5], [(2, 1), (6, 3), (6, 4), (6, 5)], 6),
    23: _alg([1, 2, 4, 5], [(3, 2), (6, 4), (6, 5)], 6),
    24: _alg([1, 2, 3, 4, 5], [(6, 3), (6, 4), (6, 5)], 6),
    25: _alg([1, 2, 3, 4, 5], [(6, 4), (6, 5)], 6),
    26: _alg([1, 2, 4], [(3, 2), (5, 4), (6, 4)], 6),
    27: _alg([1, 2, 4], [(3, 2), (5, 4), (6, 4)], 3),
    28: _alg([1, 3, 6], [(2, 1), (4, 3), (5, 4)], 5),
    29: _alg([1, 2, 3, 5], [(4, 3), (6, 5)], 6),
    30: _alg([1, 2, 3, 6], [(4, 3), (5, 4)], 5),
    31: _alg([1, 2, 3, 4, 5], [(6, 5)], 6),
    32: _alg([1, 2, 3, 4, 5, 6], [], 6),
}


def validate_algorithm(algo: Algorithm) -> None:
    """
    Validate algorithm structure.

    Raises:
        ValueError: If algorithm is invalid
    """
    ops = set(range(1, 7))
    if not algo.carriers:
        raise ValueError("Algorithm must have at least one carrier")
    if not set(algo.carriers) <= ops or algo.feedback not in ops:
        raise ValueError("Algorithm references operators outside 1-6")

    for mod, target in algo.edges:
        if mod not in ops or target not in ops:
            raise ValueError(f"Invalid edge {mod}->{target}")
        if mod == target:
            raise ValueError(f"Self-modulation of operator {mod} must use the feedback slot")
        if mod in algo.carriers:
            raise ValueError(f"Carrier {mod} cannot also modulate operator {target}")

    graph = algo.as_graph()

    # Check for cycles using DFS
    def has_cycle(start: int, visited: set, path: set) -> bool:
        visited.add(start)
        path.add(start)
        for mod in graph[start]:
            if mod in path:
                return True
            if mod not in visited:
                if has_cycle(mod, visited, path):
                    return True
        path.remove(start)
        return False

    visited: set[int] = set()
    for op in graph:
        if op not in visited:
            if has_cycle(op, visited, set()):
                raise ValueError("Algorithm contains a cycle")


def topological_sort(algo: Algorithm) -> list[int]:
    """
    Return operators in processing order (modulators before their targets).

    Args:
        algo: Algorithm to order

    Returns:
        List of operator numbers in processing order
    """
    graph = algo.as_graph()
    in_degree = {op: len(mods) for op, mods in graph.items()}
    dependents: dict[int, list[int]] = {op: [] for op in graph}
    for op, modulators in graph.items():
        for mod in modulators:
            dependents[mod].append(op)

    # Kahn's algorithm, highest operator first among ready ones
    queue = [op for op in graph if in_degree[op] == 0]
    result = []

    while queue:
        queue.sort()
        current = queue.pop()
        result.append(current)

        for dep in dependents[current]:
            in_degree[dep] -= 1
            if in_degree[dep] == 0:
                queue.append(dep)

    if len(result) != len(graph):
        raise ValueError("Algorithm contains a cycle")
    return result


def get_carriers(algo: Algorithm) -> list[int]:
    """Carrier operators, ascending."""
    return sorted(algo.carriers)


def get_algorithm(number: int) -> Algorithm:
    """Look up an algorithm by number (1-32)."""
    try:
        return ALGORITHMS[number]
    except KeyError:
        raise ValueError(f"Unknown algorithm {number}. Available: 1-32") from None


# Routing is static; check every graph once, before any render uses it.
for _algo in ALGORITHMS.values():
    validate_algorithm(_algo)

PROCESSING_ORDER: dict[int, tuple[int, ...]] = {
    number: tuple(topological_sort(algo)) for number, algo in ALGORITHMS.items()
}
