"""Dependency graph utilities.

Builds a name-keyed graph of the packages in a snapshot and provides
topological sorting for determining publish order. Packages must be
published in dependency order so that when package A depends on package B,
B is published first.
"""

from __future__ import annotations

import heapq
from collections.abc import Collection, Iterable, Mapping

from .models import DependencyEdge, DependencyKind, Package

ALL_KINDS = frozenset(DependencyKind)
PRODUCTION_ONLY = frozenset({DependencyKind.PRODUCTION})

EdgeKey = tuple[str, str, DependencyKind]


class DuplicatePackageError(ValueError):
    """Raised when two snapshot entries share a package name."""

    def __init__(self, names: list[str]) -> None:
        self.names = names
        super().__init__(f"Duplicate package names in snapshot: {', '.join(names)}")


class DependencyGraph:
    """Packages connected by dependency edges, keyed by name.

    Edges only exist between packages of the same snapshot. Cycles are
    detected once, at construction, and never make construction fail.

    Attributes:
        nodes: Map of package name → Package.
        edges: Map of (dependent, dependency, kind) → DependencyEdge.
        production_cycles: Sorted member lists of production-edge cycles.
        dev_cycles: Sorted member lists of development-edge cycles.
    """

    def __init__(self, nodes: Mapping[str, Package], edges: Iterable[DependencyEdge]):
        self.nodes: dict[str, Package] = dict(nodes)
        self.edges: dict[EdgeKey, DependencyEdge] = {}
        # dependent → its edges, and dependency → edges pointing at it
        self._forward: dict[str, list[DependencyEdge]] = {n: [] for n in self.nodes}
        self._reverse: dict[str, list[DependencyEdge]] = {n: [] for n in self.nodes}

        for edge in edges:
            key = (edge.dependent, edge.dependency, edge.kind)
            if key in self.edges:
                continue
            self.edges[key] = edge
            self._forward[edge.dependent].append(edge)
            self._reverse[edge.dependency].append(edge)

        self.production_cycles = self.find_cycles(PRODUCTION_ONLY)
        self.dev_cycles = self.find_cycles(frozenset({DependencyKind.DEVELOPMENT}))

    @property
    def cyclic(self) -> frozenset[str]:
        """Names of packages involved in any production-edge cycle."""
        return frozenset(n for cycle in self.production_cycles for n in cycle)

    def edge(
        self, dependent: str, dependency: str, kind: DependencyKind
    ) -> DependencyEdge | None:
        return self.edges.get((dependent, dependency, kind))

    def dependencies_of(
        self, name: str, kinds: Collection[DependencyKind] = ALL_KINDS
    ) -> list[DependencyEdge]:
        """Edges from ``name`` to the packages it depends on."""
        return [e for e in self._forward.get(name, []) if e.kind in kinds]

    def dependents_of(
        self, name: str, kinds: Collection[DependencyKind] = ALL_KINDS
    ) -> list[DependencyEdge]:
        """Edges from packages that depend on ``name``."""
        return [e for e in self._reverse.get(name, []) if e.kind in kinds]

    def find_cycles(self, kinds: Collection[DependencyKind]) -> list[list[str]]:
        """Find dependency cycles over the given edge kinds.

        Uses Tarjan's strongly connected components algorithm. Every
        component with more than one member is a cycle (self-edges are never
        added to the graph). Members and the cycle list are sorted so results
        are deterministic.
        """
        index: dict[str, int] = {}
        lowlink: dict[str, int] = {}
        on_stack: set[str] = set()
        stack: list[str] = []
        cycles: list[list[str]] = []
        counter = 0

        for root in sorted(self.nodes):
            if root in index:
                continue
            # Iterative DFS: (node, iterator over its dependency names)
            index[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)
            work = [(root, iter(self._successors(root, kinds)))]
            while work:
                node, successors = work[-1]
                advanced = False
                for succ in successors:
                    if succ not in index:
                        index[succ] = lowlink[succ] = counter
                        counter += 1
                        stack.append(succ)
                        on_stack.add(succ)
                        work.append((succ, iter(self._successors(succ, kinds))))
                        advanced = True
                        break
                    if succ in on_stack:
                        lowlink[node] = min(lowlink[node], index[succ])
                if advanced:
                    continue
                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])
                if lowlink[node] == index[node]:
                    component: list[str] = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    if len(component) > 1:
                        cycles.append(sorted(component))

        return sorted(cycles)

    def _successors(self, name: str, kinds: Collection[DependencyKind]) -> list[str]:
        return sorted({e.dependency for e in self.dependencies_of(name, kinds)})

    def to_dict(self) -> dict:
        """Serialize the graph with stable ordering."""
        return {
            "nodes": sorted(self.nodes),
            "edges": [
                self.edges[key].model_dump(mode="json")
                for key in sorted(self.edges, key=lambda k: (k[0], k[1], k[2].value))
            ],
            "production_cycles": self.production_cycles,
            "dev_cycles": self.dev_cycles,
        }


def build_graph(packages: Iterable[Package]) -> DependencyGraph:
    """Build the dependency graph for a snapshot.

    For every dependency map of every package, an edge of the matching kind
    is added when the dependency names another snapshot package. External
    dependencies and self-references are omitted.

    Raises:
        DuplicatePackageError: If two packages share a name.
    """
    nodes: dict[str, Package] = {}
    duplicates: set[str] = set()
    for package in packages:
        if package.name in nodes:
            duplicates.add(package.name)
        nodes[package.name] = package
    if duplicates:
        raise DuplicatePackageError(sorted(duplicates))

    edges: list[DependencyEdge] = []
    for name in sorted(nodes):
        package = nodes[name]
        for kind in DependencyKind:
            for dep_name, declared in sorted(package.dependency_map(kind).items()):
                # Only intra-snapshot relationships are modelled
                if dep_name in nodes and dep_name != name:
                    edges.append(
                        DependencyEdge(
                            dependent=name,
                            dependency=dep_name,
                            kind=kind,
                            range=declared,
                        )
                    )
    return DependencyGraph(nodes, edges)


def topo_sort(
    names: Collection[str],
    graph: DependencyGraph,
    kinds: Collection[DependencyKind] = PRODUCTION_ONLY,
) -> tuple[list[str], list[str]]:
    """Topologically sort a subset of the graph.

    Uses Kahn's algorithm to produce an order where dependencies come before
    dependents. Whenever several packages are ready, the lexically smallest
    is taken first, so the output is deterministic.

    Args:
        names: Packages to sort. Edges to packages outside this set are
            ignored (unchanged packages are already published).
        graph: The dependency graph.
        kinds: Edge kinds that constrain the order.

    Returns:
        Tuple of (order, blocked). ``blocked`` lists, sorted, the packages
        that could not be ordered because they sit on or behind a cycle.

    Example:
        If A depends on B, and B depends on C:
        topo_sort({A, B, C}) → ([C, B, A], [])
    """
    selected = set(names)
    # Count incoming edges (dependencies) for each package
    in_degree = {n: 0 for n in selected}
    # Track reverse dependencies (who depends on each package)
    reverse_deps: dict[str, list[str]] = {n: [] for n in selected}

    for name in selected:
        for dep in {e.dependency for e in graph.dependencies_of(name, kinds)}:
            if dep in selected:
                in_degree[name] += 1
                reverse_deps[dep].append(name)

    ready = [n for n, d in in_degree.items() if d == 0]
    heapq.heapify(ready)
    order: list[str] = []

    while ready:
        node = heapq.heappop(ready)
        order.append(node)
        for dependent in reverse_deps[node]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, dependent)

    blocked = sorted(selected - set(order))
    return order, blocked
