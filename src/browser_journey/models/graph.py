"""Read-time graph view over a set of visits."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Node:
    """A unique URL, aggregating every visit to it."""

    id: str
    url: str
    domain: str
    title: str
    visit_count: int
    first_visit: int
    last_visit: int


@dataclass(frozen=True)
class Edge:
    """An observed page-to-page transition (source URL -> target URL)."""

    source: str
    target: str


@dataclass(frozen=True)
class JourneyPath:
    """A weakly-connected component: one browsing journey.

    Nodes are ordered by first visit.
    """

    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]

    @property
    def urls(self) -> frozenset[str]:
        return frozenset(n.url for n in self.nodes)

    @property
    def first_visit(self) -> int:
        return self.nodes[0].first_visit


@dataclass(frozen=True)
class JourneyGraph:
    """All journeys plus the unpartitioned node and edge sets."""

    paths: tuple[JourneyPath, ...]
    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]
