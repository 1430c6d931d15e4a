"""Build the URL-level navigation graph and split it into journeys."""

from bisect import bisect_left
from collections import Counter
from collections.abc import Iterable, Sequence

import networkx as nx

from browser_journey.models.graph import Edge, JourneyGraph, JourneyPath, Node
from browser_journey.models.journey import Visit


def merge_nodes(visits: Iterable[Visit]) -> dict[str, Node]:
    """Group visits by URL into nodes, keyed by URL in first-seen order.

    Domain and title come from the first visit seen for the URL.
    """
    nodes: dict[str, Node] = {}
    for v in visits:
        node = nodes.get(v.url)
        if node is None:
            nodes[v.url] = Node(
                id=v.url,
                url=v.url,
                domain=v.domain,
                title=v.title,
                visit_count=1,
                first_visit=v.timestamp,
                last_visit=v.timestamp,
            )
        else:
            nodes[v.url] = Node(
                id=node.id,
                url=node.url,
                domain=node.domain,
                title=node.title,
                visit_count=node.visit_count + 1,
                first_visit=min(node.first_visit, v.timestamp),
                last_visit=max(node.last_visit, v.timestamp),
            )
    return nodes


def derive_edges(visits: Sequence[Visit]) -> list[Edge]:
    """Link each attributed visit to the page it most likely came from.

    The source is the latest visit in the same tab, strictly earlier, whose domain
    is the target's ``from_domain``. Moves within one domain never make an edge,
    and duplicates are dropped.
    """
    # (tab, domain) -> visits sorted by timestamp, with a parallel timestamp list.
    index: dict[tuple[int | None, str], list[Visit]] = {}
    for v in visits:
        index.setdefault((v.tab_id, v.domain), []).append(v)
    stamps: dict[tuple[int | None, str], list[int]] = {}
    for key, group in index.items():
        group.sort(key=lambda x: x.timestamp)
        stamps[key] = [x.timestamp for x in group]

    edges: list[Edge] = []
    seen: set[Edge] = set()
    for v in visits:
        if not v.from_domain or v.from_domain == v.domain:
            continue
        key = (v.tab_id, v.from_domain)
        group = index.get(key)
        if not group:
            continue
        pos = bisect_left(stamps[key], v.timestamp)
        if pos == 0:
            continue
        # Equal timestamps: the earliest recorded of them wins.
        source = group[bisect_left(stamps[key], stamps[key][pos - 1])]
        edge = Edge(source=source.url, target=v.url)
        if edge not in seen:
            seen.add(edge)
            edges.append(edge)
    return edges


def partition_paths(nodes: dict[str, Node], edges: Sequence[Edge]) -> list[JourneyPath]:
    """Split the graph into weakly-connected components.

    Nodes inside a path are ordered by first visit; paths by their earliest node.
    """
    order = {url: i for i, url in enumerate(nodes)}

    def sort_key(node: Node) -> tuple[int, int]:
        return node.first_visit, order[node.url]

    graph = nx.DiGraph()
    graph.add_nodes_from(nodes)
    graph.add_edges_from((e.source, e.target) for e in edges)

    paths: list[JourneyPath] = []
    for component in nx.weakly_connected_components(graph):
        path_nodes = sorted((nodes[url] for url in component), key=sort_key)
        path_edges = tuple(e for e in edges if e.source in component)
        paths.append(JourneyPath(nodes=tuple(path_nodes), edges=path_edges))

    paths.sort(key=lambda p: sort_key(p.nodes[0]))
    return paths


def build_graph(visits: Iterable[Visit]) -> JourneyGraph:
    """Merge visits into nodes, derive edges, and partition into journeys."""
    visit_list = list(visits)
    nodes = merge_nodes(visit_list)
    edges = derive_edges(visit_list)
    return JourneyGraph(
        paths=tuple(partition_paths(nodes, edges)),
        nodes=tuple(nodes.values()),
        edges=tuple(edges),
    )


def assign_depths(path: JourneyPath) -> dict[str, int]:
    """Depth of every node below the path's roots, for tree-style layouts.

    Roots are nodes without incoming edges. A path where every node has one
    (a cycle) is rooted at its earliest node.
    """
    if not path.nodes:
        return {}
    children: dict[str, list[str]] = {n.url: [] for n in path.nodes}
    has_parent: set[str] = set()
    for e in path.edges:
        children[e.source].append(e.target)
        has_parent.add(e.target)

    roots = [n.url for n in path.nodes if n.url not in has_parent] or [path.nodes[0].url]

    depths: dict[str, int] = {}
    for root in roots:
        todo = [(root, 0)]
        while todo:
            url, depth = todo.pop()
            if url in depths:
                continue
            depths[url] = depth
            todo.extend((child, depth + 1) for child in reversed(children[url]))

    for n in path.nodes:
        depths.setdefault(n.url, 0)
    return depths


def primary_domain(path: JourneyPath) -> str:
    """The domain with the most pages in the path."""
    return Counter(n.domain for n in path.nodes).most_common(1)[0][0]


def filter_paths(
    paths: Sequence[JourneyPath],
    *,
    search: str | None = None,
    hide_single_page: bool = False,
) -> list[tuple[int, JourneyPath]]:
    """Select paths, keeping their index in ``paths``.

    ``search`` matches any node's URL, title or domain, case-insensitively.
    """
    term = search.lower() if search else None
    selected: list[tuple[int, JourneyPath]] = []
    for index, path in enumerate(paths):
        if hide_single_page and len(path.nodes) == 1:
            continue
        if term and not any(
            term in n.url.lower() or term in n.title.lower() or term in n.domain.lower()
            for n in path.nodes
        ):
            continue
        selected.append((index, path))
    return selected
