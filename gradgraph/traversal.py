from __future__ import annotations

import enum
import logging
from collections import deque
from typing import Any, Callable, Iterable

from gradgraph.errors import CyclicGraph

logger = logging.getLogger(__name__)


class TraversalType(enum.Enum):
    DFS = "DFS"
    BFS = "BFS"


def _inputs(node) -> Iterable[Any]:
    return node.inputs


def traverse(
    start,
    apply_func: Callable[[Any], Any] | None = None,
    traversal_type: TraversalType = TraversalType.DFS,
    get_children: Callable[[Any], Iterable[Any]] | None = None,
) -> list:
    """
    Walks every node reachable from `start`, visiting each node exactly once.

    Nodes are deduplicated by identity, so a node shared by several parents is visited once.

    Args:
        start: The node to start the walk from.
        apply_func (Callable, optional): Called with every node when it is visited.
        traversal_type (gradgraph.traversal.TraversalType): `DFS` pops the frontier as a stack, `BFS` as a queue.
        get_children (Callable, optional): Returns the nodes to walk to from a node. Defaults to the node's inputs.

    Returns:
        list: The nodes in the order they were visited.
    """
    get_children = get_children or _inputs
    visited = set()
    order = []
    frontier = deque([start])

    while frontier:
        if traversal_type is TraversalType.DFS:
            node = frontier.pop()
        else:
            node = frontier.popleft()
        if node in visited:
            continue
        visited.add(node)
        order.append(node)
        if apply_func is not None:
            apply_func(node)
        for child in get_children(node):
            if child not in visited:
                frontier.append(child)

    return order


def reachable(start) -> set:
    """
    Returns the set of nodes reachable from `start`, `start` included.
    """
    return set(traverse(start))


def postorder(start, get_children: Callable[[Any], Iterable[Any]] | None = None) -> list:
    """
    Depth-first finish order of the graph below `start`: every node comes after all of its inputs.

    Uses an explicit stack, so graph depth is not bounded by the interpreter's recursion limit.

    Raises:
        gradgraph.errors.CyclicGraph: If a node is reached again while one of its inputs is still being walked.
    """
    get_children = get_children or _inputs
    finished = set()
    in_progress = set()
    order = []
    stack = [(start, iter(get_children(start)))]
    in_progress.add(start)

    while stack:
        node, children = stack[-1]
        for child in children:
            if child in finished:
                continue
            if child in in_progress:
                raise CyclicGraph(child)
            in_progress.add(child)
            stack.append((child, iter(get_children(child))))
            break
        else:
            stack.pop()
            in_progress.discard(node)
            finished.add(node)
            order.append(node)

    logger.debug("postorder: %d nodes below %s", len(order), type(start).__name__)
    return order


def topological_order(start, get_children: Callable[[Any], Iterable[Any]] | None = None) -> list:
    """
    Orders the graph below `start` so that every node precedes all of its inputs (`start` first).

    This is the reversed depth-first finish order, so on graphs where paths reconverge on a shared
    node, every consumer of that node comes before it.
    """
    order = postorder(start, get_children)
    order.reverse()
    return order
