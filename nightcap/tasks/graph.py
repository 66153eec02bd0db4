"""Depth-first post-order traversal shared by task and plugin resolution.

Uses an explicit stack, so arbitrarily deep dependency chains resolve
without hitting the interpreter's recursion limit.
"""

from __future__ import annotations

from typing import Callable, Hashable, Iterable, Iterator, Optional, TypeVar

N = TypeVar("N")

_IN_PROGRESS = "in_progress"
_DONE = "done"
_END = object()


def post_order(
    roots: Iterable[N],
    children: Callable[[N], Iterable[N]],
    on_cycle: Callable[[list[Hashable]], Exception],
    key: Callable[[N], Hashable] = lambda node: node,
    on_conflict: Optional[Callable[[N], Exception]] = None,
) -> list[N]:
    """Order every node reachable from ``roots`` after all of its children.

    Args:
        roots: Start nodes, visited in the given order.
        children: Returns a node's children in visiting order. Called once,
            when the node is first entered, so it may raise for nodes that
            cannot be resolved.
        on_cycle: Builds the error raised on a back-edge. Receives the keys
            along the cycle, starting and ending with the re-entered key.
        key: Identity of a node. Defaults to the node itself.
        on_conflict: Builds the error raised when two distinct objects share
            a key. Without it, the first object seen wins.

    Returns:
        Each node once, dependencies first, in depth-first post-order.
    """
    state: dict[Hashable, str] = {}
    seen: dict[Hashable, N] = {}
    order: list[N] = []
    stack: list[tuple[N, Iterator[N]]] = []
    path: list[Hashable] = []

    def enter(node: N) -> None:
        node_key = key(node)
        if on_conflict is not None and node_key in seen and seen[node_key] is not node:
            raise on_conflict(node)
        status = state.get(node_key)
        if status == _DONE:
            return
        if status == _IN_PROGRESS:
            raise on_cycle(path[path.index(node_key):] + [node_key])

        pending = iter(children(node))
        seen[node_key] = node
        state[node_key] = _IN_PROGRESS
        path.append(node_key)
        stack.append((node, pending))

    for root in roots:
        enter(root)
        while stack:
            node, pending = stack[-1]
            child = next(pending, _END)
            if child is _END:
                stack.pop()
                state[path.pop()] = _DONE
                order.append(node)
            else:
                enter(child)

    return order
