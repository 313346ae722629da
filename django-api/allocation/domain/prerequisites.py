"""Prerequisite graph of an event's access items.

Edges point from an item to the items it requires. The graph must stay a DAG:
an edit is accepted only if, after applying it, no cycle runs through the
edited item. Since the graph was acyclic before the edit, any new cycle has to
pass through that item, so one traversal from it is enough.

The traversal is iterative so that very large events cannot exhaust the
interpreter's recursion limit.
"""

from collections.abc import Collection, Iterable, Mapping
from enum import Enum

from allocation.domain.errors import CircularDependencyError, PrerequisiteNotFoundError
from allocation.domain.models import AccessItem
from allocation.domain.value_objects import AccessItemId

Adjacency = Mapping[AccessItemId, Collection[AccessItemId]]


class _Color(Enum):
    WHITE = 0
    GRAY = 1
    BLACK = 2


def build_adjacency(items: Iterable[AccessItem]) -> dict[AccessItemId, frozenset[AccessItemId]]:
    return {item.id: frozenset(item.required_ids) for item in items}


def find_cycle(adjacency: Adjacency, start: AccessItemId) -> list[AccessItemId] | None:
    """Return the ids along a cycle reachable from ``start``, or None.

    Nodes are colored white (unvisited), gray (on the current path) or black
    (fully explored). Reaching a gray node again closes a cycle.
    """
    color: dict[AccessItemId, _Color] = {}
    path: list[AccessItemId] = [start]
    stack = [(start, iter(sorted(adjacency.get(start, ()), key=str)))]
    color[start] = _Color.GRAY

    while stack:
        node, children = stack[-1]
        child = next(children, None)
        if child is None:
            color[node] = _Color.BLACK
            stack.pop()
            path.pop()
            continue

        state = color.get(child, _Color.WHITE)
        if state is _Color.GRAY:
            return path[path.index(child):] + [child]
        if state is _Color.WHITE:
            color[child] = _Color.GRAY
            path.append(child)
            stack.append((child, iter(sorted(adjacency.get(child, ()), key=str))))

    return None


def validate_prerequisites_exist(
    event_items: Iterable[AccessItem],
    proposed_required_ids: Iterable[AccessItemId],
) -> None:
    known = {item.id for item in event_items}
    missing = [str(required) for required in proposed_required_ids if required not in known]
    if missing:
        raise PrerequisiteNotFoundError(missing)


def validate_no_cycle(
    event_items: Iterable[AccessItem],
    item_id: AccessItemId,
    proposed_required_ids: Collection[AccessItemId],
) -> None:
    """Check that ``item_id`` may require ``proposed_required_ids``.

    Raises:
        PrerequisiteNotFoundError: If an id does not belong to the same event.
        CircularDependencyError: On self-reference or if the edit closes a cycle.
    """
    items = list(event_items)
    validate_prerequisites_exist(items, proposed_required_ids)

    if item_id in proposed_required_ids:
        raise CircularDependencyError("Access item cannot be its own prerequisite")

    adjacency = build_adjacency(items)
    adjacency[item_id] = frozenset(proposed_required_ids)

    cycle = find_cycle(adjacency, item_id)
    if cycle is not None:
        names = {item.id: item.name for item in items}
        route = " -> ".join(names.get(node, str(node)) for node in cycle)
        raise CircularDependencyError(f"Prerequisites would create a circular dependency: {route}")
