# planning/scheduler.py

from __future__ import annotations

from typing import Dict, List, Sequence, Set, Tuple

from planning.models import (
    BlockedItem,
    Phase,
    ScheduleResult,
    SignatureGroup,
    Status,
    WorkItem,
)

NO_DEPS_SIGNATURE = "no-deps"


def schedule(items: Sequence[WorkItem]) -> ScheduleResult:
    """
    Partition every non-completed item into ordered phases, or into blocked.

    Each round takes the frontier of unscheduled items whose dependencies are all
    satisfied (completed, or placed in an earlier phase). A round with an empty
    frontier ends the loop; whatever is left is blocked.
    """
    items = tuple(items)
    by_id: Dict[str, WorkItem] = {wi.id: wi for wi in items}

    satisfied: Set[str] = {wi.id for wi in items if wi.is_completed}
    remaining: List[WorkItem] = [wi for wi in items if not wi.is_completed]

    phases: List[Phase] = []

    while remaining:
        frontier = _select_frontier(remaining, satisfied)
        if not frontier:
            break

        phases.append(Phase(index=len(phases) + 1, items=tuple(wi.id for wi in frontier)))

        done_ids = {wi.id for wi in frontier}
        satisfied |= done_ids
        remaining = [wi for wi in remaining if wi.id not in done_ids]

    blocked = _explain_blocked(remaining, by_id, satisfied)

    runnable: Tuple[str, ...] = ()
    if phases:
        runnable = tuple(i for i in phases[0].items if by_id[i].status is Status.PENDING)

    return ScheduleResult(
        runnable_now=runnable,
        phases=tuple(phases),
        blocked=tuple(blocked),
        signature_groups=dependency_signature_groups([by_id[i] for i in runnable]),
    )


def runnable_now(items: Sequence[WorkItem]) -> Tuple[str, ...]:
    return schedule(items).runnable_now


def dependency_signature(item: WorkItem) -> str:
    if not item.dependencies:
        return NO_DEPS_SIGNATURE
    return ",".join(sorted(item.dependencies))


def dependency_signature_groups(items: Sequence[WorkItem]) -> Tuple[SignatureGroup, ...]:
    """Group items by identical prerequisite-id set, in first-seen order."""
    groups: Dict[str, List[str]] = {}
    for wi in items:
        groups.setdefault(dependency_signature(wi), []).append(wi.id)
    return tuple(SignatureGroup(signature=sig, items=tuple(ids)) for sig, ids in groups.items())


def find_cycles(items: Sequence[WorkItem]) -> List[List[str]]:
    """
    Dependency cycles among the given items, each reported once as
    [a, b, ..., a] starting from its earliest member in snapshot order.
    Self-dependencies are reported as [a, a].
    """
    order = {wi.id: pos for pos, wi in enumerate(items)}
    graph = _in_snapshot_graph(items)

    cycles: List[List[str]] = []
    seen_keys: Set[Tuple[str, ...]] = set()

    for scc in _strongly_connected(graph, [wi.id for wi in items]):
        if len(scc) == 1 and scc[0] not in graph[scc[0]]:
            continue
        start = min(scc, key=order.__getitem__)
        path = _walk_cycle(start, set(scc), graph)
        key = tuple(sorted(scc))
        if key not in seen_keys:
            seen_keys.add(key)
            cycles.append(path)

    cycles.sort(key=lambda c: order[c[0]])
    return cycles


def _select_frontier(remaining: List[WorkItem], satisfied: Set[str]) -> List[WorkItem]:
    ready: List[WorkItem] = []
    for wi in remaining:
        if wi.malformed_dependencies:
            continue
        if all(dep in satisfied for dep in wi.dependencies):
            ready.append(wi)
    return ready


def _explain_blocked(
    remaining: List[WorkItem],
    by_id: Dict[str, WorkItem],
    satisfied: Set[str],
) -> List[BlockedItem]:
    if not remaining:
        return []

    graph = _in_snapshot_graph(remaining)
    cyclic: Dict[str, Set[str]] = {}
    for scc in _strongly_connected(graph, [wi.id for wi in remaining]):
        if len(scc) > 1:
            for item_id in scc:
                cyclic[item_id] = set(scc)

    blocked: List[BlockedItem] = []
    for wi in remaining:
        unmet = tuple(d for d in wi.dependencies if d not in satisfied)
        missing = [d for d in unmet if d not in by_id]

        if wi.malformed_dependencies:
            reason = f"malformed dependency descriptor ({wi.malformed_dependencies} without a target id)"
        elif missing:
            reason = f"unresolved dependency: {', '.join(missing)}"
        elif wi.id in wi.dependencies:
            reason = "depends on itself"
        elif wi.id in cyclic:
            loop = _walk_cycle(wi.id, cyclic[wi.id], graph)
            reason = f"circular dependency: {' -> '.join(loop)}"
        else:
            reason = f"waiting on blocked dependency: {', '.join(unmet)}"

        blocked.append(BlockedItem(id=wi.id, reason=reason, unmet=unmet))
    return blocked


def _in_snapshot_graph(items: Sequence[WorkItem]) -> Dict[str, List[str]]:
    ids = {wi.id for wi in items}
    return {wi.id: [d for d in wi.dependencies if d in ids] for wi in items}


def _walk_cycle(start: str, members: Set[str], graph: Dict[str, List[str]]) -> List[str]:
    """Follow in-component edges from start until it is reached again (BFS for the shortest loop)."""
    parents: Dict[str, str] = {}
    queue = [start]
    visited = {start}
    while queue:
        node = queue.pop(0)
        for nxt in graph[node]:
            if nxt not in members:
                continue
            if nxt == start:
                path = [node]
                while path[-1] != start:
                    path.append(parents[path[-1]])
                path.reverse()
                return path + [start]
            if nxt not in visited:
                visited.add(nxt)
                parents[nxt] = node
                queue.append(nxt)
    return [start, start]


def _strongly_connected(graph: Dict[str, List[str]], order: List[str]) -> List[List[str]]:
    # Tarjan, iterative so deep chains don't hit the recursion limit
    index: Dict[str, int] = {}
    low: Dict[str, int] = {}
    on_stack: Set[str] = set()
    stack: List[str] = []
    result: List[List[str]] = []
    counter = 0

    for root in order:
        if root in index:
            continue
        work = [(root, 0)]
        while work:
            node, child_i = work.pop()
            if child_i == 0:
                index[node] = low[node] = counter
                counter += 1
                stack.append(node)
                on_stack.add(node)

            children = graph[node]
            if child_i < len(children):
                work.append((node, child_i + 1))
                child = children[child_i]
                if child not in index:
                    work.append((child, 0))
                elif child in on_stack:
                    low[node] = min(low[node], index[child])
                continue

            if low[node] == index[node]:
                component: List[str] = []
                while True:
                    top = stack.pop()
                    on_stack.discard(top)
                    component.append(top)
                    if top == node:
                        break
                result.append(component)

            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[node])

    return result
