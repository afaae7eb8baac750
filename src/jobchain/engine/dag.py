# dag.py
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Set, Tuple

if TYPE_CHECKING:
    from .flow import Step


def build_dag(steps: Iterable["Step"]) -> Tuple[Dict[str, Set[str]], Dict[str, int]]:
    """
    Build a DAG from Step objects.

    Requires:
      - step.name: str (unique within the flow)
      - step.needs: iterable[str] (names of steps that must run BEFORE this step)
    """
    steps = list(steps)
    names = [s.name for s in steps]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise ValueError(f"Duplicate step names found: {dupes}")

    name_set = set(names)
    adj: Dict[str, Set[str]] = {n: set() for n in name_set}
    indeg: Dict[str, int] = {n: 0 for n in name_set}

    for step in steps:
        for need in step.needs:
            if need not in name_set:
                raise ValueError(
                    f"Step '{step.name}' needs missing step '{need}'. "
                    f"Known steps: {sorted(name_set)}"
                )
            # Edge need -> step.name (need must run before step)
            if step.name not in adj[need]:
                adj[need].add(step.name)
                indeg[step.name] += 1

    return adj, indeg


def topo_levels(adj: Dict[str, Set[str]], indeg: Dict[str, int]) -> List[List[str]]:
    """
    Group the steps into stages: a step lands in the first stage after all of
    its needs. Steps of one stage are independent of each other. Names inside
    a stage are sorted.
    """
    remaining_needs = dict(indeg)
    frontier = sorted(n for n, d in remaining_needs.items() if d == 0)

    levels: List[List[str]] = []
    processed = 0

    while frontier:
        levels.append(frontier)
        processed += len(frontier)

        ready: Set[str] = set()
        for node in frontier:
            for child in adj.get(node, ()):
                remaining_needs[child] -= 1
                if remaining_needs[child] == 0:
                    ready.add(child)
        frontier = sorted(ready)

    if processed != len(remaining_needs):
        stuck = sorted(n for n, d in remaining_needs.items() if d > 0)
        raise ValueError(f"Flow graph has a cycle. Stuck steps: {stuck}")

    return levels


def run_levels(
    levels: List[List[str]],
    run_fn: Callable[[str], None],
    max_workers: int | None = None,
) -> None:
    """
    Run each stage with a thread pool, one stage after the other.

    On first failure, lets the rest of the stage finish, then stops and
    re-raises that failure.
    """
    for level in levels:
        if len(level) == 1:
            run_fn(level[0])
            continue

        first_error: BaseException | None = None
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {pool.submit(run_fn, name): name for name in level}

            for future in as_completed(futures):
                try:
                    future.result()
                except Exception as e:
                    if first_error is None:
                        first_error = e

        if first_error is not None:
            raise first_error
