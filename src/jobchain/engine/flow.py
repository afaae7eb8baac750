# flow.py
from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from .. import settings
from ..errors import StepFailure, ValidationError
from ..options import EngineConfig
from ..stats import CUSTOM_GROUP, CascadeStats, FlowStats, bind_provider
from .dag import build_dag, run_levels, topo_levels
from .dot import render_flow_dot, render_steps_dot, write_dot

ENGINE_GROUP = "jobchain.engine"


class FlowProcess:
    """Handle given to callable steps while they run."""

    def __init__(self, flow: "Flow", step: "Step"):
        self.flow = flow
        self.step = step

    @property
    def config(self) -> EngineConfig:
        return self.flow.config

    def increment(self, group: str, name: str, amount: int = 1) -> None:
        self.flow.stats.increment(group, name, amount)

    def stat(self, name: str, amount: int = 1) -> None:
        """Increment a custom counter."""
        self.increment(CUSTOM_GROUP, name, amount)


StepFn = Callable[[FlowProcess], None]


@dataclass(frozen=True)
class Step:
    """A single unit of work inside a flow: a shell command or a callable."""
    name: str
    run: Union[str, StepFn]
    needs: tuple[str, ...] = ()
    cwd: str | None = None
    env: Dict[str, str] = field(default_factory=dict, hash=False)

    def describe(self) -> str:
        if isinstance(self.run, str):
            return f"sh: {self.run}"
        return getattr(self.run, "__qualname__", type(self.run).__name__)


def sh(name: str, cmd: str, *, needs: Sequence[str] = (), cwd: str | None = None) -> Step:
    """Create a shell step."""
    return Step(name=name, run=cmd, needs=tuple(needs), cwd=cwd)


class FlowDef:
    """
    Builder for the steps of one flow.

        flow_def.add_step("count", count_words).sh("report", "wc -l out.txt", needs=["count"])
    """

    def __init__(self, name: str):
        self.name = name
        self._steps: List[Step] = []

    def add_step(
        self,
        name: str,
        run: Union[str, StepFn],
        *,
        needs: Sequence[str] = (),
        cwd: str | None = None,
        env: Optional[Dict[str, str]] = None,
    ) -> "FlowDef":
        self._steps.append(Step(name=name, run=run, needs=tuple(needs), cwd=cwd, env=dict(env or {})))
        return self

    def sh(self, name: str, cmd: str, *, needs: Sequence[str] = (), cwd: str | None = None) -> "FlowDef":
        return self.add_step(name, cmd, needs=needs, cwd=cwd)

    @property
    def steps(self) -> List[Step]:
        return list(self._steps)

    def build(self, config: Optional[EngineConfig] = None, max_workers: int | None = None) -> "Flow":
        return Flow(self.name, self._steps, config=config, max_workers=max_workers)


class Flow:
    """An executable step graph. `complete()` blocks until every step ran or one failed."""

    def __init__(
        self,
        name: str,
        steps: Iterable[Step],
        config: Optional[EngineConfig] = None,
        max_workers: int | None = None,
    ):
        self.name = name
        self.steps: List[Step] = list(steps)
        self.config = config if config is not None else EngineConfig()
        self.max_workers = max_workers if max_workers is not None else settings.MAX_WORKERS
        self.stats = FlowStats(name)
        self._by_name = {s.name: s for s in self.steps}

    def stages(self) -> List[List[str]]:
        """Step names grouped into stages. Raises ValidationError on a broken graph."""
        try:
            adj, indeg = build_dag(self.steps)
            return topo_levels(adj, indeg)
        except ValueError as e:
            raise ValidationError(f"[{self.name}] {e}") from e

    def validate(self) -> None:
        if not self.steps:
            raise ValidationError(f"[{self.name}] flow has no steps")
        self.stages()

    def complete(self) -> "Flow":
        """Run the flow. Failures end up in the flow stats, not as exceptions."""
        self.stats.mark_running()
        # custom counters of this run land in this flow's stats only
        with bind_provider(self.stats):
            try:
                run_levels(self.stages(), self._run_step, max_workers=self.max_workers)
            except Exception as e:
                self.stats.mark_finished(e)
            else:
                self.stats.mark_finished()
        return self

    def get_flow_stats(self) -> FlowStats:
        return self.stats

    def write_dot(self, path: str | Path) -> Path:
        return write_dot(render_flow_dot(self), path)

    def write_steps_dot(self, path: str | Path) -> Path:
        return write_dot(render_steps_dot(self), path)

    # ---- execution primitives ----

    def _run_step(self, name: str) -> None:
        step = self._by_name[name]
        try:
            if isinstance(step.run, str):
                self._run_shell(step)
            else:
                step.run(FlowProcess(self, step))
        except Exception:
            self.stats.increment(ENGINE_GROUP, "steps_failed")
            raise
        self.stats.increment(ENGINE_GROUP, "steps_completed")

    def _run_shell(self, step: Step) -> None:
        cwd = Path(step.cwd or ".").resolve()
        if not cwd.exists():
            raise FileNotFoundError(f"[{self.name}] step '{step.name}' cwd not found: {cwd}")

        env = os.environ.copy()
        env.update(step.env)

        proc = subprocess.run(
            step.run,
            shell=True,
            cwd=str(cwd),
            env=env,
            text=True,
            capture_output=True,
        )

        if proc.returncode != 0:
            raise StepFailure(
                flow=self.name,
                step=step.name,
                cmd=step.run,
                exit_code=proc.returncode,
                stdout=proc.stdout[-4000:],
                stderr=proc.stderr[-4000:],
            )


def merge_flows(name: str, flows: Sequence[Flow]) -> Flow:
    """
    Combine several flows into one graph, for rendering only.

    Step names are prefixed with their flow name; each flow's entry steps are
    wired after the previous flow's steps.
    """
    merged: List[Step] = []
    previous: List[str] = []
    for flow in flows:
        prefix = f"{flow.name}/"
        renamed = [
            replace(s, name=prefix + s.name, needs=tuple(prefix + n for n in s.needs) or tuple(previous))
            for s in flow.steps
        ]
        merged.extend(renamed)
        previous = [s.name for s in renamed]
    config = flows[0].config if flows else None
    return Flow(name, merged, config=config)


class Cascade:
    """Flows run one after the other; stops at the first failed flow."""

    def __init__(self, name: str, flows: Sequence[Flow]):
        self.name = name
        self.flows = list(flows)
        self._ran: List[Flow] = []

    def complete(self) -> "Cascade":
        for flow in self.flows:
            flow.complete()
            self._ran.append(flow)
            if not flow.stats.is_successful:
                break
        return self

    def get_cascade_stats(self) -> CascadeStats:
        return CascadeStats(self.name, [f.stats for f in self._ran], expected=len(self.flows))
