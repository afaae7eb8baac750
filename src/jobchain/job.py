# job.py
from __future__ import annotations

import importlib
import runpy
from contextlib import ExitStack
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Type

from .args import Args
from .engine import Cascade, Flow, FlowDef, merge_flows
from .errors import ConfigurationError
from .mode import Mode
from .options import EngineConfig


class RunKind(str, Enum):
    """How the driver runs a job and which statistics it gets back."""
    FLOW = "flow"
    CASCADE = "cascade"


class Job:
    """
    One node of a job chain.

    Subclasses describe their work in `define()`. A job that wants another
    job to run after it succeeds sets `next` (or overrides the property):

        class Extract(Job):
            def define(self, flow_def):
                flow_def.sh("pull", "curl -sO https://example.com/data.csv")

            @property
            def next(self):
                return Load(self.args)

    Jobs are constructed from their Args only, which is what lets the driver
    instantiate them by class name.
    """

    kind: RunKind = RunKind.FLOW

    def __init__(self, args: Args):
        self.args = args
        self._next: Optional[Job] = None
        self._flow: Optional[Flow] = None
        # cleanup callbacks released by clear()
        self.resources = ExitStack()

    @property
    def name(self) -> str:
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"

    @property
    def mode(self) -> Mode:
        if self.args.mode is not None:
            return self.args.mode
        return Mode.from_args(self.args, EngineConfig())

    @property
    def config(self) -> EngineConfig:
        return self.mode.config

    @property
    def next(self) -> Optional["Job"]:
        return self._next

    @next.setter
    def next(self, job: Optional["Job"]) -> None:
        self._next = job

    # ---- graph ----

    def define(self, flow_def: FlowDef) -> None:
        raise NotImplementedError(f"{self.name} must define its steps (override define())")

    def build_flow(self) -> Flow:
        flow_def = FlowDef(self.name)
        self.define(flow_def)
        return flow_def.build(config=self.config)

    @property
    def flow(self) -> Flow:
        """The job's flow, built on first use. Validation, graphing and running share it."""
        if self._flow is None:
            self._flow = self.build_flow()
        return self._flow

    # ---- lifecycle ----

    def validate(self) -> None:
        """Check preconditions before running. Raises ValidationError."""
        self.flow.validate()

    def run_flow(self) -> Flow:
        flow = self.flow
        # blocks while the flow is running
        flow.complete()
        return flow

    def run(self) -> bool:
        return self.run_flow().get_flow_stats().is_successful

    def clear(self) -> None:
        """Release whatever this job acquired; called once after its run attempt."""
        self.resources.close()

    def __repr__(self) -> str:
        return f"<{self.name} {self.args}>"


class CascadeJob(Job):
    """A job made of several flows that run and report as one unit."""

    kind = RunKind.CASCADE

    def __init__(self, args: Args):
        super().__init__(args)
        self._children: Optional[List[Job]] = None

    def jobs(self) -> Sequence[Job]:
        raise NotImplementedError(f"{self.name} must list its jobs (override jobs())")

    @property
    def children(self) -> List[Job]:
        if self._children is None:
            self._children = list(self.jobs())
        return self._children

    def validate(self) -> None:
        for job in self.children:
            job.validate()

    def build_flow(self) -> Flow:
        return merge_flows(self.name, [job.flow for job in self.children])

    def pre_process_cascade(self, cascade: Cascade) -> None:
        pass

    def post_process_cascade(self, cascade: Cascade) -> None:
        pass

    def run_cascade(self) -> Cascade:
        cascade = Cascade(self.name, [job.flow for job in self.children])
        self.pre_process_cascade(cascade)
        cascade.complete()
        self.post_process_cascade(cascade)
        return cascade

    def run(self) -> bool:
        return self.run_cascade().get_cascade_stats().is_successful

    def clear(self) -> None:
        try:
            # only the children jobs() actually produced
            for job in self._children or ():
                job.clear()
        finally:
            super().clear()


JobConstructor = Callable[[Args], Job]


# ----------------------------------------------------------------------
# Lookup by name
# ----------------------------------------------------------------------

def _split_name(name: str) -> tuple[str, str]:
    if ":" in name:
        module_part, attr = name.rsplit(":", 1)
    else:
        module_part, _, attr = name.rpartition(".")
    if not module_part or not attr:
        raise ConfigurationError(
            f"Job name must be fully qualified (package.module.ClassName or file.py:ClassName), got: {name!r}"
        )
    return module_part, attr


def load_job_class(name: str) -> Type[Job]:
    """
    Resolve a job class from its name.

    Accepted forms:
      - package.module.ClassName
      - package.module:ClassName
      - path/to/jobs.py:ClassName
    """
    module_part, attr = _split_name(name)

    if module_part.endswith(".py"):
        path = Path(module_part).expanduser().resolve()
        if not path.exists():
            raise FileNotFoundError(f"Job file not found: {path}")
        globals_dict = runpy.run_path(str(path), run_name=f"jobchain_jobs_{path.stem}")
        if attr not in globals_dict:
            raise AttributeError(f"{path.name} defines no {attr!r}")
        obj = globals_dict[attr]
    else:
        module = importlib.import_module(module_part)
        obj = getattr(module, attr)

    if not (isinstance(obj, type) and issubclass(obj, Job)):
        raise ConfigurationError(f"{name} is not a Job subclass")
    return obj


def load_job(name: str, args: Args) -> Job:
    return load_job_class(name)(args)
