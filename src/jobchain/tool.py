# tool.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from . import settings
from .args import Args
from .errors import ConfigurationError, JobFailedError, UsageError
from .job import Job, JobConstructor, RunKind, load_job
from .mode import Mode, put_mode
from .options import EngineConfig, GenericOptionsParser
from .stats import CascadeStats, FlowStats, JobStats, get_all_custom_counters, stats_to_json
from .ui.console import Console, get_console

GRAPH_FLAG = "tool.graph"
FLOWSTATS_FLAG = "scalding.flowstats"
NOCOUNTERS_FLAG = "scalding.nocounters"

USAGE = "Usage: jobchain <jobClass> --local|--hdfs [args...]"


@dataclass
class NodeOutcome:
    """What happened to one node of the chain."""
    job: Job
    index: int
    successful: bool
    stats: Optional[Union[FlowStats, CascadeStats]] = None


class Tool:
    """
    Runs a job and every job chained after it.

    A job constructor can be baked in at creation time; without one the job
    class is taken from the first positional argument.
    """

    def __init__(
        self,
        job_constructor: Optional[JobConstructor] = None,
        config: Optional[EngineConfig] = None,
        console: Optional[Console] = None,
    ):
        self._job_constructor = job_constructor
        self.config = config if config is not None else EngineConfig()
        self._console = console

    @property
    def console(self) -> Console:
        return self._console or get_console()

    @property
    def job_constructor(self) -> Optional[JobConstructor]:
        return self._job_constructor

    def set_job_constructor(self, job_constructor: JobConstructor) -> None:
        """Register the job to run. Allowed once per Tool."""
        if self._job_constructor is not None:
            raise ConfigurationError("Job is already defined")
        self._job_constructor = job_constructor

    # ------------------------------------------------------------------
    # Argument & mode resolution
    # ------------------------------------------------------------------

    def non_engine_args(self, argv: Sequence[str]) -> list[str]:
        """
        Strip engine options from `argv`, applying them to `self.config`.

        Should be called once per invocation.
        """
        if settings.DEFAULT_CONF:
            self.console.print_debug(f"Loading default configuration: {settings.DEFAULT_CONF}")
            self.config.load_file(settings.DEFAULT_CONF)
        remaining = GenericOptionsParser(self.config, argv).remaining_args
        self.console.print_debug(f"Engine configuration: {dict(self.config)}")
        return remaining

    def parse_mode_args(self, argv: Sequence[str]) -> Tuple[Mode, Args]:
        args = Args.parse(self.non_engine_args(argv))
        return Mode.from_args(args, self.config), args

    # ------------------------------------------------------------------
    # Job resolution
    # ------------------------------------------------------------------

    def get_job(self, args: Args) -> Job:
        if self._job_constructor is not None:
            return self._job_constructor(args)
        if not args.positional:
            raise UsageError(USAGE)

        job_name = args.positional[0]
        # Remove the job name from the positional arguments:
        job = load_job(job_name, args.with_values("", args.positional[1:]))
        self.console.print_debug(f"Resolved job class {job.name} with args: {job.args}")
        return job

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, argv: Sequence[str]) -> int:
        mode, job_args = self.parse_mode_args(argv)
        job = self.get_job(put_mode(mode, job_args))
        self.console.print_run_started(job.name, mode.kind.value)
        return self.run_job(job)

    def run_job(self, job: Job) -> int:
        """
        Run `job` and then each job reachable through `next`, in order.

        Flags are read from the root job's args. Raises JobFailedError at the
        first unsuccessful node; nothing after it runs.
        """
        root_name = job.name
        only_graph = job.args.boolean(GRAPH_FLAG)
        if only_graph:
            self.console.print_graph_only()

        current: Optional[Job] = job
        index = 0
        while current is not None:
            self.console.print_job_start(current.name, index)
            try:
                if only_graph:
                    outcome = self._write_graph(current, root_name, index)
                else:
                    outcome = self._execute(current, job.args, root_name, index)
            finally:
                current.clear()

            if not outcome.successful:
                self._report_failure(outcome)
                raise JobFailedError(root=root_name, index=index, failing=current.name)

            self.console.print_success(current.name)
            current = current.next
            index += 1

        self.console.print_chain_complete(index)
        return 0

    def _write_graph(self, job: Job, root_name: str, index: int) -> NodeOutcome:
        # the job is NOT run in this case
        flow = job.flow
        # a broken graph fails here, before any file is written
        flow.stages()

        dot_path = f"{root_name}{index}.dot"
        self.console.print_writing_dot(dot_path)
        flow.write_dot(dot_path)

        steps_path = f"{root_name}{index}_steps.dot"
        self.console.print_writing_dot(steps_path, steps=True)
        flow.write_steps_dot(steps_path)

        return NodeOutcome(job=job, index=index, successful=True)

    def _execute(self, job: Job, root_args: Args, root_name: str, index: int) -> NodeOutcome:
        job.validate()

        # Block while the flow is running:
        stats: Union[FlowStats, CascadeStats]
        if job.kind is RunKind.CASCADE:
            stats = job.run_cascade().get_cascade_stats()
        else:
            stats = job.run_flow().get_flow_stats()

            # flow stats only valid for a flow
            if root_args.boolean(FLOWSTATS_FLAG):
                stats_path = root_args.get_or_else(FLOWSTATS_FLAG, f"{root_name}{index}._flowstats.json")
                self.console.print_stats_written(stats_path)
                Path(stats_path).write_text(stats_to_json(JobStats(stats).to_map()), encoding="utf-8")

        if not root_args.boolean(NOCOUNTERS_FLAG):
            self.console.print_counters(get_all_custom_counters(stats))

        return NodeOutcome(job=job, index=index, successful=stats.is_successful, stats=stats)

    def _report_failure(self, outcome: NodeOutcome) -> None:
        reason = ""
        stats = outcome.stats
        if isinstance(stats, FlowStats) and stats.failure is not None:
            reason = str(stats.failure)
        elif isinstance(stats, CascadeStats):
            failed = [s for s in stats.flow_stats if s.failure is not None]
            if failed:
                reason = f"{failed[0].name}: {failed[0].failure}"
        self.console.print_failure(outcome.job.name, reason)
