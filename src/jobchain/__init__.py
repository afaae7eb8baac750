from .args import Args
from .engine import Cascade, Flow, FlowDef, FlowProcess, Step, sh
from .job import CascadeJob, Job, RunKind, load_job
from .mode import Mode, ModeKind
from .stats import Stat, to_json_value
from .tool import Tool

__all__ = [
    "Args",
    "Cascade",
    "CascadeJob",
    "Flow",
    "FlowDef",
    "FlowProcess",
    "Job",
    "Mode",
    "ModeKind",
    "RunKind",
    "Stat",
    "Step",
    "Tool",
    "load_job",
    "sh",
    "to_json_value",
]
