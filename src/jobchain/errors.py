# errors.py
from __future__ import annotations

from dataclasses import dataclass


class JobChainError(Exception):
    """Base class for every error raised by jobchain itself."""


class ConfigurationError(JobChainError):
    """The driver was set up wrongly, e.g. a bad job class or conf file."""


class UsageError(ConfigurationError):
    """No job could be resolved from the command line."""


class ArgsError(JobChainError):
    """An argument was read with the wrong number of values."""


class ValidationError(JobChainError):
    """A job's preconditions do not hold; the chain stops at this node."""


@dataclass
class JobFailedError(JobChainError):
    """
    The engine reported an unsuccessful run.

    `root` is the class name of the job the chain started from, `index` the
    zero-based chain position of the failing node and `failing` its class name.
    """
    root: str
    index: int
    failing: str

    def __str__(self) -> str:
        msg = f"Job failed to run: {self.root}"
        if self.index > 0:
            msg += f" child: {self.index}, class: {self.failing}"
        return msg


@dataclass
class StepFailure(JobChainError):
    """A step of a local flow failed."""
    flow: str
    step: str
    cmd: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    def __str__(self) -> str:
        return f"[{self.flow}] step '{self.step}' failed (exit={self.exit_code}): {self.cmd}"


class EnrichedFailure(JobChainError):
    """
    Raised at the process boundary in place of any uncaught failure.

    The message carries remediation text and a documentation link; the
    original exception is always available as ``__cause__``.
    """
