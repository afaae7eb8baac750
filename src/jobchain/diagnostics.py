# diagnostics.py
# Turns uncaught failures into messages that say what probably went wrong and
# where to read more about it.
from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Optional, Sequence, Type

from . import settings
from .errors import (
    ArgsError,
    ConfigurationError,
    EnrichedFailure,
    JobFailedError,
    StepFailure,
    UsageError,
    ValidationError,
)
from .tool import Tool

Handler = Callable[[BaseException], bool]

CONTRIBUTE_HINT = (
    "If you know what exactly caused this error, please consider contributing "
    "to the documentation via the following link."
)

DEFAULT_MAPPING: Dict[Type[BaseException], str] = {
    ModuleNotFoundError: "The job's module could not be imported. Check the job class name and that its "
                         "package is installed in the environment running jobchain.",
    AttributeError: "The job class was not found in its module. Check the spelling of the class name "
                    "(package.module.ClassName).",
    FileNotFoundError: "A file the job needs does not exist. Check input paths and step working directories.",
    UsageError: "No job was given. Pass the job class as the first argument, or register a job constructor.",
    ConfigurationError: "The driver configuration is invalid. Check the job class and the -conf/-D options.",
    ArgsError: "An argument was given the wrong number of values. Check the job's expected arguments.",
    ValidationError: "The job's flow failed validation before running. Look for missing or duplicate steps "
                     "and dependency cycles.",
    StepFailure: "A step of the flow exited with a non-zero status. Run the step command by hand to see why.",
    JobFailedError: "A job of the chain reported an unsuccessful run; the jobs after it were not started. "
                    "The failing step is printed above the error.",
}


def iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield `exc` and then each exception in its cause/context chain."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _type_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


class ExceptionRegistry:
    """
    Known failure kinds, what to do about them, and where they are documented.

    `mapping` goes from exception type to remediation text. `handlers` are
    tried in order; the first one returning True claims the failure and its
    remediation text is shown.
    """

    def __init__(
        self,
        mapping: Optional[Dict[Type[BaseException], str]] = None,
        handlers: Optional[Sequence[Handler]] = None,
        docs_url: Optional[str] = None,
        link_builder: Optional[Callable[[BaseException], str]] = None,
    ):
        self.mapping = dict(DEFAULT_MAPPING if mapping is None else mapping)
        self.handlers: List[Handler] = list(handlers) if handlers is not None else [
            self._claims(cls) for cls in self.mapping
        ]
        self.docs_url = docs_url or settings.DOCS_URL
        self._link_builder = link_builder

    @staticmethod
    def _claims(cls: Type[BaseException]) -> Handler:
        return lambda exc: any(type(e) is cls for e in iter_causes(exc))

    def lookup(self, exc: BaseException) -> Optional[str]:
        """Remediation text for the first mapped exception in the chain."""
        for e in iter_causes(exc):
            text = self.mapping.get(type(e))
            if text is not None:
                return text
        return None

    def peel_until_mappable(self, exc: BaseException) -> type:
        """The type of the first mapped exception in the chain, else of the innermost one."""
        last: BaseException = exc
        for e in iter_causes(exc):
            if type(e) in self.mapping:
                return type(e)
            last = e
        return type(last)

    def create_x_url(self, exc: BaseException) -> str:
        if self._link_builder is not None:
            return self._link_builder(exc)
        anchor = _type_name(self.peel_until_mappable(exc)).replace(".", "").lower()
        return f"{self.docs_url}#{anchor}"

    def is_claimed(self, exc: BaseException) -> bool:
        return any(handler(exc) for handler in self.handlers)


def enrich(exc: BaseException, registry: Optional[ExceptionRegistry] = None) -> EnrichedFailure:
    """Build the failure that replaces `exc` at the process boundary."""
    registry = registry or ExceptionRegistry()
    link = registry.create_x_url(exc)

    extra_info = ""
    if registry.is_claimed(exc):
        remediation = registry.lookup(exc)
        if remediation:
            extra_info = remediation + "\n"
    extra_info += f"{CONTRIBUTE_HINT}\n{link}"

    failure = EnrichedFailure(extra_info)
    failure.__cause__ = exc
    return failure


def main(
    argv: Sequence[str],
    tool: Optional[Tool] = None,
    registry: Optional[ExceptionRegistry] = None,
) -> int:
    """
    Process entry point: run the tool, and re-raise any failure with
    remediation text and a documentation link attached.
    """
    tool = tool or Tool()
    try:
        return tool.run(argv)
    except Exception as e:
        # re-throw the exception with extra info
        raise enrich(e, registry) from e
