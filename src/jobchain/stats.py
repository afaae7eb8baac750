# stats.py
from __future__ import annotations

import json
import math
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol, Union

CUSTOM_GROUP = "jobchain.custom"


@dataclass(frozen=True)
class Counter:
    group: str
    name: str

    def __str__(self) -> str:
        return f"{self.group}.{self.name}"


class Status(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"


class StatsProvider(Protocol):
    """What the driver needs from any statistics object."""

    @property
    def is_successful(self) -> bool: ...

    def counters_for(self, group: str) -> Dict[str, int]: ...

    def increment(self, group: str, name: str, amount: int = 1) -> None: ...


class FlowStats:
    """
    Statistics of a single flow run.

    Counters may be incremented from several engine threads at once.
    """

    def __init__(self, name: str):
        self.name = name
        self.status = Status.PENDING
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self.failure: Optional[BaseException] = None
        self._counters: Dict[Counter, int] = {}
        self._lock = threading.Lock()

    # ---- lifecycle (engine side) ----

    def mark_running(self) -> None:
        self.status = Status.RUNNING
        self.started_at = time.monotonic()

    def mark_finished(self, failure: Optional[BaseException] = None) -> None:
        self.finished_at = time.monotonic()
        self.failure = failure
        self.status = Status.FAILED if failure is not None else Status.SUCCESSFUL

    # ---- counters ----

    def increment(self, group: str, name: str, amount: int = 1) -> None:
        key = Counter(group, name)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def counters(self) -> Dict[Counter, int]:
        with self._lock:
            return dict(self._counters)

    def counters_for(self, group: str) -> Dict[str, int]:
        return {c.name: v for c, v in self.counters().items() if c.group == group}

    # ---- reporting ----

    @property
    def is_successful(self) -> bool:
        return self.status is Status.SUCCESSFUL

    @property
    def duration_ms(self) -> int:
        if self.started_at is None:
            return 0
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return int((end - self.started_at) * 1000)

    def to_map(self) -> Dict[str, Any]:
        return JobStats(self).to_map()


class CascadeStats:
    """Aggregate statistics of every flow a cascade ran."""

    def __init__(self, name: str, flow_stats: List[FlowStats], expected: Optional[int] = None):
        self.name = name
        self.flow_stats = flow_stats
        # flows the cascade never got to (it stops at the first failure)
        self.expected = len(flow_stats) if expected is None else expected

    @property
    def is_successful(self) -> bool:
        return len(self.flow_stats) == self.expected and all(s.is_successful for s in self.flow_stats)

    @property
    def status(self) -> Status:
        return Status.SUCCESSFUL if self.is_successful else Status.FAILED

    @property
    def duration_ms(self) -> int:
        return sum(s.duration_ms for s in self.flow_stats)

    def counters(self) -> Dict[Counter, int]:
        total: Dict[Counter, int] = {}
        for s in self.flow_stats:
            for c, v in s.counters().items():
                total[c] = total.get(c, 0) + v
        return total

    def counters_for(self, group: str) -> Dict[str, int]:
        return {c.name: v for c, v in self.counters().items() if c.group == group}

    def increment(self, group: str, name: str, amount: int = 1) -> None:
        raise TypeError("CascadeStats is read-only; increment the stats of a flow")

    def to_map(self) -> Dict[str, Any]:
        return JobStats(self).to_map()


class JobStats:
    """Flattened view of a run's statistics, used for the stats JSON file."""

    def __init__(self, stats: Union[FlowStats, CascadeStats]):
        self.stats = stats

    def to_map(self) -> Dict[str, Any]:
        m: Dict[str, Any] = {
            "name": self.stats.name,
            "status": self.stats.status.value,
            "duration_ms": self.stats.duration_ms,
        }
        for counter, value in sorted(self.stats.counters().items(), key=lambda kv: str(kv[0])):
            m[str(counter)] = value
        return m


# ----------------------------------------------------------------------
# Custom counters: one provider bound per run
# ----------------------------------------------------------------------

_provider: Optional[StatsProvider] = None


@contextmanager
def bind_provider(stats: StatsProvider) -> Iterator[StatsProvider]:
    """
    Make `stats` the target of custom counters for the duration of a run.

    The previous binding is restored on exit, so counters never leak from one
    job of a chain into the next. Not thread-safe: one driver per process.
    """
    global _provider
    previous = _provider
    _provider = stats
    try:
        yield stats
    finally:
        _provider = previous


def current_provider() -> Optional[StatsProvider]:
    return _provider


class Stat:
    """A named custom counter, incremented on whatever provider is bound."""

    def __init__(self, name: str, group: str = CUSTOM_GROUP):
        self.name = name
        self.group = group

    def inc(self, amount: int = 1) -> None:
        if _provider is None:
            raise RuntimeError(f"No statistics provider bound; cannot increment {self.group}.{self.name}")
        _provider.increment(self.group, self.name, amount)


def get_all_custom_counters(provider: Optional[StatsProvider] = None) -> Dict[str, int]:
    stats = provider if provider is not None else _provider
    if stats is None:
        return {}
    return stats.counters_for(CUSTOM_GROUP)


# ----------------------------------------------------------------------
# JSON rendering
# ----------------------------------------------------------------------

def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def to_json_value(value: Any) -> str:
    """
    Render one statistics value as a JSON scalar.

    Integers and floats are emitted bare in their canonical form; anything
    else becomes a JSON string.

        >>> to_json_value("42"), to_json_value("3.14"), to_json_value("abc")
        ('42', '3.14', '"abc"')
    """
    text = str(value)
    if "_" not in text:
        try:
            return str(int(text))
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            pass
        else:
            # nan and inf have no JSON literal
            if math.isfinite(number):
                return repr(number)
    return _quote(text)


def stats_to_json(stats: Mapping[str, Any]) -> str:
    pairs = (f"{_quote(str(k))} : {to_json_value(v)}" for k, v in stats.items())
    return "{" + ",".join(pairs) + "}"
