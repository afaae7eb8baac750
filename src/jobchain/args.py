# args.py
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .errors import ArgsError

if TYPE_CHECKING:
    from .mode import Mode


_NUMBER = re.compile(r"^-?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?$")


def _is_number(token: str) -> bool:
    return bool(_NUMBER.match(token))


class Args:
    """
    Immutable command-line argument bag.

    Values are grouped under the key that precedes them:

        Args.parse(["in.txt", "--output", "a", "b", "--verbose"])
        -> {"": ("in.txt",), "output": ("a", "b"), "verbose": ()}

    Positional values live under the empty-string key. Negative numbers are
    values, not keys. Every "modification" returns a new Args.
    """

    __slots__ = ("_m", "_mode")

    def __init__(self, m: Mapping[str, Iterable[str]] | None = None, mode: Optional["Mode"] = None):
        self._m: Dict[str, Tuple[str, ...]] = {k: tuple(v) for k, v in (m or {}).items()}
        self._mode = mode

    # ---- construction ----

    @classmethod
    def parse(cls, tokens: Iterable[str]) -> "Args":
        groups: List[Tuple[str, List[str]]] = [("", [])]
        for token in tokens:
            if not token.strip():
                continue
            key = token.lstrip("-")
            if key == token or not key or _is_number(token):
                groups[-1][1].append(token)
            else:
                groups.append((key, []))

        m: Dict[str, List[str]] = {}
        for key, values in groups:
            # a repeated key keeps its last group
            m[key] = values
        return cls(m)

    @classmethod
    def from_string(cls, line: str) -> "Args":
        return cls.parse(line.split())

    # ---- access ----

    def boolean(self, key: str) -> bool:
        return key in self._m

    def list(self, key: str) -> List[str]:
        return list(self._m.get(key, ()))

    def optional(self, key: str) -> Optional[str]:
        values = self._m.get(key, ())
        if not values:
            return None
        if len(values) > 1:
            raise ArgsError(f"Please only provide a single value for --{key}")
        return values[0]

    def get_or_else(self, key: str, default: str) -> str:
        value = self.optional(key)
        return default if value is None else value

    def required(self, key: str) -> str:
        values = self._m.get(key, ())
        if not values:
            raise ArgsError(f"Please provide a value for --{key}")
        if len(values) > 1:
            raise ArgsError(f"Please only provide a single value for --{key}")
        return values[0]

    @property
    def positional(self) -> List[str]:
        return self.list("")

    @property
    def mode(self) -> Optional["Mode"]:
        return self._mode

    # ---- transformation ----

    def with_values(self, key: str, values: Iterable[str]) -> "Args":
        m = dict(self._m)
        m[key] = tuple(values)
        return Args(m, self._mode)

    def __add__(self, keyvals: Tuple[str, Iterable[str]]) -> "Args":
        key, values = keyvals
        return self.with_values(key, values)

    def with_mode(self, mode: "Mode") -> "Args":
        return Args(self._m, mode)

    def to_list(self) -> List[str]:
        out = list(self._m.get("", ()))
        for key, values in self._m.items():
            if key == "":
                continue
            out.append(f"--{key}")
            out.extend(values)
        return out

    # ---- mapping protocol ----

    def __contains__(self, key: object) -> bool:
        return key in self._m

    def __iter__(self) -> Iterator[str]:
        return iter(self._m)

    def __len__(self) -> int:
        return len(self._m)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Args):
            return NotImplemented
        return self._m == other._m and self._mode == other._mode

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._m.items())))

    def __repr__(self) -> str:
        return f"Args({self._m!r})"

    def __str__(self) -> str:
        return " ".join(self.to_list())
