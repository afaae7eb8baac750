# mode.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .args import Args
from .options import EngineConfig


class ModeKind(str, Enum):
    LOCAL = "local"
    HDFS = "hdfs"


@dataclass(frozen=True)
class Mode:
    """Where the jobs of this invocation execute, plus the engine configuration."""
    kind: ModeKind
    config: EngineConfig = field(default_factory=EngineConfig, compare=False)
    strict: bool = False

    @property
    def is_local(self) -> bool:
        return self.kind is ModeKind.LOCAL

    @classmethod
    def from_args(cls, args: Args, config: EngineConfig) -> "Mode":
        # --hdfs wins; anything else runs locally
        kind = ModeKind.HDFS if args.boolean("hdfs") else ModeKind.LOCAL
        return cls(kind=kind, config=config, strict=args.boolean("strict"))


def put_mode(mode: Mode, args: Args) -> Args:
    """Attach `mode` to `args` so jobs built from them can read it back."""
    return args.with_mode(mode)
