# options.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, List, Mapping, MutableMapping, Optional, Sequence

from .errors import ConfigurationError


class EngineConfig(MutableMapping[str, str]):
    """
    Native engine configuration: flat string properties.

    Filled from a default properties file, ``-conf`` files and ``-D`` options
    before any job is built. Jobs see it through ``args.mode.config``.
    """

    def __init__(self, props: Optional[Mapping[str, str]] = None):
        self._props: Dict[str, str] = dict(props or {})

    def __getitem__(self, key: str) -> str:
        return self._props[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._props[key] = str(value)

    def __delitem__(self, key: str) -> None:
        del self._props[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._props)

    def __len__(self) -> int:
        return len(self._props)

    def __repr__(self) -> str:
        return f"EngineConfig({self._props!r})"

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._props.get(key)
        if value is None:
            return default
        return value.strip().lower() in ("1", "true", "yes", "on")

    def load_file(self, path: str | Path) -> None:
        """
        Load ``key=value`` lines from a properties file.

        Blank lines and lines starting with ``#`` are ignored.
        """
        p = Path(path).expanduser()
        try:
            text = p.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Could not read configuration file {p}: {e}") from e

        for lineno, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                raise ConfigurationError(f"{p}:{lineno}: expected key=value, got {line!r}")
            key, value = line.split("=", 1)
            self[key.strip()] = value.strip()


# option -> config key; values are comma lists appended to what is already set
_LIST_OPTIONS = {
    "-files": "tmpfiles",
    "-libjars": "tmpjars",
    "-archives": "tmparchives",
}
_VALUE_OPTIONS = {
    "-fs": "fs.defaultFS",
    "-jt": "mapreduce.jobtracker.address",
    "-tokenCacheFile": "mapreduce.job.credentials.json",
}


class GenericOptionsParser:
    """
    Strip engine-level options from a command line.

    Recognised options (each consumes the token after it unless noted):

      -D key=value | -Dkey=value   set a property
      -conf <file>                 load a properties file
      -fs <uri>, -jt <host>        shorthand properties
      -files / -libjars / -archives <a,b,...>
                                   resource declarations shipped with the job

    Parsing stops at ``--`` (dropped) or at the first token that is not one of
    the above; that token and everything after it is left for the job.
    """

    def __init__(self, config: EngineConfig, argv: Sequence[str]):
        self.config = config
        self.remaining_args: List[str] = self._parse(list(argv))

    def _parse(self, argv: List[str]) -> List[str]:
        i = 0
        while i < len(argv):
            token = argv[i]

            if token == "--":
                return argv[i + 1:]

            if token.startswith("-D") and token != "-D":
                self._define(token[2:])
                i += 1
                continue

            if token not in ("-D", "-conf") and token not in _LIST_OPTIONS and token not in _VALUE_OPTIONS:
                break

            if i + 1 >= len(argv):
                raise ConfigurationError(f"Option {token} requires a value")
            value = argv[i + 1]

            if token == "-D":
                self._define(value)
            elif token == "-conf":
                self.config.load_file(value)
            elif token in _VALUE_OPTIONS:
                self.config[_VALUE_OPTIONS[token]] = value
            else:
                key = _LIST_OPTIONS[token]
                items = [v for v in value.split(",") if v]
                existing = [v for v in self.config.get(key, "").split(",") if v]
                self.config[key] = ",".join(existing + items)
            i += 2

        return argv[i:]

    def _define(self, assignment: str) -> None:
        key, _, value = assignment.partition("=")
        self.config[key.strip()] = value
