"""
Shapes an entry of a job's `env` configuration can take.

A raw entry is either free text (usually "KEY=value"), a mapping tagged
with a `secure` key carrying an encrypted payload, or a mapping of plain
key/value pairs. `parse_entry` turns raw values into one of the three
variants so the protection pipeline can dispatch on type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union

SECURE_KEY = "secure"


@dataclass(frozen=True)
class PlainEnv:
    value: str


@dataclass(frozen=True)
class SecureEnv:
    payload: str


@dataclass(frozen=True)
class EnvPairs:
    pairs: Mapping[str, Any]

    def render(self) -> str:
        return " ".join(f"{key}={value}" for key, value in self.pairs.items())


EnvEntry = Union[PlainEnv, SecureEnv, EnvPairs]


def is_secure(raw: Any) -> bool:
    return isinstance(raw, Mapping) and SECURE_KEY in raw


def parse_entry(raw: Any) -> Optional[EnvEntry]:
    if raw is None:
        return None
    if is_secure(raw):
        return SecureEnv(str(raw[SECURE_KEY]))
    if isinstance(raw, Mapping):
        return EnvPairs(dict(raw))
    return PlainEnv(str(raw))


def parse_env(env: Any) -> List[EnvEntry]:
    """
    Coerce an `env` value to a list of typed entries.

    A single entry becomes a one-element list and key/value mappings are
    rendered to their "KEY=value" text form. None entries are dropped.
    """
    if not isinstance(env, (list, tuple)):
        env = [env]
    entries = []
    for raw in env:
        entry = parse_entry(raw)
        if isinstance(entry, EnvPairs):
            entry = PlainEnv(entry.render())
        if entry is not None:
            entries.append(entry)
    return entries
