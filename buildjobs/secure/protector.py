"""
Protection of secret entries in a job's `env` configuration.

`ConfigProtector.obfuscate` renders the env for display with every secret
replaced by a placeholder. `ConfigProtector.decrypt` renders it for a
worker, decrypting secrets with the repository key. In a pull request
context secure entries are dropped by both, so builds of untrusted code
never see decrypted secrets.

Failures fail closed: if any secure entry cannot be decrypted the whole
env is withheld.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, List, Optional

from ..domain.env import EnvEntry, PlainEnv, SecureEnv, parse_env
from .key import DecryptionError, RepositoryKey

LOG = logging.getLogger(__name__)

SECURE_MARKER = "SECURE "
REDACTED = "[secure]"


@dataclass
class EnvResult:
    """Outcome of rendering an env: the entries, or why there are none."""

    entries: Optional[List[str]]
    error: Optional[DecryptionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _mark(plain: str) -> str:
    if SECURE_MARKER in plain:
        return plain
    return SECURE_MARKER + plain


class ConfigProtector(object):
    def __init__(self, pullRequest: bool, key: Optional[RepositoryKey] = None):
        self.pullRequest = pullRequest
        self._key = key

    def _process(self, env: Any,
                 render: Callable[[List[EnvEntry]], List[Optional[str]]]) -> EnvResult:
        entries = parse_env(env)
        if self.pullRequest:
            entries = [entry for entry in entries if not isinstance(entry, SecureEnv)]
            rendered = [entry.value for entry in entries]
        else:
            try:
                rendered = render(entries)
            except DecryptionError as error:
                return EnvResult(None, error)
        rendered = [value for value in rendered if value is not None]
        return EnvResult(rendered or None)

    def _obfuscateEntries(self, entries: List[EnvEntry]) -> List[Optional[str]]:
        return [REDACTED if isinstance(entry, SecureEnv) else entry.value
                for entry in entries]

    def _decryptEntries(self, entries: List[EnvEntry]) -> List[Optional[str]]:
        rendered = []
        for entry in entries:
            if isinstance(entry, SecureEnv):
                if self._key is None:
                    raise DecryptionError("no key material for secure entry")
                rendered.append(_mark(self._key.decrypt(entry.payload)))
            elif isinstance(entry, PlainEnv):
                rendered.append(entry.value)
        return rendered

    def obfuscate_env(self, env: Any) -> EnvResult:
        return self._process(env, self._obfuscateEntries)

    def decrypt_env(self, env: Any) -> EnvResult:
        result = self._process(env, self._decryptEntries)
        if not result.ok:
            LOG.warning("withholding env, secure entries failed to decrypt: %s",
                        result.error)
        return result

    def obfuscate(self, config: Dict[str, Any]) -> Dict[str, Any]:
        config = dict(config)
        if "env" not in config:
            return config
        result = self.obfuscate_env(config.pop("env"))
        if result.entries:
            config["env"] = " ".join(result.entries)
        return config

    def decrypt(self, config: Dict[str, Any]) -> Dict[str, Any]:
        config = dict(config)
        if "env" not in config:
            return config
        result = self.decrypt_env(config.pop("env"))
        if result.entries:
            config["env"] = result.entries
        return config
