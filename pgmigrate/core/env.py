"""
Environment access for pgmigrate settings.

``PGMIGRATE_*`` variables come from the process environment, optionally
seeded from a ``.env`` file in the working directory. Values referenced from
a YAML config file are expanded with the shell-like forms ``${VAR}``,
``${VAR:-fallback}`` and ``${VAR:?message}``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

_REFERENCE = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<op>[-?])(?P<arg>[^}]*))?\}")


class EnvManager:
    """
    Typed reads of migration settings.

    Malformed numbers are an error rather than a silent fallback, so a typo
    in ``PGMIGRATE_POLL_INTERVAL`` is reported instead of ignored.

    Example:
        >>> env = EnvManager()
        >>> env.load()
        >>> env.get_float("PGMIGRATE_POLL_INTERVAL", 2.0)
        2.0
    """

    def __init__(self, project_root: Path | str | None = None):
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self.loaded = False

    def load(self, env_file: str | Path | None = None) -> bool:
        """
        Seed the environment from a ``.env`` file; variables already set win.

        Returns:
            True if a file was found and loaded
        """
        path = Path(env_file) if env_file else self.project_root / ".env"
        if not path.is_file():
            return False

        load_dotenv(path, override=False)
        self.loaded = True
        return True

    def get(self, key: str, default: str | None = None) -> str | None:
        """The variable's value; unset or blank gives ``default``."""
        value = os.environ.get(key)
        if value is None or not value.strip():
            return default
        return value

    def get_int(self, key: str, default: int) -> int:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            msg = f"{key} must be an integer, got {raw!r}"
            raise ValueError(msg) from None

    def get_float(self, key: str, default: float | None) -> float | None:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return float(raw)
        except ValueError:
            msg = f"{key} must be a number, got {raw!r}"
            raise ValueError(msg) from None

    def expand(self, value: Any) -> Any:
        """
        Expand ``${...}`` references in strings, recursing into dicts and lists.

        An unset reference without a fallback is left as written.

        Raises:
            ValueError: For ``${VAR:?message}`` when ``VAR`` is unset
        """
        if isinstance(value, str):
            return _REFERENCE.sub(self._resolve, value)
        if isinstance(value, dict):
            return {key: self.expand(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self.expand(item) for item in value]
        return value

    @staticmethod
    def _resolve(match: re.Match[str]) -> str:
        name, op, arg = match.group("name", "op", "arg")
        value = os.environ.get(name)
        if value is not None:
            return value
        if op == "-":
            return arg
        if op == "?":
            raise ValueError(arg or f"Required variable not set: {name}")
        return match.group(0)


_global_env: EnvManager | None = None


def get_env() -> EnvManager:
    """Process-wide manager rooted at the working directory."""
    global _global_env
    if _global_env is None:
        _global_env = EnvManager()
    return _global_env
