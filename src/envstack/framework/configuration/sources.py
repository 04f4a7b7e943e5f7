"""
Configuration sources for loading raw key/value layers.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple, Union

from dotenv.parser import parse_stream

from ...infrastructure.exceptions import FileAccessError
from .environment import Environment

logger = logging.getLogger(__name__)

QUOTE_CHARS = ('"', "'")


def strip_quotes(value: str) -> str:
    """Remove one matching pair of surrounding quotes."""
    if len(value) >= 2 and value[0] in QUOTE_CHARS and value[0] == value[-1]:
        return value[1:-1]
    return value


def parse_assignment(text: str) -> Optional[Tuple[str, str]]:
    """
    Split one ``KEY=VALUE`` statement.

    The value is taken verbatim: inline ``#`` text and backslashes are kept
    and only one pair of surrounding quotes is removed. Returns None for
    blank lines, comments and statements without ``=``.
    """
    stripped = text.strip()
    if not stripped or stripped.startswith("#") or "=" not in stripped:
        return None
    key, _, value = stripped.partition("=")
    key = key.strip()
    if not key:
        return None
    return key, strip_quotes(value.strip())


class ConfigurationSource(ABC):
    """Abstract base class for a single configuration layer."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def load(self) -> Dict[str, str]:
        """Load the layer's key/value pairs."""
        pass


class EnvFileSource(ConfigurationSource):
    """A dotenv file. A missing file is an empty layer."""

    def __init__(self, file_path: Union[str, Path]):
        self.file_path = Path(file_path)

    @property
    def name(self) -> str:
        return self.file_path.name

    def exists(self) -> bool:
        return self.file_path.is_file()

    def load(self) -> Dict[str, str]:
        if not self.exists():
            logger.debug("Skipping missing env file", extra={"file_path": str(self.file_path)})
            return {}

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                bindings = list(parse_stream(f))
        except (OSError, UnicodeDecodeError) as e:
            raise FileAccessError(
                f"Cannot read configuration file: {self.file_path}",
                file_path=str(self.file_path),
                cause=e
            ) from e

        values: Dict[str, str] = {}
        for binding in bindings:
            # Comment and blank statements; unparseable lines still get the plain rule
            if binding.key is None and not binding.error:
                continue
            parsed = parse_assignment(binding.original.string)
            if parsed is None:
                continue
            key, value = parsed
            values[binding.key or key] = value
        return values


class ProcessEnvironmentSource(ConfigurationSource):
    """Process environment variables; always the highest precedence layer."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ

    @property
    def name(self) -> str:
        return "process"

    def load(self) -> Dict[str, str]:
        environ = os.environ if self._environ is None else self._environ
        return dict(environ)


@dataclass
class RawEnvironment:
    """Ordered layers plus their shallow last-write-wins merge."""
    environment: Environment
    layers: List[Tuple[str, Dict[str, str]]] = field(default_factory=list)
    merged: Dict[str, str] = field(default_factory=dict)
    loaded_files: List[str] = field(default_factory=list)
    skipped_files: List[str] = field(default_factory=list)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.merged.get(key, default)

    def source_of(self, key: str) -> Optional[str]:
        """Name of the highest precedence layer that defines ``key``."""
        for name, values in reversed(self.layers):
            if key in values:
                return name
        return None


def layer_file_names(environment: Environment) -> List[str]:
    env = Environment.parse(environment).value
    return [".env", ".env.local", f".env.{env}", f".env.{env}.local"]


class SourceResolver:
    """
    Resolves the layered sources for one environment.

    Files under ``base_dir`` are merged in the order ``.env``,
    ``.env.local``, ``.env.<env>``, ``.env.<env>.local`` and the process
    environment is applied last.
    """

    def __init__(self, base_dir: Union[str, Path] = ".", environ: Optional[Mapping[str, str]] = None):
        self.base_dir = Path(base_dir)
        self.environ = environ

    def layer_paths(self, environment: Environment) -> List[Path]:
        return [self.base_dir / name for name in layer_file_names(environment)]

    def sources(self, environment: Environment) -> List[ConfigurationSource]:
        sources: List[ConfigurationSource] = [EnvFileSource(p) for p in self.layer_paths(environment)]
        sources.append(ProcessEnvironmentSource(self.environ))
        return sources

    def resolve(self, environment: Environment) -> RawEnvironment:
        environment = Environment.parse(environment)
        raw = RawEnvironment(environment=environment)

        for source in self.sources(environment):
            if isinstance(source, EnvFileSource):
                if source.exists():
                    raw.loaded_files.append(str(source.file_path))
                else:
                    raw.skipped_files.append(str(source.file_path))
            values = source.load()
            raw.layers.append((source.name, values))
            raw.merged.update(values)

        logger.debug(
            "Resolved configuration layers",
            extra={
                "environment": environment.value,
                "loaded_files": raw.loaded_files,
                "key_count": len(raw.merged),
            }
        )
        return raw
