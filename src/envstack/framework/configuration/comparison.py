"""
Field-level comparison of two configurations.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from .models import Config


@dataclass
class ConfigDiff:
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.changed)

    @property
    def differences(self) -> List[str]:
        return self.added + self.removed + self.changed

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "added": list(self.added),
            "removed": list(self.removed),
            "changed": list(self.changed),
            "unchanged": list(self.unchanged),
        }


def _ignored(path: str, ignore: Iterable[str]) -> bool:
    return any(path == prefix or path.startswith(prefix + ".") for prefix in ignore)


def diff_flat(old: Dict[str, Any], new: Dict[str, Any], ignore: Iterable[str] = ()) -> ConfigDiff:
    ignore = tuple(ignore)
    diff = ConfigDiff()
    for path in new:
        if path not in old and not _ignored(path, ignore):
            diff.added.append(path)
    for path, value in old.items():
        if _ignored(path, ignore):
            continue
        if path not in new:
            diff.removed.append(path)
        elif new[path] != value:
            diff.changed.append(path)
        else:
            diff.unchanged.append(path)
    return diff


def diff_configs(old: Config, new: Config, ignore: Iterable[str] = ()) -> ConfigDiff:
    """Compare two configs by dotted field path; ``ignore`` takes path prefixes."""
    return diff_flat(old.flatten(), new.flatten(), ignore)
