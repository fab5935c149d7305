"""Recognition methods and their user-configurable priority order."""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum


class RecognitionMethod(Enum):
    """Recognition tiers tried in priority order."""

    LOCAL_CLASSIFIER = "LOCAL_CLASSIFIER"
    FREE_API = "FREE_API"
    USER_AI = "USER_AI"


@dataclass(frozen=True)
class PriorityEntry:
    """One method in the priority list and whether it is enabled."""

    method: RecognitionMethod
    enabled: bool = True


@dataclass(frozen=True)
class PriorityConfig:
    """Ordered, enable-flagged list of recognition methods.

    Position in ``entries`` is precedence. A valid config lists every
    method exactly once.
    """

    entries: tuple[PriorityEntry, ...]

    @classmethod
    def default(cls) -> "PriorityConfig":
        """Return local classifier, free API, user AI, all enabled."""
        entries = tuple(PriorityEntry(method) for method in RecognitionMethod)
        return cls(entries=entries)

    @classmethod
    def from_pairs(
        cls, pairs: Iterable[tuple[RecognitionMethod, bool]]
    ) -> "PriorityConfig":
        return cls(
            entries=tuple(
                PriorityEntry(method=method, enabled=enabled)
                for method, enabled in pairs
            )
        )

    def validation_errors(self) -> list[str]:
        """Return the reasons this config is invalid, empty when valid."""
        errors: list[str] = []
        counts = Counter(entry.method for entry in self.entries)
        duplicates = sorted(
            method.value for method, count in counts.items() if count > 1
        )
        if duplicates:
            errors.append(f"duplicate methods: {', '.join(duplicates)}")
        missing = sorted(
            method.value for method in RecognitionMethod if method not in counts
        )
        if missing:
            errors.append(f"missing methods: {', '.join(missing)}")
        return errors

    def enabled_methods(self) -> list[RecognitionMethod]:
        """Return enabled methods, preserving priority order."""
        return [entry.method for entry in self.entries if entry.enabled]

    def has_enabled_method(self) -> bool:
        return any(entry.enabled for entry in self.entries)

    def with_method_enabled(
        self, method: RecognitionMethod, enabled: bool
    ) -> "PriorityConfig":
        """Return a copy with one method toggled."""
        return PriorityConfig(
            entries=tuple(
                replace(entry, enabled=enabled) if entry.method is method else entry
                for entry in self.entries
            )
        )

    def reordered(self, methods: Iterable[RecognitionMethod]) -> "PriorityConfig":
        """Return a copy in the given order, keeping each method's enabled flag.

        Methods absent from the current config are added enabled.
        """
        enabled_by_method = {entry.method: entry.enabled for entry in self.entries}
        return PriorityConfig(
            entries=tuple(
                PriorityEntry(
                    method=method, enabled=enabled_by_method.get(method, True)
                )
                for method in methods
            )
        )
