"""Recognition method priority management."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from object_recognition.domain.priority import PriorityConfig, RecognitionMethod
from object_recognition.errors import ValidationError
from object_recognition.services.streams import StateStream

_logger = logging.getLogger(__name__)


class PriorityStore(Protocol):
    """Persistence interface for the priority config."""

    def load(self) -> PriorityConfig | None:
        """Return the stored config, or None when nothing is stored."""

    def save(self, config: PriorityConfig) -> None:
        """Replace the stored config."""

    def clear(self) -> None:
        """Remove the stored config."""


@dataclass
class PriorityManager:
    """Exposes the effective, validated priority order."""

    store: PriorityStore
    changes: StateStream[PriorityConfig] = field(
        default_factory=lambda: StateStream(PriorityConfig.default())
    )

    def get_config(self) -> PriorityConfig:
        """Return the stored config, or the default if none is usable."""
        try:
            config = self.store.load()
        except Exception:
            _logger.exception("Failed to load priority config, using default")
            return PriorityConfig.default()
        if config is None:
            return PriorityConfig.default()
        errors = config.validation_errors()
        if errors:
            _logger.warning(
                "Stored priority config is invalid (%s), using default",
                "; ".join(errors),
            )
            return PriorityConfig.default()
        return config

    def save_config(self, config: PriorityConfig) -> None:
        """Validate and persist a config, then notify subscribers."""
        errors = config.validation_errors()
        if errors:
            raise ValidationError("; ".join(errors))
        self.store.save(config)
        _logger.info(
            "Priority config saved: %s",
            [
                f"{entry.method.value}{'' if entry.enabled else ' (disabled)'}"
                for entry in config.entries
            ],
        )
        self.changes.publish(config)

    def get_enabled_methods_in_order(self) -> list[RecognitionMethod]:
        return self.get_config().enabled_methods()

    def reset_to_default(self) -> None:
        self.save_config(PriorityConfig.default())

    def set_method_enabled(self, method: RecognitionMethod, enabled: bool) -> None:
        """Toggle a single method and persist the result."""
        self.save_config(self.get_config().with_method_enabled(method, enabled))

    def reorder(self, methods: Iterable[RecognitionMethod]) -> None:
        """Persist a new order, keeping each method's enabled flag."""
        self.save_config(self.get_config().reordered(methods))
