"""Non-fatal problems collected during startup."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

log = structlog.get_logger()


@dataclass
class StartupWarning:
    message: str
    cause: BaseException | None = None


@dataclass
class StartupWarnings:
    """Warnings a presentation layer can show after bootstrap.

    Each warning is logged as it is added.
    """

    items: list[StartupWarning] = field(default_factory=list)

    def add(self, message: str, cause: BaseException | None = None) -> None:
        log.warning("startup_warning", message=message, error=str(cause) if cause else None)
        self.items.append(StartupWarning(message, cause))

    @property
    def messages(self) -> list[str]:
        return [w.message for w in self.items]

    def __len__(self) -> int:
        return len(self.items)
