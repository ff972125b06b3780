from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import Request

from valhalla_api.config import Settings
from valhalla_api.observability.metrics import MetricsRegistry
from valhalla_api.services.catalog import Catalog


ReadinessCheck = Callable[[], bool]


@dataclass
class AppContext:
    """Process-scoped collaborators, built once per application instance."""

    settings: Settings
    catalog: Catalog = field(default_factory=Catalog)
    metrics: MetricsRegistry = field(default_factory=MetricsRegistry)
    readiness_checks: list[ReadinessCheck] = field(default_factory=list)

    def add_readiness_check(self, check: ReadinessCheck) -> None:
        self.readiness_checks.append(check)

    def is_ready(self) -> bool:
        # Hook for downstream dependency checks; no checks means ready.
        return all(check() for check in self.readiness_checks)


def get_context(request: Request) -> AppContext:
    return request.app.state.context
