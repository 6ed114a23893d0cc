"""Observability port injected into services.

Services never reach for a process-wide logger implicitly: they accept any
object with structlog-style ``info`` / ``warning`` / ``error`` methods and
fall back to their module's structlog logger when none is given.
"""

from __future__ import annotations

from typing import Any, Protocol


class IObservability(Protocol):
    def info(self, event: str, **kw: Any) -> Any: ...

    def warning(self, event: str, **kw: Any) -> Any: ...

    def error(self, event: str, **kw: Any) -> Any: ...
