"""Metrics hook protocol and no-op default implementation.

imagegate emits counters and timings at each pipeline stage.  By default a
:class:`NoopMetricsHook` is used so there is zero overhead.  Supply any
object satisfying :class:`MetricsHook` via ``ImagegateConfig(metrics=...)``
to route them to StatsD, Prometheus or similar.

Emitted metric names:

* ``imagegate.batch_size``              -- gauge, items in the submitted batch
* ``imagegate.images_total``            -- counter, tag ``kind``
* ``imagegate.transcode_total``         -- counter, tag ``status``
* ``imagegate.transcode_duration_ms``   -- timing
* ``imagegate.upload_success_total``    -- counter
* ``imagegate.upload_failure_total``    -- counter
* ``imagegate.upload_duration_ms``      -- timing
* ``imagegate.delete_total``            -- counter, tag ``status``
* ``imagegate.batch_failure_total``     -- counter, tag ``code``
* ``imagegate.store_requests_total``    -- counter, tags ``method`` ``path`` ``status``
* ``imagegate.store_request_duration_ms`` -- timing, tags ``method`` ``path``
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    All methods accept an optional *tags* dict of string keys and values.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to an absolute value."""
        ...


class NoopMetricsHook:
    """Default metrics implementation that silently discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass


def resolve_metrics(metrics: object | None) -> MetricsHook:
    """Return *metrics*, or a :class:`NoopMetricsHook` when it is ``None``."""
    return metrics if metrics is not None else NoopMetricsHook()  # type: ignore[return-value]
