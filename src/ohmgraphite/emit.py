from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable

from .config import AppConfig
from .errors import LockUnavailableError
from .log import get_logger
from .sensors import ReadingSource, collect_readings
from .sinks import GraphiteWriter

"""
Emitter
- Every cfg.interval seconds (cadence via monotonic clock):
  * stamp the tick once, collect a batch of readings
  * hand the batch to the Graphite writer
  * a failed report is logged and dropped; the next tick retries
- Each tick's report runs on its own thread so a slow collector does not
  stretch the cadence; the writer's lock keeps overlapping reports apart
"""

_LOG = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _spawn(target: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    t = threading.Thread(target=target, args=args, kwargs=kwargs, daemon=True, name="ohm-report")
    t.start()


# This function builds the writer described by the config.
def writer_from_config(cfg: AppConfig) -> GraphiteWriter:
    return GraphiteWriter(cfg.host, cfg.port, cfg.name, cfg.tags)


# This function performs one report: timestamp, collect, send.
def report_once(
    writer: GraphiteWriter,
    source: ReadingSource = collect_readings,
    *,
    now_fn: Callable[[], datetime] = _utc_now,
) -> bool:
    """Return True if the batch was sent. Errors are logged, never raised."""
    report_time = now_fn()
    try:
        readings = source()
        writer.report_metrics(report_time, readings)
    except LockUnavailableError as e:
        _LOG.warning("dropping report: %s", e)
        return False
    except OSError as e:
        _LOG.error("unable to send metrics to %s:%s: %s", *writer.address, e)
        return False
    except Exception as e:
        _LOG.exception("unexpected error while reporting metrics: %s", e)
        return False

    _LOG.debug("reported %d readings", len(readings))
    return True


# This function runs the main loop.
def run_forever(
    cfg: AppConfig,
    writer: GraphiteWriter,
    *,
    source: ReadingSource = collect_readings,
    monotonic_fn: Callable[[], float] = time.monotonic,
    sleep_fn: Callable[[float], None] = time.sleep,
    now_fn: Callable[[], datetime] = _utc_now,
    spawn: Callable[..., None] = _spawn,
) -> None:
    """Main loop: maintain a cfg.interval cadence (drift-free)."""
    _LOG.info(
        "reporting to %s:%s every %ss as %s (tags=%s)",
        cfg.host,
        cfg.port,
        cfg.interval,
        cfg.name,
        cfg.tags,
    )
    while True:
        t0 = monotonic_fn()

        spawn(report_once, writer, source, now_fn=now_fn)

        elapsed = monotonic_fn() - t0
        delay = cfg.interval - elapsed
        if delay > 0:
            sleep_fn(delay)


# This function runs one tick synchronously. This is useful for CLI --once and tests.
def run_once(
    cfg: AppConfig,
    writer: GraphiteWriter,
    *,
    source: ReadingSource = collect_readings,
    monotonic_fn: Callable[[], float] = time.monotonic,
    sleep_fn: Callable[[float], None] = time.sleep,
    now_fn: Callable[[], datetime] = _utc_now,
    do_sleep: bool = True,
) -> bool:
    """
    Single-tick helper.
    If do_sleep=False, executes one cycle without the final sleep.
    """
    t0 = monotonic_fn()

    ok = report_once(writer, source, now_fn=now_fn)

    elapsed = monotonic_fn() - t0
    delay = cfg.interval - elapsed
    if do_sleep and delay > 0:
        sleep_fn(delay)
    return ok
