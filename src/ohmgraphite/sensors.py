from __future__ import annotations

import platform
import threading
from typing import Any, Callable, List, Tuple

import psutil

from .log import get_logger
from .models import HardwareType, Reading, SensorType

"""
Host sensor source (psutil)

collect_readings() returns one batch of Readings for the local machine, using
LibreHardwareMonitor-style identifiers ("/<hardware>/<n>/<kind>/<index>") so
the metric paths line up with what a Windows host would report:
  - CPU total and per-core load, CPU clock
  - memory load, used and available (GB)
  - temperature and fan sensors where the platform exposes them
  - battery charge level
"""

_LOG = get_logger(__name__)
_GB = 1024.0**3

ReadingSource = Callable[[], List[Reading]]


def _cpu_name() -> str:
    return platform.processor() or platform.machine() or "CPU"


def _busy_and_total(t: Any) -> Tuple[float, float]:
    # guest time is already counted in user on Linux
    total = sum(t) - getattr(t, "guest", 0.0) - getattr(t, "guest_nice", 0.0)
    idle = t.idle + getattr(t, "iowait", 0.0)
    return total - idle, total


class _CpuLoad:
    """
    CPU busy percentage since the previous sample.

    One baseline for the whole process, so a report thread that has never
    sampled before still gets the load since the last tick. psutil.cpu_percent
    keeps its interval=None baseline per thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = psutil.cpu_times(percpu=True)

    def sample(self) -> Tuple[float, List[float]]:
        """Return (total, per-core) load in percent."""
        with self._lock:
            now = psutil.cpu_times(percpu=True)
            last, self._last = self._last, now

        total_busy = total_all = 0.0
        per_core: List[float] = []
        for before, after in zip(last, now):
            b0, t0 = _busy_and_total(before)
            b1, t1 = _busy_and_total(after)
            total_busy += b1 - b0
            total_all += t1 - t0
            per_core.append(_percent(b1 - b0, t1 - t0))
        return _percent(total_busy, total_all), per_core


def _percent(busy: float, total: float) -> float:
    if total <= 0.0:
        return 0.0
    return round(min(100.0, max(0.0, busy / total * 100.0)), 1)


# Primed at import so the first tick already has an interval to measure.
_CPU_LOAD = _CpuLoad()


# This function reads CPU load and clock.
def _cpu_readings() -> List[Reading]:
    hw = _cpu_name()
    total, per_core = _CPU_LOAD.sample()
    out: List[Reading] = [
        Reading(
            identifier="/cpu/0/load/0",
            sensor="CPU Total",
            value=total,
            hardware=hw,
            hardware_type=HardwareType.Cpu,
            sensor_type=SensorType.Load,
            sensor_index=0,
        )
    ]
    for i, pct in enumerate(per_core, start=1):
        out.append(
            Reading(
                identifier=f"/cpu/0/load/{i}",
                sensor=f"CPU Core #{i}",
                value=pct,
                hardware=hw,
                hardware_type=HardwareType.Cpu,
                sensor_type=SensorType.Load,
                sensor_index=i,
            )
        )

    freq = psutil.cpu_freq()
    if freq is not None:
        out.append(
            Reading(
                identifier="/cpu/0/clock/0",
                sensor="CPU Clock",
                value=float(freq.current),
                hardware=hw,
                hardware_type=HardwareType.Cpu,
                sensor_type=SensorType.Clock,
                sensor_index=0,
            )
        )
    return out


# This function reads memory load and usage.
def _memory_readings() -> List[Reading]:
    vm = psutil.virtual_memory()
    common = dict(hardware="Generic Memory", hardware_type=HardwareType.Memory)
    return [
        Reading(
            identifier="/ram/load/0",
            sensor="Memory",
            value=float(vm.percent),
            sensor_type=SensorType.Load,
            sensor_index=0,
            **common,
        ),
        Reading(
            identifier="/ram/data/0",
            sensor="Used Memory",
            value=(vm.total - vm.available) / _GB,
            sensor_type=SensorType.Data,
            sensor_index=0,
            **common,
        ),
        Reading(
            identifier="/ram/data/1",
            sensor="Available Memory",
            value=vm.available / _GB,
            sensor_type=SensorType.Data,
            sensor_index=1,
            **common,
        ),
    ]


# This function reads temperature and fan sensors (Linux/FreeBSD only).
def _board_readings() -> List[Reading]:
    out: List[Reading] = []

    temps = psutil.sensors_temperatures() if hasattr(psutil, "sensors_temperatures") else {}
    for chip, entries in temps.items():
        for i, entry in enumerate(entries):
            out.append(
                Reading(
                    identifier=f"/lpc/{chip}/temperature/{i}",
                    sensor=entry.label or f"Temperature #{i + 1}",
                    value=float(entry.current),
                    hardware=chip,
                    hardware_type=HardwareType.SuperIO,
                    sensor_type=SensorType.Temperature,
                    sensor_index=i,
                )
            )

    fans = psutil.sensors_fans() if hasattr(psutil, "sensors_fans") else {}
    for chip, entries in fans.items():
        for i, entry in enumerate(entries):
            out.append(
                Reading(
                    identifier=f"/lpc/{chip}/fan/{i}",
                    sensor=entry.label or f"Fan #{i + 1}",
                    value=float(entry.current),
                    hardware=chip,
                    hardware_type=HardwareType.SuperIO,
                    sensor_type=SensorType.Fan,
                    sensor_index=i,
                )
            )
    return out


def _battery_readings() -> List[Reading]:
    battery = psutil.sensors_battery() if hasattr(psutil, "sensors_battery") else None
    if battery is None:
        return []
    return [
        Reading(
            identifier="/battery/0/level/0",
            sensor="Charge Level",
            value=float(battery.percent),
            hardware="Battery",
            hardware_type=HardwareType.Battery,
            sensor_type=SensorType.Level,
            sensor_index=0,
        )
    ]


# This function collects one batch from every sensor group.
def collect_readings() -> List[Reading]:
    """A failing group is logged and skipped; the rest of the batch is still returned."""
    readings: List[Reading] = []
    for group in (_cpu_readings, _memory_readings, _board_readings, _battery_readings):
        try:
            readings.extend(group())
        except (OSError, RuntimeError, AttributeError) as e:
            _LOG.warning("sensor group %s unavailable: %s", group.__name__, e)
    return readings


__all__ = ["ReadingSource", "collect_readings"]
