from __future__ import annotations

import threading
from collections import namedtuple

import src.ohmgraphite.sensors as sensors_mod
from src.ohmgraphite.format import normalized_identifier
from src.ohmgraphite.models import HardwareType, SensorType

_VMem = namedtuple("_VMem", "total available percent")
_Freq = namedtuple("_Freq", "current min max")
_Temp = namedtuple("_Temp", "label current high critical")
_Fan = namedtuple("_Fan", "label current")
_Batt = namedtuple("_Batt", "percent secsleft power_plugged")
_CpuTimes = namedtuple("_CpuTimes", "user system idle")


class _Clock:
    """cpu_times stand-in: every tick adds the same busy/idle split to each core."""

    # (busy, idle) seconds per tick: core 1 at 10%, core 2 at 30%
    split = [(1.0, 9.0), (3.0, 7.0)]

    def __init__(self) -> None:
        self.ticks = 0

    def __call__(self, percpu=False):
        assert percpu
        n = self.ticks
        return [_CpuTimes(busy * n, 0.0, idle * n) for busy, idle in self.split]


# This function replaces psutil's probes with fixed values.
def _fake_psutil(monkeypatch, *, temps=None, fans=None, battery=None):
    ps = sensors_mod.psutil
    clock = _Clock()
    monkeypatch.setattr(ps, "cpu_times", clock)
    monkeypatch.setattr(sensors_mod, "_CPU_LOAD", sensors_mod._CpuLoad())
    clock.ticks = 1
    monkeypatch.setattr(ps, "cpu_freq", lambda: _Freq(3400.0, 800.0, 4200.0))
    monkeypatch.setattr(ps, "virtual_memory", lambda: _VMem(16 * 1024**3, 4 * 1024**3, 75.0))
    monkeypatch.setattr(ps, "sensors_temperatures", lambda: temps or {}, raising=False)
    monkeypatch.setattr(ps, "sensors_fans", lambda: fans or {}, raising=False)
    monkeypatch.setattr(ps, "sensors_battery", lambda: battery, raising=False)
    monkeypatch.setattr(sensors_mod, "_cpu_name", lambda: "Test CPU")
    return clock


def test_collect_readings__cpu_and_memory(monkeypatch):
    _fake_psutil(monkeypatch)

    by_path = {normalized_identifier("h", r): r for r in sensors_mod.collect_readings()}

    assert by_path["ohm.h.cpu.0.load.cputotal"].value == 20.0
    assert by_path["ohm.h.cpu.0.load.cpucore.1"].value == 10.0
    assert by_path["ohm.h.cpu.0.load.cpucore.2"].value == 30.0
    assert by_path["ohm.h.cpu.0.clock.cpuclock"].sensor_type is SensorType.Clock
    assert by_path["ohm.h.ram.load.memory"].value == 75.0
    assert by_path["ohm.h.ram.data.usedmemory"].value == 12.0
    assert by_path["ohm.h.ram.data.availablememory"].value == 4.0
    assert by_path["ohm.h.cpu.0.load.cputotal"].hardware == "Test CPU"
    print("\n.✅test_collect_readings__cpu_and_memory passed")


def test_collect_readings__board_sensors_and_battery(monkeypatch):
    _fake_psutil(
        monkeypatch,
        temps={"coretemp": [_Temp("Package id 0", 48.0, 80.0, 100.0), _Temp("", 45.0, None, None)]},
        fans={"nct6775": [_Fan("", 1200)]},
        battery=_Batt(87.0, 3600, False),
    )

    readings = sensors_mod.collect_readings()
    temps = [r for r in readings if r.sensor_type is SensorType.Temperature]
    assert [(r.identifier, r.sensor, r.value) for r in temps] == [
        ("/lpc/coretemp/temperature/0", "Package id 0", 48.0),
        ("/lpc/coretemp/temperature/1", "Temperature #2", 45.0),
    ]
    assert all(r.hardware_type is HardwareType.SuperIO for r in temps)

    fans = [r for r in readings if r.sensor_type is SensorType.Fan]
    assert [(r.sensor, r.value) for r in fans] == [("Fan #1", 1200.0)]

    batt = [r for r in readings if r.hardware_type is HardwareType.Battery]
    assert [(r.sensor, r.value) for r in batt] == [("Charge Level", 87.0)]


def test_collect_readings__failing_group_is_skipped(monkeypatch):
    _fake_psutil(monkeypatch)

    def broken():
        raise OSError("no /proc")

    monkeypatch.setattr(sensors_mod.psutil, "virtual_memory", broken)

    readings = sensors_mod.collect_readings()
    assert readings  # cpu readings survive
    assert not any(r.hardware_type is HardwareType.Memory for r in readings)


# CPU load comes from one process-wide baseline, so a thread that never sampled before still sees it.
def test_collect_readings__cpu_load_seen_from_fresh_threads(monkeypatch):
    clock = _fake_psutil(monkeypatch)
    totals = []

    def tick():
        by_id = {r.identifier: r.value for r in sensors_mod.collect_readings()}
        totals.append((by_id["/cpu/0/load/0"], by_id["/cpu/0/load/1"], by_id["/cpu/0/load/2"]))

    for _ in range(2):
        clock.ticks += 1
        t = threading.Thread(target=tick)
        t.start()
        t.join(5)

    assert totals == [(20.0, 10.0, 30.0), (20.0, 10.0, 30.0)]
    print("✅test_collect_readings__cpu_load_seen_from_fresh_threads passed")


def test_cpu_load__no_elapsed_time_reports_zero(monkeypatch):
    _fake_psutil(monkeypatch)
    sensors_mod._CPU_LOAD.sample()
    # clock not advanced since the previous sample
    total, per_core = sensors_mod._CPU_LOAD.sample()
    assert total == 0.0
    assert per_core == [0.0, 0.0]
