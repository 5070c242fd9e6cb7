from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""
Reading model

A Reading is one sampled value handed to the writer by the poller. The enum
member *names* are what end up on the wire (hardware_type=/sensor_type= tags),
so they mirror LibreHardwareMonitor's naming exactly.
"""


class HardwareType(Enum):
    Motherboard = 0
    SuperIO = 1
    Cpu = 2
    Memory = 3
    GpuNvidia = 4
    GpuAmd = 5
    GpuIntel = 6
    Storage = 7
    Network = 8
    Cooler = 9
    EmbeddedController = 10
    Psu = 11
    Battery = 12


class SensorType(Enum):
    Voltage = 0
    Current = 1
    Power = 2
    Clock = 3
    Temperature = 4
    Load = 5
    Frequency = 6
    Fan = 7
    Flow = 8
    Control = 9
    Level = 10
    Factor = 11
    Data = 12
    SmallData = 13
    Throughput = 14
    TimeSpan = 15
    Energy = 16
    Noise = 17


@dataclass(frozen=True)
class Reading:
    identifier: str  # slash-delimited, e.g. "/nvidiagpu/0/load/0"
    sensor: str  # display name, e.g. "GPU Core"
    value: float
    hardware: str
    hardware_type: HardwareType
    sensor_type: SensorType
    sensor_index: int


__all__ = ["HardwareType", "SensorType", "Reading"]
