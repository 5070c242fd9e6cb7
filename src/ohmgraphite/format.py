from __future__ import annotations

import math
import unicodedata

from .models import Reading

"""
Formatter (Graphite plaintext protocol)

- Input: epoch seconds shared by the batch, one Reading, tag mode, host label
- Output: one line without a trailing newline:
    plain:  "<path> <value> <epoch>"
    tagged: "<path>;host=..;app=ohm;...;raw_name=.. <value> <epoch>"
- Pure functions, no I/O, safe to call from any thread
"""

_PREFIX = "ohm"


# This function turns a sensor identifier and name into a dotted metric path.
def normalized_identifier(host: str, reading: Reading) -> str:
    """
    "/nvidiagpu/0/load/0" + "GPU Core" -> "ohm.<host>.nvidiagpu.0.load.gpucore"

    The trailing segment (sensor number) is dropped and the lowercased name
    takes its place. Names like "cpucore#2" become separate metrics
    ("cpucore.2"). When the only separator is the leading one the interior
    is left empty ("ohm.<host>..<name>"); that path is emitted as is.
    """
    path = reading.identifier.replace("/", ".")
    cut = path.rfind(".")
    interior = path[1:cut] if cut > 0 else ""
    interior = interior.replace("{", "").replace("}", "")
    name = reading.sensor.lower().replace(" ", "").replace("#", ".")
    return f"{_PREFIX}.{host}.{interior}.{name}"


# This function escapes free text for use as a tag value.
def graphite_escape(text: str) -> str:
    """Replace '.', whitespace and control characters with '-' (collectd's rule)."""
    return "".join(
        "-" if c == "." or c.isspace() or unicodedata.category(c) == "Cc" else c for c in text
    )


# This function renders a metric value independent of the process locale.
def format_value(value: float) -> str:
    value = float(value)
    if math.isfinite(value) and value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


# This function renders one reading as a Graphite line.
def format_graphite_line(epoch: int, reading: Reading, *, tags: bool, host: str) -> str:
    """Return a single line without a trailing newline."""
    path = normalized_identifier(host, reading)
    tail = f"{format_value(reading.value)} {int(epoch)}"
    if not tags:
        return f"{path} {tail}"

    fields = [
        path,
        f"host={host}",
        f"app={_PREFIX}",
        f"hardware={graphite_escape(reading.hardware)}",
        f"hardware_type={reading.hardware_type.name}",
        f"sensor_type={reading.sensor_type.name}",
        f"sensor_index={reading.sensor_index}",
        f"raw_name={graphite_escape(reading.sensor)}",
    ]
    return ";".join(fields) + " " + tail


__all__ = ["normalized_identifier", "graphite_escape", "format_value", "format_graphite_line"]
