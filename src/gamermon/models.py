"""Data models for gamermon."""

import math
from dataclasses import dataclass, field
from enum import Enum


class GpuVendor(Enum):
    """GPU vendor families, one extraction strategy each."""

    AMD = "amd"
    NVIDIA = "nvidia"
    OTHER = "other"


def classify_vendor(gpu_name: str) -> GpuVendor:
    """Pick the GPU extraction strategy from the identified GPU name."""
    if "Radeon" in gpu_name:
        return GpuVendor.AMD
    if "nvidia" in gpu_name.lower():
        return GpuVendor.NVIDIA
    return GpuVendor.OTHER


def _to_float(text: str, default: float) -> float:
    try:
        value = float(text.strip())
    except ValueError:
        return default
    return value if math.isfinite(value) else default


@dataclass(slots=True)
class Snapshot:
    """
    Latest known hardware readings.

    One instance lives for the whole process. Names are filled in once by
    identification; every other field is overwritten in place by refresh
    cycles and keeps its previous value when a reading fails.
    """

    cpu_name: str = ""
    cpu_temperature: str = ""  # Unit-less, vendor-dependent precision
    cpu_usage_percent: float = 0.0

    gpu_name: str = ""
    gpu_edge_temperature: str = ""
    gpu_hotspot_temperature: str = ""
    gpu_memory_temperature: str = ""
    gpu_fan_speed: str = ""
    gpu_utilization_percent: float = 0.0
    gpu_power_draw: str = ""
    gpu_vram_used: str = ""  # MiB
    gpu_vram_total: str = ""  # MiB

    nvme_temperatures: list[str] = field(default_factory=list)

    cpu_fan_speed: str = ""
    chassis_fan_1_speed: str = ""
    chassis_fan_2_speed: str = ""

    ram_total_gb: float = 0.0
    ram_used_gb: float = 0.0
    ram_free_gb: float = 0.0
    ram_available_gb: float = 0.0
    ram_usage_percent: float = 0.0

    def vram_fraction(self) -> float:
        """Fraction of VRAM in use, 0.0 - 1.0, tolerant of unparseable text."""
        used = _to_float(self.gpu_vram_used, 0.0)
        total = max(_to_float(self.gpu_vram_total, 1.0), 1.0)
        return min(max(used / total, 0.0), 1.0)
