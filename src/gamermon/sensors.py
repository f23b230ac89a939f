"""Hardware identification and metric extraction engine for gamermon."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple

from gamermon import patterns
from gamermon.models import GpuVendor, Snapshot, classify_vendor
from gamermon.providers import ProviderError, SystemProvider, TextProvider

logger = logging.getLogger(__name__)

CPUINFO_PATH = "/proc/cpuinfo"
STAT_PATH = "/proc/stat"

NVIDIA_SMI = "nvidia-smi"
LSPCI = "lspci"
SENSORS = "sensors"
FREE = "free"

UNKNOWN_GPU = "Unknown GPU"

# Exact labels; temp10: and up belong to other sensors
GPU_TEMPERATURE_LABELS = ("edge:", "temp1:")


# --- Parsing helpers ---------------------------------------------------------


def parse_cpu_name(cpuinfo: str) -> str | None:
    """Return the first `model name` value from /proc/cpuinfo text."""
    for line in cpuinfo.splitlines():
        if not line.strip().startswith("model name"):
            continue
        _, sep, name = line.partition(":")
        if sep:
            return name.strip()
    return None


def parse_cpu_counters(stat: str) -> list[int]:
    """Parse the aggregate `cpu` line of /proc/stat into its counters."""
    lines = stat.splitlines()
    if not lines:
        return []

    counters: list[int] = []
    for token in lines[0].split()[1:]:
        try:
            value = int(token)
        except ValueError:
            continue
        if value >= 0:
            counters.append(value)
    return counters


def compute_cpu_usage(before: list[int], after: list[int]) -> float | None:
    """
    CPU busy percentage between two /proc/stat samples.

    Idle time is idle + iowait; total is the sum of the first eight
    counters. Differences saturate at zero so a counter reset never yields
    a negative or wrapped value. Returns None when either sample has fewer
    than four counters.
    """
    if len(before) < 4 or len(after) < 4:
        return None

    def idle(values: list[int]) -> int:
        return values[3] + (values[4] if len(values) > 4 else 0)

    total_diff = max(sum(after[:8]) - sum(before[:8]), 0)
    idle_diff = max(idle(after) - idle(before), 0)
    if total_diff == 0:
        return 0.0

    busy = max(total_diff - idle_diff, 0)
    return min(busy / total_diff * 100.0, 100.0)


def parse_lspci_gpu_name(lspci: str) -> str | None:
    """
    Extract a GPU name from lspci output.

    Prefers the last bracketed vendor hint on the VGA controller line
    (skipping the bare `AMD/ATI` hint), falling back to the text after
    `controller:`.
    """
    for line in lspci.splitlines():
        if patterns.VGA_CONTROLLER not in line:
            continue

        hints = patterns.BRACKETED.findall(line)
        if hints and hints[-1] and hints[-1] != "AMD/ATI":
            return hints[-1]

        _, sep, rest = line.partition("controller:")
        rest = rest.strip()
        if sep and rest:
            return rest
    return None


def parse_cpu_temperature(sensors: str) -> str | None:
    """First match of Tctl, Tdie, Package id 0, Core 0, in that order."""
    for pattern in patterns.CPU_TEMPERATURE_PATTERNS:
        match = pattern.search(sensors)
        if match:
            return match.group(1)
    return None


def _closes_section(line: str) -> bool:
    """True for a column-0 chip header such as `nct6799-isa-0290`."""
    return (
        bool(line)
        and not line[0].isspace()
        and any(marker in line for marker in patterns.DEVICE_HEADER_MARKERS)
    )


@dataclass(slots=True)
class AmdGpuReadings:
    """Values found in one amdgpu section of `sensors` output."""

    edge: str = ""
    hotspot: str = ""
    memory: str = ""
    fan: str = ""


def scan_amdgpu_sections(sensors: str) -> AmdGpuReadings | None:
    """
    Scan `sensors` output for amdgpu chip sections.

    Every `amdgpu-pci-*` header starts a fresh set of readings, so the last
    section wins. A section ends at the next non-indented header of another
    chip. Returns None when no amdgpu section exists.
    """
    readings: AmdGpuReadings | None = None
    in_gpu_section = False

    for line in sensors.splitlines():
        trimmed = line.lstrip()

        if trimmed.startswith(patterns.AMDGPU_HEADER):
            readings = AmdGpuReadings()
            in_gpu_section = True
            continue

        if in_gpu_section and _closes_section(line):
            in_gpu_section = False
            continue

        if not in_gpu_section or readings is None:
            continue

        parts = trimmed.split()
        if len(parts) < 2:
            continue

        label, value = parts[0], parts[1]
        if label.startswith("junction"):
            readings.hotspot = value.lstrip("+")
        elif label.startswith("edge"):
            readings.edge = value.lstrip("+")
        elif label.startswith("mem"):
            readings.memory = value.lstrip("+")
        elif label.startswith("fan"):
            readings.fan = f"{value} RPM"

    return readings


def scan_gpu_temperature(sensors: str) -> str | None:
    """First `edge`/`temp1` reading inside any GPU driver chip section."""
    in_gpu_section = False

    for line in sensors.splitlines():
        trimmed = line.lstrip()

        if trimmed.startswith(patterns.GPU_DRIVER_HEADERS):
            in_gpu_section = True
            continue

        if in_gpu_section and _closes_section(line):
            in_gpu_section = False
            continue

        if not in_gpu_section:
            continue

        parts = trimmed.split()
        if len(parts) >= 2 and parts[0] in GPU_TEMPERATURE_LABELS:
            return parts[1].lstrip("+")

    return None


def parse_nvme_temperatures(sensors: str) -> list[str]:
    """All NVMe `Composite` temperatures in the order `sensors` prints them."""
    return patterns.NVME_COMPOSITE.findall(sensors)


class FanReadings(NamedTuple):
    cpu: str | None
    chassis_1: str | None
    chassis_2: str | None


def parse_fans(sensors: str) -> FanReadings:
    """Motherboard fan speeds formatted as `<rpm> RPM`."""

    def first(*candidates) -> str | None:
        for pattern in candidates:
            match = pattern.search(sensors)
            if match:
                return f"{match.group(1)} RPM"
        return None

    return FanReadings(
        cpu=first(patterns.CPU_FAN),
        chassis_1=first(patterns.CHASSIS_FAN_1),
        chassis_2=first(*patterns.CHASSIS_FAN_2_PATTERNS),
    )


def parse_csv_row(output: str) -> list[str]:
    """Fields of the first line of `--format=csv` output, stripped."""
    lines = output.strip().splitlines()
    if not lines:
        return []
    return [field.strip() for field in lines[0].split(",")]


class MemoryReading(NamedTuple):
    """RAM figures in GB; None where a column failed to parse."""

    total: float | None
    used: float | None
    free: float | None
    available: float | None


def _mb_to_gb(text: str) -> float | None:
    try:
        return float(text) / 1024.0
    except ValueError:
        return None


def parse_free_memory(free_output: str) -> MemoryReading | None:
    """Parse the `Mem:` row of `free -m`; None if missing or too short."""
    for line in free_output.splitlines():
        if not line.startswith(("Mem:", "Mem.:")):
            continue
        parts = line.split()
        if len(parts) < 7:
            return None
        return MemoryReading(
            total=_mb_to_gb(parts[1]),
            used=_mb_to_gb(parts[2]),
            free=_mb_to_gb(parts[3]),
            available=_mb_to_gb(parts[6]),
        )
    return None


# --- Collector ---------------------------------------------------------------


class SensorCollector:
    """
    Fills a Snapshot from diagnostic tools and kernel pseudo-files.

    `identify()` runs once to name the CPU and GPU and to pick the GPU
    extraction strategy; `refresh()` is then called periodically by the
    display layer. Neither method raises: an unavailable source or an
    unparseable value leaves the affected fields at their previous values.
    """

    def __init__(
        self,
        provider: TextProvider | None = None,
        sleep: Callable[[float], None] = time.sleep,
        sample_interval: float = 0.1,
    ) -> None:
        """
        Initialize the SensorCollector.

        Args:
            provider: Source of command output and file contents.
            sleep: Blocking sleep used between the two /proc/stat samples.
            sample_interval: Seconds between the two CPU samples. Default 0.1s.
        """
        self._provider: TextProvider = provider if provider is not None else SystemProvider()
        self._sleep = sleep
        self._sample_interval = max(0.0, sample_interval)
        self._vendor: GpuVendor | None = None
        self._gpu_updaters: dict[GpuVendor, Callable[[Snapshot, str | None], None]] = {
            GpuVendor.AMD: self._update_amd_gpu,
            GpuVendor.NVIDIA: self._update_nvidia_gpu,
            GpuVendor.OTHER: self._update_generic_gpu,
        }

    @property
    def vendor(self) -> GpuVendor | None:
        """GPU vendor chosen at identification, None before."""
        return self._vendor

    @property
    def sample_interval(self) -> float:
        """Get the CPU sampling window."""
        return self._sample_interval

    @sample_interval.setter
    def sample_interval(self, value: float) -> None:
        """Set the CPU sampling window."""
        self._sample_interval = max(0.0, value)

    # Identification

    def identify(self, snapshot: Snapshot) -> None:
        """Fill in the CPU and GPU names and cache the GPU vendor."""
        if not snapshot.cpu_name:
            snapshot.cpu_name = self._identify_cpu()
        if not snapshot.gpu_name:
            snapshot.gpu_name = self._identify_gpu()

        self._vendor = classify_vendor(snapshot.gpu_name)
        logger.info(
            "Identified CPU %r, GPU %r (%s)",
            snapshot.cpu_name,
            snapshot.gpu_name,
            self._vendor.value,
        )

    def _identify_cpu(self) -> str:
        try:
            cpuinfo = self._provider.read(CPUINFO_PATH)
        except ProviderError as exc:
            logger.debug("CPU identification failed: %s", exc)
            return ""
        return parse_cpu_name(cpuinfo) or ""

    def _identify_gpu(self) -> str:
        try:
            output = self._provider.run([NVIDIA_SMI, "--query-gpu=name", "--format=csv,noheader"])
        except ProviderError as exc:
            logger.debug("NVIDIA GPU query failed: %s", exc)
        else:
            name = output.strip()
            if name:
                # One line per GPU
                return name.splitlines()[0].strip()

        try:
            name = parse_lspci_gpu_name(self._provider.run([LSPCI], check=False))
        except ProviderError as exc:
            logger.debug("PCI enumeration failed: %s", exc)
        else:
            if name:
                return name

        return UNKNOWN_GPU

    # Refresh

    def refresh(self, snapshot: Snapshot) -> None:
        """Re-read every source and update the snapshot in place."""
        if self._vendor is None:
            self._vendor = classify_vendor(snapshot.gpu_name)

        self._update_cpu_usage(snapshot)

        sensors_output = self._read_sensors()
        if sensors_output is not None:
            temperature = parse_cpu_temperature(sensors_output)
            if temperature is not None:
                snapshot.cpu_temperature = temperature

        self._gpu_updaters[self._vendor](snapshot, sensors_output)

        # Rebuilt every cycle: no output means no drives
        snapshot.nvme_temperatures = (
            parse_nvme_temperatures(sensors_output) if sensors_output is not None else []
        )

        if sensors_output is not None:
            self._update_fans(snapshot, sensors_output)

        self._update_ram(snapshot)

    def _read_sensors(self) -> str | None:
        try:
            return self._provider.run([SENSORS], check=False)
        except ProviderError as exc:
            logger.debug("Hardware monitor unavailable: %s", exc)
            return None

    def _read_counters(self) -> list[int] | None:
        try:
            return parse_cpu_counters(self._provider.read(STAT_PATH))
        except ProviderError as exc:
            logger.debug("CPU counters unavailable: %s", exc)
            return None

    def _update_cpu_usage(self, snapshot: Snapshot) -> None:
        before = self._read_counters()
        if before is None:
            return
        self._sleep(self._sample_interval)
        after = self._read_counters()
        if after is None:
            return

        usage = compute_cpu_usage(before, after)
        if usage is None:
            logger.debug("Too few CPU counters in %s", STAT_PATH)
            return
        snapshot.cpu_usage_percent = usage

    def _update_amd_gpu(self, snapshot: Snapshot, sensors_output: str | None) -> None:
        if sensors_output is None:
            return
        readings = scan_amdgpu_sections(sensors_output)
        if readings is None:
            logger.debug("No amdgpu section in hardware monitor output")
            return
        snapshot.gpu_edge_temperature = readings.edge
        snapshot.gpu_hotspot_temperature = readings.hotspot
        snapshot.gpu_memory_temperature = readings.memory
        snapshot.gpu_fan_speed = readings.fan

    def _update_generic_gpu(self, snapshot: Snapshot, sensors_output: str | None) -> None:
        if sensors_output is None:
            return
        temperature = scan_gpu_temperature(sensors_output)
        if temperature:
            snapshot.gpu_edge_temperature = temperature

    def _update_nvidia_gpu(self, snapshot: Snapshot, sensors_output: str | None) -> None:
        try:
            output = self._provider.run(
                [NVIDIA_SMI, "--query-gpu=temperature.gpu,fan.speed", "--format=csv,noheader,nounits"]
            )
        except ProviderError as exc:
            logger.debug("NVIDIA temperature query failed: %s", exc)
        else:
            fields = parse_csv_row(output)
            if len(fields) >= 1 and fields[0]:
                snapshot.gpu_edge_temperature = fields[0]
            if len(fields) >= 2 and fields[1]:
                snapshot.gpu_fan_speed = f"{fields[1]} RPM"

        try:
            output = self._provider.run(
                [
                    NVIDIA_SMI,
                    "--query-gpu=utilization.gpu,memory.used,memory.total,power.draw",
                    "--format=csv,noheader,nounits",
                ]
            )
        except ProviderError as exc:
            logger.debug("NVIDIA load query failed: %s", exc)
            return

        fields = parse_csv_row(output)
        if len(fields) >= 1:
            try:
                snapshot.gpu_utilization_percent = float(fields[0])
            except ValueError:
                logger.debug("Unparseable GPU utilization %r", fields[0])
        if len(fields) >= 2 and fields[1]:
            snapshot.gpu_vram_used = fields[1]
        if len(fields) >= 3 and fields[2]:
            snapshot.gpu_vram_total = fields[2]
        if len(fields) >= 4 and fields[3]:
            snapshot.gpu_power_draw = f"{fields[3]} W"

    def _update_fans(self, snapshot: Snapshot, sensors_output: str) -> None:
        fans = parse_fans(sensors_output)
        if fans.cpu is not None:
            snapshot.cpu_fan_speed = fans.cpu
        if fans.chassis_1 is not None:
            snapshot.chassis_fan_1_speed = fans.chassis_1
        if fans.chassis_2 is not None:
            snapshot.chassis_fan_2_speed = fans.chassis_2

    def _update_ram(self, snapshot: Snapshot) -> None:
        try:
            output = self._provider.run([FREE, "-m"], env={"LC_ALL": "C"}, check=False)
        except ProviderError as exc:
            logger.debug("Memory statistics unavailable: %s", exc)
            return

        reading = parse_free_memory(output)
        if reading is None:
            logger.debug("No usable Mem: row in %s output", FREE)
            return

        if reading.total is not None:
            snapshot.ram_total_gb = reading.total
        if reading.used is not None:
            snapshot.ram_used_gb = reading.used
        if reading.free is not None:
            snapshot.ram_free_gb = reading.free
        if reading.available is not None:
            snapshot.ram_available_gb = reading.available

        if snapshot.ram_total_gb > 0:
            snapshot.ram_usage_percent = snapshot.ram_used_gb / snapshot.ram_total_gb * 100.0
