"""Shared fixtures and canned tool output for gamermon tests."""

from collections.abc import Mapping, Sequence

import pytest

from gamermon.providers import ProviderError

CPUINFO = """\
processor\t: 0
vendor_id\t: AuthenticAMD
cpu family\t: 25
model\t\t: 97
model name\t: AMD Ryzen 9 7950X 16-Core Processor
stepping\t: 2

processor\t: 1
vendor_id\t: AuthenticAMD
model name\t: AMD Ryzen 9 7950X 16-Core Processor
"""

STAT_BEFORE = """\
cpu  1000 0 500 8000 500 0 0 0 0 0
cpu0 100 0 50 800 50 0 0 0 0 0
intr 123456
"""

# 1000 jiffies later, 250 of them idle or iowait
STAT_AFTER = """\
cpu  1600 0 650 8200 550 0 0 0 0 0
cpu0 160 0 65 820 55 0 0 0 0 0
intr 123999
"""

LSPCI_AMD = """\
00:00.0 Host bridge: Advanced Micro Devices, Inc. [AMD] Device 14d8
03:00.0 VGA compatible controller: Advanced Micro Devices, Inc. [AMD/ATI] Navi 31 [Radeon RX 7900 XT/7900 XTX] (rev c8)
03:00.1 Audio device: Advanced Micro Devices, Inc. [AMD/ATI] Navi 31 HDMI/DP Audio
"""

LSPCI_INTEL = """\
00:02.0 VGA compatible controller: Intel Corporation Alder Lake-S GT1 [UHD Graphics 730] (rev 0c)
"""

SENSORS_AMD = """\
nvme-pci-0100
Adapter: PCI adapter
Composite:    +38.9°C  (low  = -273.1°C, high = +81.8°C)
                       (crit = +84.8°C)
Sensor 1:     +38.9°C  (low  = -273.1°C, high = +65261.8°C)

k10temp-pci-00c3
Adapter: PCI adapter
Tctl:         +52.5°C
Tccd1:        +44.1°C

amdgpu-pci-0300
Adapter: PCI adapter
vddgfx:       56.00 mV
fan1:        1021 RPM  (min =    0 RPM, max = 3300 RPM)
edge:         +45.0°C  (crit = +100.0°C, hyst = -273.1°C)
junction:     +58.0°C  (crit = +110.0°C, hyst = -273.1°C)
mem:          +62.0°C  (crit = +108.0°C, hyst = -273.1°C)
PPT:          31.00 W  (cap = 327.00 W)

nct6799-isa-0290
Adapter: ISA adapter
in0:                      1.02 V  (min =  +0.00 V, max =  +1.74 V)
fan1:                      823 RPM  (min =    0 RPM)
fan2:                     1254 RPM  (min =    0 RPM)
fan3:                      911 RPM  (min =    0 RPM)
SYSTIN:                   +31.0°C  (high = +80.0°C, hyst = +75.0°C)

nvme-pci-0200
Adapter: PCI adapter
Composite:    +41.9°C  (low  = -273.1°C, high = +81.8°C)
"""

SENSORS_INTEL = """\
coretemp-isa-0000
Adapter: ISA adapter
Package id 0:  +48.0°C  (high = +80.0°C, crit = +100.0°C)
Core 0:        +44.0°C  (high = +80.0°C, crit = +100.0°C)
Core 1:        +46.0°C  (high = +80.0°C, crit = +100.0°C)

nvme-pci-0100
Adapter: PCI adapter
Composite:    +35.9°C  (low  = -273.1°C, high = +84.8°C)
"""

FREE_OUTPUT = """\
               total        used        free      shared  buff/cache   available
Mem:           32000       16000        8000        2000           0       18000
Swap:           8191           0        8191
"""


class FakeProvider:
    """
    In-memory TextProvider.

    Maps command names (first argv element) and file paths to canned text,
    or to an exception to raise. Unknown sources raise ProviderError.
    """

    def __init__(self, commands=None, files=None) -> None:
        self.commands: dict = dict(commands or {})
        self.files: dict = dict(files or {})
        self.calls: list[tuple[str, ...]] = []
        self.envs: list[Mapping[str, str] | None] = []
        self.checks: dict[str, bool] = {}

    def _resolve(self, table: dict, key: str, source: str) -> str:
        if key not in table:
            raise ProviderError(source, "not available")
        value = table[key]
        # A list is consumed one entry per call, for sources read repeatedly
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(source)
        return value

    def run(self, args: Sequence[str], env: Mapping[str, str] | None = None, check: bool = True) -> str:
        self.calls.append(tuple(args))
        self.envs.append(env)
        self.checks[args[0]] = check
        source = " ".join(args)
        # Exact argv first, then the bare command
        if source in self.commands:
            return self._resolve(self.commands, source, source)
        return self._resolve(self.commands, args[0], source)

    def read(self, path: str) -> str:
        self.calls.append((path,))
        self.envs.append(None)
        return self._resolve(self.files, path, path)


def no_sleep(seconds: float) -> None:
    """Stand-in for time.sleep."""


@pytest.fixture
def amd_provider() -> FakeProvider:
    """A Ryzen + Radeon desktop without NVIDIA tooling."""
    return FakeProvider(
        commands={
            "lspci": LSPCI_AMD,
            "sensors": SENSORS_AMD,
            "free": FREE_OUTPUT,
        },
        files={
            "/proc/cpuinfo": CPUINFO,
            "/proc/stat": [STAT_BEFORE, STAT_AFTER],
        },
    )


@pytest.fixture
def nvidia_provider() -> FakeProvider:
    """An Intel CPU + GeForce desktop."""
    return FakeProvider(
        commands={
            "nvidia-smi --query-gpu=name --format=csv,noheader": "NVIDIA GeForce RTX 4090\n",
            "nvidia-smi --query-gpu=temperature.gpu,fan.speed --format=csv,noheader,nounits": "54, 30\n",
            "nvidia-smi --query-gpu=utilization.gpu,memory.used,memory.total,power.draw "
            "--format=csv,noheader,nounits": "37, 6144, 24564, 215.33\n",
            "sensors": SENSORS_INTEL,
            "free": FREE_OUTPUT,
        },
        files={
            "/proc/cpuinfo": CPUINFO.replace("AMD Ryzen 9 7950X 16-Core Processor", "13th Gen Intel(R) Core(TM) i9-13900K"),
            "/proc/stat": [STAT_BEFORE, STAT_AFTER],
        },
    )


@pytest.fixture
def empty_provider() -> FakeProvider:
    """A machine where every source is unavailable."""
    return FakeProvider()
