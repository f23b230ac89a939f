"""Precompiled patterns applied to `sensors` output."""

import re

# CPU package temperature, in priority order (AMD first, then Intel)
CPU_TEMPERATURE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"Tctl:\s+\+([0-9.]+)"),
    re.compile(r"Tdie:\s+\+([0-9.]+)"),
    re.compile(r"Package id 0:\s+\+([0-9.]+)"),
    re.compile(r"Core 0:\s+\+([0-9.]+)"),
)

NVME_COMPOSITE = re.compile(r"Composite:\s+\+([0-9.]+)")

CPU_FAN = re.compile(r"fan2:\s+([0-9]+)\s+RPM")
CHASSIS_FAN_1 = re.compile(r"fan3:\s+([0-9]+)\s+RPM")


def _chip_fan(chip: str, label: str) -> re.Pattern[str]:
    # Stays inside the chip's block: blocks are separated by a blank line.
    return re.compile(
        re.escape(chip) + r"[^\n]*(?:\n[^\n]+)*?\n[ \t]*" + re.escape(label) + r":\s+([0-9]+)\s+RPM"
    )


# Tried in order; the Super I/O chip name changes between board revisions
CHASSIS_FAN_2_PATTERNS: tuple[re.Pattern[str], ...] = (
    _chip_fan("nct6799-isa-0290", "fan1"),
    _chip_fan("nct6798-isa-0290", "fan1"),
)

AMDGPU_HEADER = "amdgpu-pci-"
DEVICE_HEADER_MARKERS = ("-isa-", "-pci-", "-i2c-")

# Chips whose first temperature is a usable GPU reading when the vendor is unknown
GPU_DRIVER_HEADERS = ("amdgpu-pci-", "nouveau-pci-", "xe-pci-", "i915-pci-")

VGA_CONTROLLER = "VGA compatible controller"
BRACKETED = re.compile(r"\[(.*?)\]")
