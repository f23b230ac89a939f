"""gamermon - Main Textual application."""

import argparse
import logging

from textual.app import App, ComposeResult
from textual.containers import VerticalScroll
from textual.css.query import NoMatches
from textual.widgets import Footer, Static

from gamermon.models import GpuVendor, Snapshot
from gamermon.providers import SystemProvider
from gamermon.sensors import SensorCollector

VERSION = "0.1.0"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

logger = logging.getLogger(__name__)


def format_bar(percent: float, width: int = 20, color: str = "green") -> str:
    """Render a percentage as a bar of `width` cells."""
    percent = min(max(percent, 0.0), 100.0)
    filled = int(percent / 100.0 * width)
    bar = f"[{color}]" + "█" * filled + f"[/{color}]" + "[dim]" + "░" * (width - filled) + "[/dim]"
    # Escaped brackets for the bar container
    return f"\\[{bar}]"


def escape(text: str) -> str:
    """Escape opening brackets so tool output is never read as markup."""
    return text.replace("[", "\\[")


def _value(text: str) -> str:
    return escape(text) if text else "[dim]n/a[/dim]"


class SnapshotPanel(Static):
    """Bordered panel that renders part of a Snapshot."""

    DEFAULT_CSS = """
    SnapshotPanel {
        height: auto;
        padding: 0 1;
        border: round $primary;
    }
    """

    PANEL_TITLE = ""

    def __init__(self, **kwargs) -> None:
        """Initialize the panel with placeholder text."""
        super().__init__("Loading...", **kwargs)
        self.display_text = "Loading..."

    def on_mount(self) -> None:
        """Set the border title once mounted."""
        self.border_title = self.PANEL_TITLE

    def update_from(self, snapshot: Snapshot) -> None:
        """Re-render from the latest snapshot."""
        self.display_text = self.render_snapshot(snapshot)
        self.update(self.display_text)

    def render_snapshot(self, snapshot: Snapshot) -> str:
        raise NotImplementedError


class CpuPanel(SnapshotPanel):
    """Processor model, temperature and load."""

    PANEL_TITLE = "CPU"

    def render_snapshot(self, snapshot: Snapshot) -> str:
        usage = snapshot.cpu_usage_percent
        return (
            f"Model:             {_value(snapshot.cpu_name)}\n"
            f"Temperature (°C):  {_value(snapshot.cpu_temperature)}\n"
            f"Load:              {format_bar(usage)} {usage:5.1f}%"
        )


class GpuPanel(SnapshotPanel):
    """Graphics card readings; which rows are shown depends on the vendor."""

    PANEL_TITLE = "GPU (graphics card)"

    def __init__(self, vendor: GpuVendor = GpuVendor.OTHER, **kwargs) -> None:
        """Initialize the panel for the vendor identified at startup."""
        super().__init__(**kwargs)
        self.vendor = vendor

    def render_snapshot(self, snapshot: Snapshot) -> str:
        lines = [f"Model:             {_value(snapshot.gpu_name)}"]
        vendor = self.vendor

        if vendor is GpuVendor.AMD:
            lines += [
                f"Hotspot (°C):      {_value(snapshot.gpu_hotspot_temperature)}",
                f"Edge (°C):         {_value(snapshot.gpu_edge_temperature)}",
                f"Memory (°C):       {_value(snapshot.gpu_memory_temperature)}",
                f"Fan:               {_value(snapshot.gpu_fan_speed)}",
            ]
        elif vendor is GpuVendor.NVIDIA:
            vram_pct = snapshot.vram_fraction() * 100.0
            util = snapshot.gpu_utilization_percent
            lines += [
                f"Temperature (°C):  {_value(snapshot.gpu_edge_temperature)}",
                f"Fan:               {_value(snapshot.gpu_fan_speed)}",
                f"VRAM:              {format_bar(vram_pct, color='magenta')} "
                f"{escape(snapshot.gpu_vram_used or '0')} / {escape(snapshot.gpu_vram_total or '0')} MiB",
                f"Power:             {_value(snapshot.gpu_power_draw)}",
                f"Load:              {format_bar(util)} {util:3.0f}%",
            ]
        else:
            # Intel/unknown: a single temperature reading
            lines.append(f"Temperature (°C):  {_value(snapshot.gpu_edge_temperature)}")

        return "\n".join(lines)


class StoragePanel(SnapshotPanel):
    """NVMe drive temperatures."""

    PANEL_TITLE = "Storage (NVMe)"

    def render_snapshot(self, snapshot: Snapshot) -> str:
        if not snapshot.nvme_temperatures:
            return "No NVMe devices detected"
        return "\n".join(
            f"NVMe {i}: {escape(temp)} °C" for i, temp in enumerate(snapshot.nvme_temperatures, start=1)
        )


class FanPanel(SnapshotPanel):
    """Chassis fan speeds."""

    PANEL_TITLE = "Fans"

    def render_snapshot(self, snapshot: Snapshot) -> str:
        return (
            f"CPU fan:           {_value(snapshot.cpu_fan_speed)}\n"
            f"Chassis fan 1:     {_value(snapshot.chassis_fan_1_speed)}\n"
            f"Chassis fan 2:     {_value(snapshot.chassis_fan_2_speed)}"
        )


class RamPanel(SnapshotPanel):
    """Memory totals and load."""

    PANEL_TITLE = "RAM Memory"

    def render_snapshot(self, snapshot: Snapshot) -> str:
        percent = snapshot.ram_usage_percent
        return (
            f"Total:             {snapshot.ram_total_gb:.1f} GB\n"
            f"Used:              {snapshot.ram_used_gb:.1f} GB\n"
            f"Free:              {snapshot.ram_free_gb:.1f} GB\n"
            f"Available:         {snapshot.ram_available_gb:.1f} GB\n"
            f"Load:              {format_bar(percent, color='cyan')} {percent:5.1f}%"
        )


class GamerMonitorApp(App):
    """Main gamermon application."""

    TITLE = "Gamer Monitor"
    SUB_TITLE = f"v{VERSION}"

    CSS = """
    Screen {
        layout: vertical;
    }

    #panels {
        height: 1fr;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "sample", "Refresh"),
    ]

    PANELS = (CpuPanel, GpuPanel, StoragePanel, FanPanel, RamPanel)

    def __init__(self, collector: SensorCollector | None = None, refresh_interval: float = 5.0) -> None:
        """
        Initialize the GamerMonitorApp.

        Args:
            collector: Sensor collector filling the snapshot.
            refresh_interval: Seconds between refresh cycles. Default 5.0s.
        """
        super().__init__()
        self._snapshot = Snapshot()
        self._collector = collector if collector is not None else SensorCollector()
        self._refresh_period = max(0.5, refresh_interval)

    @property
    def snapshot(self) -> Snapshot:
        """The snapshot shown on screen."""
        return self._snapshot

    @property
    def refresh_interval(self) -> float:
        """Get the refresh interval."""
        return self._refresh_period

    @refresh_interval.setter
    def refresh_interval(self, value: float) -> None:
        """Set the refresh interval (takes effect on the next mount)."""
        self._refresh_period = max(0.5, value)  # Minimum 0.5 seconds

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        with VerticalScroll(id="panels"):
            for panel in self.PANELS:
                yield panel()
        yield Footer()

    def on_mount(self) -> None:
        """Identify the hardware, take a first reading and start the timer."""
        self._collector.identify(self._snapshot)
        self.poll_sensors()
        self.set_interval(self._refresh_period, self.poll_sensors)

    def poll_sensors(self) -> None:
        """Run one refresh cycle and redraw."""
        self._collector.refresh(self._snapshot)
        self._update_ui()

    def _update_ui(self) -> None:
        for panel_type in self.PANELS:
            try:
                panel = self.query_one(panel_type)
                if isinstance(panel, GpuPanel) and self._collector.vendor is not None:
                    panel.vendor = self._collector.vendor
                panel.update_from(self._snapshot)
            except NoMatches:
                logger.debug("%s not mounted yet", panel_type.__name__)

    def action_sample(self) -> None:
        """Handle refresh action - take a reading now."""
        self.poll_sensors()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="gamermon", description="Hardware temperature and load monitor")
    parser.add_argument("--interval", type=float, default=5.0, help="seconds between refreshes (default: 5)")
    parser.add_argument("--timeout", type=float, default=2.0, help="per-command timeout in seconds (default: 2)")
    parser.add_argument("--log-file", help="write diagnostics to this file")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="WARNING",
        help="logging level (default: WARNING)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Entry point for gamermon application."""
    args = parse_args(argv)

    # The screen belongs to Textual, so only log when a file is given
    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=args.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    collector = SensorCollector(SystemProvider(timeout=args.timeout))
    app = GamerMonitorApp(collector, refresh_interval=args.interval)
    app.run()


if __name__ == "__main__":
    main()
