"""
Clock and battery readout for the tray tooltip and title.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import psutil

from trayway.settings import TrayConfig
from trayway.utils.logger import get_logger

logger = get_logger(__name__)

TITLE_SEPARATOR = " • "


@dataclass
class BatteryInfo:
    percentage: int = 100
    is_charging: bool = False
    is_plugged: bool = True


def get_battery_info() -> BatteryInfo:
    """Query the battery; machines without one (or without sensor support) report 100%."""
    try:
        battery = psutil.sensors_battery()
    except Exception as e:
        logger.debug(f"Battery query failed: {e}")
        battery = None
    if battery is None:
        return BatteryInfo()
    plugged = bool(battery.power_plugged)
    return BatteryInfo(
        percentage=int(round(battery.percent)),
        is_charging=plugged and battery.percent < 100,
        is_plugged=plugged,
    )


def fixed_offset_now(offset_hours: float, now: Optional[datetime] = None) -> datetime:
    """Current time shifted to a fixed UTC offset."""
    tz = timezone(timedelta(hours=offset_hours))
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz)


def format_time(moment: datetime, use_24_hour: bool = True, show_am_pm: bool = True) -> str:
    if use_24_hour:
        return f"{moment.hour:02d}:{moment.minute:02d}"

    hours = moment.hour
    suffix = 'PM' if hours >= 12 else 'AM'
    if hours > 12:
        hours -= 12
    elif hours == 0:
        hours = 12
    text = f"{hours}:{moment.minute:02d}"
    return f"{text} {suffix}" if show_am_pm else text


def format_date(moment: datetime) -> str:
    return f"{moment:%B} {moment.day}, {moment.year}"


def idle_title(config: TrayConfig) -> str:
    """Title text shown next to the icon while the clock is off."""
    if not config.allow_icon_change:
        return ""
    return config.tray_text.strip()


def build_tooltip(config: TrayConfig, time_text: str, battery: BatteryInfo, date_text: str) -> str:
    parts = []
    if config.show_clock:
        parts.append(f"Time: {time_text}")
    if config.show_battery:
        parts.append(f"Battery: {battery.percentage}%")
    parts.append(f"Date: {date_text}")
    return "\n".join(parts)


def build_title(config: TrayConfig, time_text: str, battery: BatteryInfo) -> str:
    parts = []
    text = idle_title(config)
    if text:
        parts.append(text)
    if config.show_battery:
        parts.append(f"{battery.percentage}%")
    if config.show_clock:
        parts.append(time_text)
    return TITLE_SEPARATOR.join(parts)


class ClockReadout:
    """Computes tooltip and title text for one clock tick."""

    def __init__(self, utc_offset_hours: float, battery_source=get_battery_info):
        self.utc_offset_hours = utc_offset_hours
        self.battery_source = battery_source

    def snapshot(self, config: TrayConfig, now: Optional[datetime] = None) -> Tuple[str, str]:
        """Returns (tooltip, title)."""
        moment = fixed_offset_now(self.utc_offset_hours, now)
        time_text = format_time(moment, config.use_24_hour_format, config.show_am_pm)
        battery = self.battery_source() if config.show_battery else BatteryInfo()
        tooltip = build_tooltip(config, time_text, battery, format_date(moment))
        return tooltip, build_title(config, time_text, battery)
