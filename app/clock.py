"""Local wall-clock helpers. Slot dates and times carry no timezone."""
from datetime import datetime


def now() -> datetime:
    return datetime.now()


def slot_instant(date: str, time: str) -> datetime:
    """Combine a `YYYY-MM-DD` date and `HH:MM` time into a naive local datetime."""
    return datetime.strptime(f"{date} {time}", "%Y-%m-%d %H:%M")


def is_future(date: str, time: str, current: datetime) -> bool:
    return slot_instant(date, time) > current


def today_and_minute(current: datetime) -> tuple[str, str]:
    """Return (`YYYY-MM-DD`, `HH:MM`) for string comparison against slot columns."""
    return current.strftime("%Y-%m-%d"), current.strftime("%H:%M")
