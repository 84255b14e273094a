"""日历交换格式（ICS）生成

只生成外部日历导入所需的最小子集：UID / DTSTART / DTEND / SUMMARY /
DESCRIPTION / LOCATION / ORGANIZER。行尾使用 CRLF，时间统一为 UTC。
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from .config import DEFAULT_ORGANIZER, ICS_PRODID
from .models.calendar import CalendarEvent


def format_ics_datetime(value: datetime) -> str:
    """格式化为 UTC 基本格式，如 20240601T090000Z"""
    return value.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def escape_text(value: str) -> str:
    """转义 TEXT 值中的反斜杠、分号、逗号与换行"""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace("\r", "\\n")
    )


def clean_address(value: str) -> str:
    """ORGANIZER 是 CAL-ADDRESS 而非 TEXT，只去掉控制字符"""
    return "".join(ch for ch in value if ch.isprintable())


def _vevent_lines(event: CalendarEvent, default_organizer: str) -> list[str]:
    organizer = clean_address(event.organizer or default_organizer)
    return [
        "BEGIN:VEVENT",
        f"UID:{event.event_id}",
        f"DTSTART:{format_ics_datetime(event.start)}",
        f"DTEND:{format_ics_datetime(event.end)}",
        f"SUMMARY:{escape_text(event.title)}",
        f"DESCRIPTION:{escape_text(event.description)}",
        f"LOCATION:{escape_text(event.location)}",
        f"ORGANIZER:mailto:{organizer}",
        "END:VEVENT",
    ]


def build_calendar_document(
    events: Iterable[CalendarEvent],
    prodid: str = ICS_PRODID,
    default_organizer: str = DEFAULT_ORGANIZER,
) -> str:
    """生成包含多个 VEVENT 的 VCALENDAR 文档"""
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", f"PRODID:{prodid}"]
    for event in events:
        lines.extend(_vevent_lines(event, default_organizer))
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines)


def build_ics(
    event: CalendarEvent,
    prodid: str = ICS_PRODID,
    default_organizer: str = DEFAULT_ORGANIZER,
) -> str:
    """生成单个事件的 ICS 文本"""
    return build_calendar_document([event], prodid=prodid, default_organizer=default_organizer)
