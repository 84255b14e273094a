"""周期排期展开

第 n 个候选日期总是由 start_date 直接推算（而不是逐次累加），
按月步进时日期裁剪到当月最后一天且不会漂移：1/31 -> 2/29 -> 3/31。
"""

import calendar
from collections.abc import Iterator
from datetime import datetime, timedelta

from .models.enums import Frequency
from .models.task import RecurrenceSchedule

# 频率 -> 步长（天 / 月）
_DAY_STEPS: dict[Frequency, int] = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
}
_MONTH_STEPS: dict[Frequency, int] = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
}


def add_months(value: datetime, months: int) -> datetime:
    """按日历月偏移，日期超出目标月天数时取月末"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def occurrence_date(start: datetime, frequency: Frequency, index: int) -> datetime:
    """计算第 index 个（从 0 开始）候选日期"""
    if frequency in _DAY_STEPS:
        return start + timedelta(days=_DAY_STEPS[frequency] * index)
    return add_months(start, _MONTH_STEPS[frequency] * index)


def iter_occurrences(schedule: RecurrenceSchedule) -> Iterator[datetime]:
    """按序产出候选日期

    超过 end_date（包含边界）或达到 max_occurrences 时停止，先到者为准。
    start_date > end_date 时不产出任何日期。
    """
    index = 0
    while index < schedule.max_occurrences:
        candidate = occurrence_date(schedule.start_date, schedule.frequency, index)
        if candidate > schedule.end_date:
            return
        yield candidate
        index += 1
