"""
自然语言日期/时间解析：把 "tomorrow at 2pm"、"next Monday"、"June 10th at 12" 等表达
转换为日历表单需要的结构化日期 + 12 小时制时间。

目标网页应用没有稳定的结构化日期接口，只能通过键盘输入表单字段，
因此这里产出的是可直接键入的值（见 ResolvedDateTime.typed_date / ClockTime.typed）。
给定 now 时结果确定；无法识别时返回 now 当天且无时间，从不抛异常。
"""
import datetime
import re
from dataclasses import dataclass
from typing import Optional

# 下标与 date.weekday() 一致：周一为 0
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
MONTHS = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)

_IN_DAYS_RE = re.compile(r"\bin\s+(\d+)\s+days?\b")
_MONTH_DAY_RE = re.compile(r"\b([a-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?\b")
_SLASH_DATE_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})\b")

_EXPLICIT_TIME_RE = re.compile(
    r"\b(?:(\d{1,2})(?::(\d{2}))?\s*([ap])\.?m\.?(?![a-z])|(noon|midnight)\b)"
)
_BARE_AT_HOUR_RE = re.compile(r"\bat\s+(\d{1,2})(?::(\d{2}))?(?![\d/:])")
_BARE_CLOCK_RE = re.compile(r"\b(\d{1,2}):(\d{2})(?!\d)")


@dataclass(frozen=True)
class ClockTime:
    """12 小时制时间：hour 1-12，minute 0-59，meridiem 为 AM/PM"""
    hour: int
    minute: int
    meridiem: str

    @property
    def typed(self) -> str:
        """日历时间输入框格式，如 "2:00 PM" """
        return f"{self.hour}:{self.minute:02d} {self.meridiem}"

    def one_hour_later(self) -> "ClockTime":
        """结束时间 = 开始 + 1 小时。11 点进位到 12 点时切换 AM/PM；12 点回到 1 点时不切换。"""
        if self.hour == 11:
            return ClockTime(12, self.minute, "PM" if self.meridiem == "AM" else "AM")
        if self.hour == 12:
            return ClockTime(1, self.minute, self.meridiem)
        return ClockTime(self.hour + 1, self.minute, self.meridiem)


@dataclass(frozen=True)
class ResolvedDateTime:
    date: datetime.date
    time: Optional[ClockTime] = None

    @property
    def typed_date(self) -> str:
        """日历日期输入框格式："Month, Day, Year"，如 "June, 10, 2026" """
        return f"{MONTHS[self.date.month - 1].capitalize()}, {self.date.day}, {self.date.year}"

    @property
    def end_time(self) -> Optional[ClockTime]:
        return self.time.one_hour_later() if self.time else None


def resolve(text: str, now: Optional[datetime.datetime] = None) -> ResolvedDateTime:
    """解析日期与时间；两者相互独立地扫描同一段文本。"""
    now = now or datetime.datetime.now()
    lowered = (text or "").lower()
    return ResolvedDateTime(date=_resolve_date(lowered, now.date()), time=_resolve_time(lowered))


def next_weekday_offset(target: int, current: int) -> int:
    """不带 next 的星期：下一次出现，不含今天，1-7 天"""
    return (target - current) % 7 or 7


def weekday_after_next_offset(target: int, current: int) -> int:
    """带 next 的星期：至少 7 天之后的第一次出现，7-13 天"""
    return 7 + (target - current) % 7


def _resolve_date(lowered: str, today: datetime.date) -> datetime.date:
    if re.search(r"\btomorrow", lowered):
        return today + datetime.timedelta(days=1)
    if re.search(r"\btoday", lowered):
        return today
    if re.search(r"\bnext\s+week\b", lowered):
        return today + datetime.timedelta(days=7)

    for index, name in enumerate(WEEKDAYS):
        if re.search(rf"\bnext\s+{name}", lowered):
            return today + datetime.timedelta(days=weekday_after_next_offset(index, today.weekday()))
    for index, name in enumerate(WEEKDAYS):
        if re.search(rf"\b{name}", lowered):
            return today + datetime.timedelta(days=next_weekday_offset(index, today.weekday()))

    m = _IN_DAYS_RE.search(lowered)
    if m:
        try:
            return today + datetime.timedelta(days=int(m.group(1)))
        except OverflowError:
            pass

    for m in _MONTH_DAY_RE.finditer(lowered):
        month = _month_index(m.group(1))
        if month is None:
            continue
        candidate = _safe_date(today.year, month, int(m.group(2)))
        if candidate:
            return _roll_forward(candidate, today)

    for m in _SLASH_DATE_RE.finditer(lowered):
        candidate = _safe_date(today.year, int(m.group(1)), int(m.group(2)))
        if candidate:
            return _roll_forward(candidate, today)

    return today


def _month_index(word: str) -> Optional[int]:
    """全称或至少 3 个字母的前缀（jan、sept、dec）均可，返回 1-12"""
    if len(word) < 3:
        return None
    for index, name in enumerate(MONTHS):
        if name.startswith(word):
            return index + 1
    return None


def _safe_date(year: int, month: int, day: int) -> Optional[datetime.date]:
    try:
        return datetime.date(year, month, day)
    except ValueError:
        return None


def _roll_forward(candidate: datetime.date, today: datetime.date) -> datetime.date:
    """早于今天的月/日顺延到明年，只顺延一年；2 月 29 日在平年落到 2 月 28 日"""
    if candidate >= today:
        return candidate
    try:
        return candidate.replace(year=candidate.year + 1)
    except ValueError:
        return datetime.date(candidate.year + 1, 2, 28)


def _resolve_time(lowered: str) -> Optional[ClockTime]:
    for m in _EXPLICIT_TIME_RE.finditer(lowered):
        word = m.group(4)
        if word == "noon":
            return ClockTime(12, 0, "PM")
        if word == "midnight":
            return ClockTime(12, 0, "AM")
        hour, minute = int(m.group(1)), int(m.group(2) or 0)
        if 1 <= hour <= 12 and minute <= 59:
            return ClockTime(hour, minute, "AM" if m.group(3) == "a" else "PM")

    for pattern in (_BARE_AT_HOUR_RE, _BARE_CLOCK_RE):
        for m in pattern.finditer(lowered):
            bare = bare_hour_time(int(m.group(1)), int(m.group(2) or 0))
            if bare:
                return bare
    return None


def bare_hour_time(hour: int, minute: int = 0) -> Optional[ClockTime]:
    """
    未写 AM/PM 的小时按固定表推断：12 -> PM；1-6 -> PM；7-11 -> AM。
    13-23 按 24 小时制换算为 PM；0 或超出范围视为无时间。
    """
    if minute > 59:
        return None
    if hour == 12:
        return ClockTime(12, minute, "PM")
    if 1 <= hour <= 6:
        return ClockTime(hour, minute, "PM")
    if 7 <= hour <= 11:
        return ClockTime(hour, minute, "AM")
    if 13 <= hour <= 23:
        return ClockTime(hour - 12, minute, "PM")
    return None
