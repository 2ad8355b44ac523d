"""Date format utilities.

This module converts calendar months and post timestamps between the fixed
textual formats used by the portal, the CLI and the report template.
"""
import calendar
import logging
import re
from datetime import date, datetime
from enum import Enum
from typing import Union

logger = logging.getLogger(__name__)


class InvalidDateError(ValueError):
    """日付が指定フォーマットに一致しない."""

    def __init__(self, value: str, fmt: "DateFormat"):
        self.value = value
        self.fmt = fmt
        self.message = f'Specify the date in the format "{fmt.value}": {value!r}'
        super().__init__(self.message)


class DateFormat(str, Enum):
    """Supported date formats (named with their display pattern)."""

    YEAR_MONTH = "yyyyMM"
    YEAR_MONTH_LABEL = "yyyy年MM月"
    YEAR_MONTH_DASH = "yyyy-MM"
    POSTED_AT = "yyyy/MM/dd H:mm"
    MONTH_NAME_YEAR = "MMMM yyyy"


# 各フォーマットの形（完全一致）と strptime パターン
_SHAPES: dict[DateFormat, str] = {
    DateFormat.YEAR_MONTH: r"\d{6}",
    DateFormat.YEAR_MONTH_LABEL: r"\d{4}年\d{2}月",
    DateFormat.YEAR_MONTH_DASH: r"\d{4}-\d{2}",
    DateFormat.POSTED_AT: r"\d{4}/\d{2}/\d{2} \d{1,2}:\d{2}",
    DateFormat.MONTH_NAME_YEAR: r"[A-Z][a-z]+ \d{4}",
}

_STRPTIME: dict[DateFormat, str] = {
    DateFormat.YEAR_MONTH: "%Y%m",
    DateFormat.YEAR_MONTH_LABEL: "%Y年%m月",
    DateFormat.YEAR_MONTH_DASH: "%Y-%m",
    DateFormat.POSTED_AT: "%Y/%m/%d %H:%M",
}

# %B depends on the process locale, month names are rendered from this table
MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

DateLike = Union[date, datetime]


def parse_date(text: str, fmt: DateFormat) -> datetime:
    """
    文字列を指定フォーマットで厳密に解析する.

    Args:
        text: 解析する文字列
        fmt: 文字列のフォーマット

    Returns:
        datetime: 解析結果（月単位のフォーマットは1日 0:00）

    Raises:
        InvalidDateError: 形が一致しない、または存在しない日付の場合
    """
    fmt = DateFormat(fmt)
    if not isinstance(text, str) or not re.fullmatch(_SHAPES[fmt], text):
        raise InvalidDateError(text, fmt)

    if fmt is DateFormat.MONTH_NAME_YEAR:
        name, year = text.split(" ")
        if name not in MONTH_NAMES:
            raise InvalidDateError(text, fmt)
        return datetime(int(year), MONTH_NAMES.index(name) + 1, 1)

    try:
        return datetime.strptime(text, _STRPTIME[fmt])
    except ValueError as e:
        raise InvalidDateError(text, fmt) from e


parse_month = parse_date


def format_date(value: DateLike, fmt: DateFormat) -> str:
    """Format a date or datetime with one of the supported formats."""
    fmt = DateFormat(fmt)
    if fmt is DateFormat.MONTH_NAME_YEAR:
        return f"{MONTH_NAMES[value.month - 1]} {value.year:04d}"

    if fmt is DateFormat.POSTED_AT:
        hour = value.hour if isinstance(value, datetime) else 0
        minute = value.minute if isinstance(value, datetime) else 0
        return f"{value.year:04d}/{value.month:02d}/{value.day:02d} {hour}:{minute:02d}"

    # strftime("%Y") does not zero-pad years before 1000 on every platform
    year, month = f"{value.year:04d}", f"{value.month:02d}"
    if fmt is DateFormat.YEAR_MONTH_LABEL:
        return f"{year}年{month}月"
    if fmt is DateFormat.YEAR_MONTH_DASH:
        return f"{year}-{month}"
    return f"{year}{month}"


def change_format(text: str, from_fmt: DateFormat, to_fmt: DateFormat) -> str:
    """Re-render ``text`` from one supported format to another."""
    return format_date(parse_date(text, from_fmt), to_fmt)


def is_valid_date(text: str, fmt: DateFormat) -> bool:
    """Check whether ``text`` parses to a real date under ``fmt``."""
    try:
        parse_date(text, fmt)
        return True
    except InvalidDateError:
        return False


def assert_date_format(text: str, fmt: DateFormat) -> datetime:
    """
    入力値が指定フォーマットの日付であることを保証する.

    CLI から渡された対象月を、ログイン処理の前に検証するために使う.
    """
    try:
        return parse_date(text, fmt)
    except InvalidDateError:
        logger.error(f"日付フォーマットが不正です: {text!r} (expected {DateFormat(fmt).value})")
        raise


def month_bounds(month_key: str) -> tuple[date, date]:
    """Return the first and last calendar day of a ``yyyyMM`` month."""
    first = parse_date(month_key, DateFormat.YEAR_MONTH).date()
    last_day = calendar.monthrange(first.year, first.month)[1]
    return first, first.replace(day=last_day)
