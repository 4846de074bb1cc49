"""
Fiscal calendar helpers.

Every join keyed on fiscal year goes through :func:`fiscal_year`, so all
reports agree on which year a sales month belongs to.
"""

from __future__ import annotations

import datetime as dt

from sales_reporting.utils.config import FISCAL_YEAR_START_MONTH


def _check_start_month(start_month: int) -> None:
    if not 1 <= start_month <= 12:
        raise ValueError(f"start_month must be between 1 and 12, got {start_month}")


def fiscal_year(date: dt.date, start_month: int = FISCAL_YEAR_START_MONTH) -> int:
    """Return the fiscal year *date* falls in.

    A fiscal year is named after the calendar year in which it ends: with a
    September start, 2020-09-01 through 2021-08-31 is fiscal year 2021.

    >>> fiscal_year(dt.date(2020, 9, 1), 9)
    2021
    >>> fiscal_year(dt.date(2021, 8, 31), 9)
    2021
    """
    _check_start_month(start_month)
    if date.month >= start_month:
        return date.year + 1
    return date.year


def fiscal_month(date: dt.date, start_month: int = FISCAL_YEAR_START_MONTH) -> int:
    """Return the 1-based month number within the fiscal year."""
    _check_start_month(start_month)
    return (date.month - start_month) % 12 + 1


def fiscal_quarter(date: dt.date, start_month: int = FISCAL_YEAR_START_MONTH) -> str:
    """Return ``"Q1"`` .. ``"Q4"`` for *date*."""
    return f"Q{(fiscal_month(date, start_month) - 1) // 3 + 1}"
