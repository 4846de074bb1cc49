"""
Query interface.

Parameterised entry points used by the HTTP routers and the CLI.  Each one
validates its arguments, reads the shared dataset snapshot (or an explicit
one) and delegates to a report generator.
"""

from __future__ import annotations

import re
from typing import Any

from sales_reporting.errors import InvalidParameterError
from sales_reporting.models import (
    CustomerNetSales,
    DivisionProductRank,
    ForecastAccuracy,
    MarketBadge,
    MarketNetSales,
    MonthlyGrossSalesRow,
    MonthlyGrossSalesTotal,
    ProductNetSales,
    RegionalNetSalesShare,
)
from sales_reporting.services import reports
from sales_reporting.services.data_source import SalesDataset, get_dataset
from sales_reporting.services.net_sales import net_sales_for

_CODE_PATTERN = re.compile(r"^\S+$")


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------
def _positive_int(value: Any, name: str) -> int:
    # bool is an int subclass; True must not pass as 1.
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidParameterError(f"{name} must be greater than 0, got {value}")
    return value


def _non_empty(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise InvalidParameterError(f"{name} must be a string, got {value!r}")
    cleaned = value.strip()
    if not cleaned:
        raise InvalidParameterError(f"{name} must not be empty")
    return cleaned


def _code(value: Any, name: str) -> str:
    cleaned = _non_empty(value, name)
    if not _CODE_PATTERN.match(cleaned):
        raise InvalidParameterError(f"{name} must not contain whitespace: {value!r}")
    return cleaned


def _resolve(dataset: SalesDataset | None) -> SalesDataset:
    return dataset if dataset is not None else get_dataset()


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------
def get_monthly_gross_sales(
    customer_code: str, fiscal_year: int, *, dataset: SalesDataset | None = None
) -> list[MonthlyGrossSalesRow]:
    """Transaction-level gross sales of one customer in a fiscal year."""
    customer_code = _code(customer_code, "customer_code")
    fiscal_year = _positive_int(fiscal_year, "fiscal_year")
    ds = _resolve(dataset)
    return reports.monthly_gross_sales(
        ds.sales, ds.gross_prices, ds.products, customer_code, fiscal_year
    )


def get_monthly_gross_sales_summary(
    customer_code: str, fiscal_year: int, *, dataset: SalesDataset | None = None
) -> list[MonthlyGrossSalesTotal]:
    """Gross sales of one customer per month of a fiscal year."""
    customer_code = _code(customer_code, "customer_code")
    fiscal_year = _positive_int(fiscal_year, "fiscal_year")
    ds = _resolve(dataset)
    return reports.monthly_gross_sales_summary(
        ds.sales, ds.gross_prices, customer_code, fiscal_year
    )


def get_top_markets(
    fiscal_year: int, top_n: int, *, dataset: SalesDataset | None = None
) -> list[MarketNetSales]:
    """The top-N markets by net sales in a fiscal year."""
    fiscal_year = _positive_int(fiscal_year, "fiscal_year")
    top_n = _positive_int(top_n, "top_n")
    ds = _resolve(dataset)
    return reports.top_markets(net_sales_for(ds, fiscal_year), ds.customers, top_n)


def get_top_customers(
    fiscal_year: int,
    top_n: int,
    market: str | None = None,
    *,
    dataset: SalesDataset | None = None,
) -> list[CustomerNetSales]:
    """The top-N customers by net sales, optionally within one market."""
    fiscal_year = _positive_int(fiscal_year, "fiscal_year")
    top_n = _positive_int(top_n, "top_n")
    if market is not None:
        market = _non_empty(market, "market")
    ds = _resolve(dataset)
    return reports.top_customers(
        net_sales_for(ds, fiscal_year), ds.customers, top_n, market=market
    )


def get_top_products(
    fiscal_year: int, top_n: int, *, dataset: SalesDataset | None = None
) -> list[ProductNetSales]:
    """The top-N products by net sales in a fiscal year."""
    fiscal_year = _positive_int(fiscal_year, "fiscal_year")
    top_n = _positive_int(top_n, "top_n")
    ds = _resolve(dataset)
    return reports.top_products(net_sales_for(ds, fiscal_year), ds.products, top_n)


def get_top_products_by_division(
    fiscal_year: int, top_k: int = 3, *, dataset: SalesDataset | None = None
) -> list[DivisionProductRank]:
    """Products ranked in the top *top_k* quantities of their division."""
    fiscal_year = _positive_int(fiscal_year, "fiscal_year")
    top_k = _positive_int(top_k, "top_k")
    ds = _resolve(dataset)
    return reports.top_products_by_division(
        net_sales_for(ds, fiscal_year), ds.products, top_k
    )


def get_regional_net_sales_share(
    fiscal_year: int, *, dataset: SalesDataset | None = None
) -> list[RegionalNetSalesShare]:
    """Each customer's share of its region's net sales in a fiscal year."""
    fiscal_year = _positive_int(fiscal_year, "fiscal_year")
    ds = _resolve(dataset)
    return reports.regional_net_sales_share(net_sales_for(ds, fiscal_year), ds.customers)


def get_market_badge(
    market: str, fiscal_year: int, *, dataset: SalesDataset | None = None
) -> MarketBadge:
    """Gold / Silver badge of a market for a fiscal year."""
    market = _non_empty(market, "market")
    fiscal_year = _positive_int(fiscal_year, "fiscal_year")
    ds = _resolve(dataset)
    return reports.market_badge(ds.sales, ds.customers, market, fiscal_year)


def get_forecast_accuracy(
    fiscal_year: int, *, dataset: SalesDataset | None = None
) -> list[ForecastAccuracy]:
    """Forecast accuracy per customer for a fiscal year."""
    fiscal_year = _positive_int(fiscal_year, "fiscal_year")
    ds = _resolve(dataset)
    return reports.forecast_accuracy(ds.sales, ds.forecasts, ds.customers, fiscal_year)
