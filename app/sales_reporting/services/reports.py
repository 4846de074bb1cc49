"""
Report generators.

Each generator is a pure function over already-loaded rows: it filters,
groups and ranks in memory and returns report-row models.  None of them keep
state, so any number can run concurrently over the same snapshot.

Amounts are summed at full precision and rounded only when the report row
is built.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from typing import Callable, Iterable, Mapping

from sales_reporting.models import (
    Customer,
    CustomerNetSales,
    DivisionProductRank,
    ForecastAccuracy,
    ForecastRecord,
    GrossPrice,
    MarketBadge,
    MarketNetSales,
    MonthlyGrossSalesRow,
    MonthlyGrossSalesTotal,
    NetSalesRecord,
    Product,
    ProductNetSales,
    RegionalNetSalesShare,
    SalesRecord,
)
from sales_reporting.services import fiscal_calendar
from sales_reporting.services.net_sales import compute_gross_sales, handle_missing
from sales_reporting.utils.config import (
    FISCAL_YEAR_START_MONTH,
    MARKET_BADGE_THRESHOLD,
    MISSING_REFERENCE_POLICY,
)

logger = logging.getLogger(__name__)

_MILLION = 1_000_000


def _to_mln(amount: float) -> float:
    return round(amount / _MILLION, 2)


# ---------------------------------------------------------------------------
# Gross sales for one customer
# ---------------------------------------------------------------------------
def monthly_gross_sales(
    sales: Iterable[SalesRecord],
    gross_prices: Mapping[tuple[str, int], GrossPrice],
    products: Mapping[str, Product],
    customer_code: str,
    fiscal_year: int,
    *,
    start_month: int = FISCAL_YEAR_START_MONTH,
    policy: str = MISSING_REFERENCE_POLICY,
) -> list[MonthlyGrossSalesRow]:
    """Transaction-level gross sales of one customer in one fiscal year.

    Rows are ordered by date, then product code.
    """
    customer_rows = (r for r in sales if r.customer_code == customer_code)
    priced = compute_gross_sales(
        customer_rows,
        gross_prices,
        fiscal_year=fiscal_year,
        start_month=start_month,
        policy=policy,
    )

    rows: list[MonthlyGrossSalesRow] = []
    missing: set[tuple[str, str, int]] = set()
    dropped = 0
    for record, fy, price in priced:
        product = products.get(record.product_code)
        if product is None:
            missing.add(("product", record.product_code, fy))
            dropped += 1
            continue
        rows.append(
            MonthlyGrossSalesRow(
                date=record.date,
                fiscal_year=fy,
                product_code=record.product_code,
                product=product.product,
                variant=product.variant,
                sold_quantity=record.sold_quantity,
                gross_price=round(price.gross_price, 2),
                gross_price_total=round(record.sold_quantity * price.gross_price, 2),
            )
        )
    handle_missing(missing, dropped, policy)

    rows.sort(key=lambda r: (r.date, r.product_code))
    return rows


def monthly_gross_sales_summary(
    sales: Iterable[SalesRecord],
    gross_prices: Mapping[tuple[str, int], GrossPrice],
    customer_code: str,
    fiscal_year: int,
    *,
    start_month: int = FISCAL_YEAR_START_MONTH,
    policy: str = MISSING_REFERENCE_POLICY,
) -> list[MonthlyGrossSalesTotal]:
    """Total gross sales of one customer per calendar month of a fiscal year."""
    customer_rows = (r for r in sales if r.customer_code == customer_code)
    totals: dict[dt.date, float] = defaultdict(float)
    for record, _, price in compute_gross_sales(
        customer_rows,
        gross_prices,
        fiscal_year=fiscal_year,
        start_month=start_month,
        policy=policy,
    ):
        totals[record.date.replace(day=1)] += record.sold_quantity * price.gross_price

    return [
        MonthlyGrossSalesTotal(
            month=month,
            fiscal_month=fiscal_calendar.fiscal_month(month, start_month),
            fiscal_quarter=fiscal_calendar.fiscal_quarter(month, start_month),
            gross_sales_total=round(total, 2),
        )
        for month, total in sorted(totals.items())
    ]


# ---------------------------------------------------------------------------
# Top-N by net sales
# ---------------------------------------------------------------------------
def _top_n_by_net_sales(
    net_sales: Iterable[NetSalesRecord],
    group: Callable[[NetSalesRecord], str | None],
    top_n: int,
) -> list[tuple[str, float]]:
    """Sum net sales per group and return the *top_n* ``(name, mln)`` pairs.

    Ordered by rounded net sales (millions) descending, then name ascending,
    so groups that tie in the report also tie-break predictably.  Records
    whose group resolves to None are ignored.
    """
    totals: dict[str, float] = defaultdict(float)
    for record in net_sales:
        name = group(record)
        if name is not None:
            totals[name] += record.net_sales

    ranked = sorted(
        ((name, _to_mln(total)) for name, total in totals.items()),
        key=lambda item: (-item[1], item[0]),
    )
    return ranked[:top_n]


def _customer_attr(
    customers: Mapping[str, Customer], attr: str
) -> Callable[[NetSalesRecord], str | None]:
    def lookup(record: NetSalesRecord) -> str | None:
        customer = customers.get(record.customer_code)
        return getattr(customer, attr) if customer is not None else None

    return lookup


def top_markets(
    net_sales: Iterable[NetSalesRecord],
    customers: Mapping[str, Customer],
    top_n: int,
) -> list[MarketNetSales]:
    """The *top_n* markets by net sales, in millions."""
    return [
        MarketNetSales(market=market, net_sales_mln=mln)
        for market, mln in _top_n_by_net_sales(
            net_sales, _customer_attr(customers, "market"), top_n
        )
    ]


def top_customers(
    net_sales: Iterable[NetSalesRecord],
    customers: Mapping[str, Customer],
    top_n: int,
    market: str | None = None,
) -> list[CustomerNetSales]:
    """The *top_n* customers by net sales, optionally within one market.

    Customers are grouped by name, so a chain trading through several
    customer codes is reported once.
    """
    if market is not None:
        wanted = market.casefold()
        net_sales = (
            r
            for r in net_sales
            if r.customer_code in customers
            and customers[r.customer_code].market.casefold() == wanted
        )
    return [
        CustomerNetSales(customer=customer, net_sales_mln=mln)
        for customer, mln in _top_n_by_net_sales(
            net_sales, _customer_attr(customers, "customer"), top_n
        )
    ]


def top_products(
    net_sales: Iterable[NetSalesRecord],
    products: Mapping[str, Product],
    top_n: int,
) -> list[ProductNetSales]:
    """The *top_n* products (all variants combined) by net sales."""

    def product_name(record: NetSalesRecord) -> str | None:
        product = products.get(record.product_code)
        return product.product if product is not None else None

    return [
        ProductNetSales(product=product, net_sales_mln=mln)
        for product, mln in _top_n_by_net_sales(net_sales, product_name, top_n)
    ]


# ---------------------------------------------------------------------------
# Top products per division
# ---------------------------------------------------------------------------
def top_products_by_division(
    net_sales: Iterable[NetSalesRecord],
    products: Mapping[str, Product],
    top_k: int = 3,
) -> list[DivisionProductRank]:
    """Dense-rank products by quantity sold within each division.

    Products sharing a quantity share a rank and the next quantity gets the
    next rank, so at most *top_k* distinct quantities survive per division
    (possibly more than *top_k* products).
    """
    quantities: dict[tuple[str, str], int] = defaultdict(int)
    for record in net_sales:
        product = products.get(record.product_code)
        if product is None:
            continue
        quantities[(product.division, product.product)] += record.sold_quantity

    by_division: dict[str, list[tuple[str, int]]] = defaultdict(list)
    for (division, product), qty in quantities.items():
        by_division[division].append((product, qty))

    rows: list[DivisionProductRank] = []
    for division in sorted(by_division):
        entries = by_division[division]
        distinct = sorted({qty for _, qty in entries}, reverse=True)
        dense_rank = {qty: rank for rank, qty in enumerate(distinct, start=1)}
        for product, qty in sorted(entries, key=lambda e: (-e[1], e[0])):
            rank = dense_rank[qty]
            if rank > top_k:
                break
            rows.append(
                DivisionProductRank(
                    division=division,
                    product=product,
                    total_sold_quantity=qty,
                    rank=rank,
                )
            )
    return rows


# ---------------------------------------------------------------------------
# Regional share
# ---------------------------------------------------------------------------
def regional_net_sales_share(
    net_sales: Iterable[NetSalesRecord],
    customers: Mapping[str, Customer],
) -> list[RegionalNetSalesShare]:
    """Each customer's percentage of its region's net sales.

    The denominator is the region's own total, so shares add up to 100
    within every region.  Ordered by region, then net sales descending.
    """
    totals: dict[tuple[str, str], float] = defaultdict(float)
    for record in net_sales:
        customer = customers.get(record.customer_code)
        if customer is None:
            continue
        totals[(customer.region, customer.customer)] += record.net_sales

    # Shares are computed from the rounded millions each row reports.
    mln = {key: _to_mln(total) for key, total in totals.items()}
    region_totals: dict[str, float] = defaultdict(float)
    for (region, _), value in mln.items():
        region_totals[region] += value

    ordered = sorted(totals.items(), key=lambda item: (item[0][0], -item[1], item[0][1]))
    rows: list[RegionalNetSalesShare] = []
    for key, _ in ordered:
        region, customer = key
        region_total = region_totals[region]
        share = mln[key] * 100 / region_total if region_total else 0.0
        rows.append(
            RegionalNetSalesShare(
                region=region,
                customer=customer,
                net_sales_mln=mln[key],
                pct_share=round(share, 2),
            )
        )
    return rows


# ---------------------------------------------------------------------------
# Market badge
# ---------------------------------------------------------------------------
def market_badge(
    sales: Iterable[SalesRecord],
    customers: Mapping[str, Customer],
    market: str,
    fiscal_year: int,
    *,
    threshold: int = MARKET_BADGE_THRESHOLD,
    start_month: int = FISCAL_YEAR_START_MONTH,
) -> MarketBadge:
    """Gold when a market sold more than *threshold* units in the year, else Silver."""
    wanted = market.casefold()
    market_name = market
    total = 0
    for record in sales:
        customer = customers.get(record.customer_code)
        if customer is None or customer.market.casefold() != wanted:
            continue
        if fiscal_calendar.fiscal_year(record.date, start_month) != fiscal_year:
            continue
        market_name = customer.market
        total += record.sold_quantity

    return MarketBadge(
        market=market_name,
        fiscal_year=fiscal_year,
        total_sold_quantity=total,
        badge="Gold" if total > threshold else "Silver",
    )


# ---------------------------------------------------------------------------
# Forecast accuracy
# ---------------------------------------------------------------------------
def _pct(value: int, base: int) -> float | None:
    return round(value * 100 / base, 2) if base else None


def forecast_accuracy(
    sales: Iterable[SalesRecord],
    forecasts: Iterable[ForecastRecord],
    customers: Mapping[str, Customer],
    fiscal_year: int,
    *,
    start_month: int = FISCAL_YEAR_START_MONTH,
    policy: str = MISSING_REFERENCE_POLICY,
) -> list[ForecastAccuracy]:
    """Compare forecast and actual quantities per customer.

    Actuals and forecasts are matched on ``(date, customer, product)``; a
    month present on only one side counts as zero on the other.  Absolute
    error is summed per matched row, so over- and under-forecasts do not
    cancel out.  Ordered by accuracy descending (customers without a
    forecast last), then customer code.
    """
    sold: dict[tuple[dt.date, str, str], int] = defaultdict(int)
    forecast: dict[tuple[dt.date, str, str], int] = defaultdict(int)
    for record in sales:
        if fiscal_calendar.fiscal_year(record.date, start_month) == fiscal_year:
            sold[(record.date, record.customer_code, record.product_code)] += record.sold_quantity
    for record in forecasts:
        if fiscal_calendar.fiscal_year(record.date, start_month) == fiscal_year:
            forecast[(record.date, record.customer_code, record.product_code)] += (
                record.forecast_quantity
            )

    per_customer: dict[str, list[int]] = defaultdict(lambda: [0, 0, 0])
    for key in sold.keys() | forecast.keys():
        actual, predicted = sold.get(key, 0), forecast.get(key, 0)
        totals = per_customer[key[1]]
        totals[0] += actual
        totals[1] += predicted
        totals[2] += abs(predicted - actual)

    rows: list[ForecastAccuracy] = []
    missing: set[tuple[str, str, int]] = set()
    dropped = 0
    for code, (total_sold, total_forecast, abs_error) in per_customer.items():
        customer = customers.get(code)
        if customer is None:
            missing.add(("customer", code, fiscal_year))
            dropped += 1
            continue
        abs_error_pct = _pct(abs_error, total_forecast)
        rows.append(
            ForecastAccuracy(
                customer_code=code,
                customer=customer.customer,
                market=customer.market,
                total_sold_quantity=total_sold,
                total_forecast_quantity=total_forecast,
                net_error=total_forecast - total_sold,
                net_error_pct=_pct(total_forecast - total_sold, total_forecast),
                abs_error=abs_error,
                abs_error_pct=abs_error_pct,
                forecast_accuracy=(
                    max(0.0, round(100 - abs_error_pct, 2))
                    if abs_error_pct is not None
                    else None
                ),
            )
        )
    handle_missing(missing, dropped, policy)

    rows.sort(
        key=lambda r: (
            r.forecast_accuracy is None,
            -(r.forecast_accuracy or 0.0),
            r.customer_code,
        )
    )
    return rows
