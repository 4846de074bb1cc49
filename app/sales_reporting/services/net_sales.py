"""
Gross and net sales calculation.

Joins each sales row to the gross price of its product and the pre- and
post-invoice deductions of its customer for the row's fiscal year, then
applies the discount chain::

    gross_price_total = sold_quantity * gross_price
    net_invoice_sales = gross_price_total * (1 - pre_invoice_discount_pct)
    net_sales         = net_invoice_sales * (1 - post_invoice_discount_pct)

Nothing is rounded here; rounding happens when a record or report row is
serialised.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from sales_reporting.errors import MissingReferenceDataError
from sales_reporting.models import (
    GrossPrice,
    NetSalesRecord,
    PostInvoiceDeduction,
    PreInvoiceDeduction,
    SalesRecord,
)
from sales_reporting.services import fiscal_calendar
from sales_reporting.services.data_source import SalesDataset
from sales_reporting.utils.config import (
    FISCAL_YEAR_START_MONTH,
    MISSING_REFERENCE_POLICY,
)

logger = logging.getLogger(__name__)

_POLICIES = ("skip", "fail")


def _check_policy(policy: str) -> None:
    if policy not in _POLICIES:
        raise ValueError(f"Unknown missing-reference policy {policy!r}")


def handle_missing(
    missing: set[tuple[str, str, int]], dropped: int, policy: str
) -> None:
    """Raise or warn about rows dropped for lack of reference data."""
    if not missing:
        return
    ordered = sorted(missing)
    if policy == "fail":
        raise MissingReferenceDataError(ordered)
    logger.warning(
        "Skipped %d row(s) with no reference data; %d missing key(s), e.g. %s",
        dropped,
        len(ordered),
        ordered[:5],
    )


def compute_gross_sales(
    sales: Iterable[SalesRecord],
    gross_prices: Mapping[tuple[str, int], GrossPrice],
    *,
    fiscal_year: int | None = None,
    start_month: int = FISCAL_YEAR_START_MONTH,
    policy: str = MISSING_REFERENCE_POLICY,
) -> list[tuple[SalesRecord, int, GrossPrice]]:
    """Pair each sales row with its fiscal year and gross price.

    Rows outside *fiscal_year* (when given) are ignored before any lookup, so
    a missing price in another year never affects the result.
    """
    _check_policy(policy)
    matched: list[tuple[SalesRecord, int, GrossPrice]] = []
    missing: set[tuple[str, str, int]] = set()
    dropped = 0

    for record in sales:
        fy = fiscal_calendar.fiscal_year(record.date, start_month)
        if fiscal_year is not None and fy != fiscal_year:
            continue
        price = gross_prices.get((record.product_code, fy))
        if price is None:
            missing.add(("gross_price", record.product_code, fy))
            dropped += 1
            continue
        matched.append((record, fy, price))

    handle_missing(missing, dropped, policy)
    return matched


def compute_net_sales(
    sales: Iterable[SalesRecord],
    gross_prices: Mapping[tuple[str, int], GrossPrice],
    pre_invoice_deductions: Mapping[tuple[str, int], PreInvoiceDeduction],
    post_invoice_deductions: Mapping[tuple[str, int], PostInvoiceDeduction],
    *,
    fiscal_year: int | None = None,
    start_month: int = FISCAL_YEAR_START_MONTH,
    policy: str = MISSING_REFERENCE_POLICY,
) -> list[NetSalesRecord]:
    """Price every sales row through the gross-to-net discount chain.

    Parameters
    ----------
    sales:
        Monthly sales rows.
    gross_prices:
        Gross prices keyed by ``(product_code, fiscal_year)``.
    pre_invoice_deductions / post_invoice_deductions:
        Deductions keyed by ``(customer_code, fiscal_year)``.
    fiscal_year:
        Only price rows belonging to this fiscal year.
    start_month:
        First month of the fiscal year.
    policy:
        ``"skip"`` drops rows lacking any of the three lookups and logs a
        warning; ``"fail"`` raises instead.

    Raises
    ------
    MissingReferenceDataError
        Under the ``"fail"`` policy, listing every missing key.
    """
    _check_policy(policy)
    results: list[NetSalesRecord] = []
    missing: set[tuple[str, str, int]] = set()
    dropped = 0

    for record in sales:
        fy = fiscal_calendar.fiscal_year(record.date, start_month)
        if fiscal_year is not None and fy != fiscal_year:
            continue

        price = gross_prices.get((record.product_code, fy))
        pre = pre_invoice_deductions.get((record.customer_code, fy))
        post = post_invoice_deductions.get((record.customer_code, fy))
        if price is None or pre is None or post is None:
            if price is None:
                missing.add(("gross_price", record.product_code, fy))
            if pre is None:
                missing.add(("pre_invoice_deduction", record.customer_code, fy))
            if post is None:
                missing.add(("post_invoice_deduction", record.customer_code, fy))
            dropped += 1
            continue

        gross_price_total = record.sold_quantity * price.gross_price
        net_invoice_sales = gross_price_total * (1 - pre.pre_invoice_discount_pct)
        net_sales = net_invoice_sales * (1 - post.post_invoice_discount_pct)
        results.append(
            NetSalesRecord(
                date=record.date,
                fiscal_year=fy,
                customer_code=record.customer_code,
                product_code=record.product_code,
                sold_quantity=record.sold_quantity,
                gross_price=price.gross_price,
                gross_price_total=gross_price_total,
                pre_invoice_discount_pct=pre.pre_invoice_discount_pct,
                net_invoice_sales=net_invoice_sales,
                post_invoice_discount_pct=post.post_invoice_discount_pct,
                net_sales=net_sales,
            )
        )

    handle_missing(missing, dropped, policy)
    return results


def net_sales_for(
    dataset: SalesDataset,
    fiscal_year: int | None = None,
    *,
    start_month: int = FISCAL_YEAR_START_MONTH,
    policy: str = MISSING_REFERENCE_POLICY,
) -> list[NetSalesRecord]:
    """Shortcut for :func:`compute_net_sales` over a dataset snapshot."""
    return compute_net_sales(
        dataset.sales,
        dataset.gross_prices,
        dataset.pre_invoice_deductions,
        dataset.post_invoice_deductions,
        fiscal_year=fiscal_year,
        start_month=start_month,
        policy=policy,
    )
