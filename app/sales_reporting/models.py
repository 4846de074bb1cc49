"""
Pydantic data models for the hardware sales reporting service.

Source-table rows, the derived net-sales record, and every report row are
defined here so they can be shared across services, routers, the CLI and
tests.  All models are frozen: a loaded dataset snapshot is never mutated.
"""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class _Row(BaseModel):
    """Immutable base for every model in this module."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)


# ---------------------------------------------------------------------------
# Fact tables
# ---------------------------------------------------------------------------
class SalesRecord(_Row):
    """One row of ``fact_sales_monthly``: units a customer bought in a month."""

    date: dt.date
    customer_code: str
    product_code: str
    sold_quantity: int


class ForecastRecord(_Row):
    """One row of ``fact_forecast_monthly``."""

    date: dt.date
    customer_code: str
    product_code: str
    forecast_quantity: int


class GrossPrice(_Row):
    """Unit gross price of a product for a fiscal year."""

    product_code: str
    fiscal_year: int
    gross_price: float = Field(..., ge=0.0)


class PreInvoiceDeduction(_Row):
    """Trade discount granted to a customer before invoicing."""

    customer_code: str
    fiscal_year: int
    pre_invoice_discount_pct: float = Field(..., ge=0.0, le=1.0)


class PostInvoiceDeduction(_Row):
    """Rebates and promotional deductions applied after invoicing."""

    customer_code: str
    fiscal_year: int
    post_invoice_discount_pct: float = Field(..., ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Dimension tables
# ---------------------------------------------------------------------------
class Product(_Row):
    """A single product variant from ``dim_product``."""

    product_code: str
    division: str
    category: str
    product: str
    variant: str


class Customer(_Row):
    """A customer account in one market, from ``dim_customer``."""

    customer_code: str
    customer: str
    market: str
    region: str
    channel: str


# ---------------------------------------------------------------------------
# Derived
# ---------------------------------------------------------------------------
class NetSalesRecord(_Row):
    """A sales row priced through the full discount chain.

    Amounts are kept at full precision so aggregations do not compound
    rounding error; they are rounded to two decimals on serialisation.
    """

    date: dt.date
    fiscal_year: int
    customer_code: str
    product_code: str
    sold_quantity: int
    gross_price: float
    gross_price_total: float
    pre_invoice_discount_pct: float
    net_invoice_sales: float
    post_invoice_discount_pct: float
    net_sales: float

    @field_serializer("gross_price_total", "net_invoice_sales", "net_sales")
    def _round_amount(self, value: float) -> float:
        return round(value, 2)


# ---------------------------------------------------------------------------
# Report rows
# ---------------------------------------------------------------------------
class MonthlyGrossSalesRow(_Row):
    """Per-transaction gross sales for one customer."""

    date: dt.date
    fiscal_year: int
    product_code: str
    product: str
    variant: str
    sold_quantity: int
    gross_price: float
    gross_price_total: float


class MonthlyGrossSalesTotal(_Row):
    """Gross sales for one customer aggregated to a calendar month."""

    month: dt.date
    fiscal_month: int = Field(..., ge=1, le=12)
    fiscal_quarter: str = Field(..., description="Q1 .. Q4 of the fiscal year")
    gross_sales_total: float


class MarketNetSales(_Row):
    market: str
    net_sales_mln: float


class CustomerNetSales(_Row):
    customer: str
    net_sales_mln: float


class ProductNetSales(_Row):
    product: str
    net_sales_mln: float


class DivisionProductRank(_Row):
    """A product's dense rank by quantity sold within its division."""

    division: str
    product: str
    total_sold_quantity: int
    rank: int = Field(..., ge=1)


class RegionalNetSalesShare(_Row):
    """A customer's share of its region's net sales."""

    region: str
    customer: str
    net_sales_mln: float
    pct_share: float


class MarketBadge(_Row):
    market: str
    fiscal_year: int
    total_sold_quantity: int
    badge: str


class ForecastAccuracy(_Row):
    """Forecast vs. actual quantities for one customer over a fiscal year.

    The percentage fields are ``None`` when the customer had no forecast.
    """

    customer_code: str
    customer: str
    market: str
    total_sold_quantity: int
    total_forecast_quantity: int
    net_error: int
    net_error_pct: float | None
    abs_error: int
    abs_error_pct: float | None
    forecast_accuracy: float | None


class DatasetSummary(_Row):
    """Row counts of the loaded snapshot."""

    source: str
    sales_records: int
    forecast_records: int
    gross_prices: int
    pre_invoice_deductions: int
    post_invoice_deductions: int
    products: int
    customers: int
    fiscal_years: list[int]
