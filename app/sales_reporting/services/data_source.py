"""
Data source adapter.

Bulk-reads the five fact tables and two dimension tables into an immutable
:class:`SalesDataset` snapshot.  Reference tables are indexed by their
(composite) keys at build time so the net-sales join is a hash lookup per
sales row instead of a scan.

Two sources are supported: the Databricks SQL warehouse (production) and a
directory of ``<table>.csv`` files read with pandas (local development).
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, TypeVar

import pandas as pd
from pydantic import BaseModel, ValidationError

from sales_reporting.errors import DataIntegrityError, DataSourceError
from sales_reporting.models import (
    Customer,
    DatasetSummary,
    ForecastRecord,
    GrossPrice,
    PostInvoiceDeduction,
    PreInvoiceDeduction,
    Product,
    SalesRecord,
)
from sales_reporting.services.fiscal_calendar import fiscal_year
from sales_reporting.utils.config import (
    CSV_DATA_DIR,
    DATA_SOURCE,
    FISCAL_YEAR_START_MONTH,
    TABLE_CUSTOMER,
    TABLE_FORECAST_MONTHLY,
    TABLE_GROSS_PRICE,
    TABLE_POST_INVOICE_DEDUCTIONS,
    TABLE_PRE_INVOICE_DEDUCTIONS,
    TABLE_PRODUCT,
    TABLE_SALES_MONTHLY,
)
from sales_reporting.utils.databricks_client import execute_sql

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
K = TypeVar("K")

# Short table name -> (row model, fully-qualified warehouse table)
_TABLES: dict[str, tuple[type[BaseModel], str]] = {
    "fact_sales_monthly": (SalesRecord, TABLE_SALES_MONTHLY),
    "fact_forecast_monthly": (ForecastRecord, TABLE_FORECAST_MONTHLY),
    "fact_gross_price": (GrossPrice, TABLE_GROSS_PRICE),
    "fact_pre_invoice_deductions": (PreInvoiceDeduction, TABLE_PRE_INVOICE_DEDUCTIONS),
    "fact_post_invoice_deductions": (PostInvoiceDeduction, TABLE_POST_INVOICE_DEDUCTIONS),
    "dim_product": (Product, TABLE_PRODUCT),
    "dim_customer": (Customer, TABLE_CUSTOMER),
}

# Tables a deployment may leave out; they load as empty.
_OPTIONAL_TABLES = {"fact_forecast_monthly"}


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SalesDataset:
    """Read-only snapshot of every source table.

    Build instances with :func:`build_dataset`, which validates the key
    invariants and creates the lookup indexes.
    """

    sales: tuple[SalesRecord, ...]
    forecasts: tuple[ForecastRecord, ...]
    products: Mapping[str, Product]
    customers: Mapping[str, Customer]
    gross_prices: Mapping[tuple[str, int], GrossPrice]
    pre_invoice_deductions: Mapping[tuple[str, int], PreInvoiceDeduction]
    post_invoice_deductions: Mapping[tuple[str, int], PostInvoiceDeduction]
    source: str = field(default="memory")


def _index(
    rows: Iterable[M], key: Callable[[M], K], table: str
) -> Mapping[K, M]:
    """Index *rows* by *key*, rejecting duplicate keys."""
    index: dict[K, M] = {}
    for row in rows:
        k = key(row)
        if k in index:
            raise DataIntegrityError(f"{table}: duplicate key {k!r}")
        index[k] = row
    return MappingProxyType(index)


def build_dataset(
    *,
    sales: Iterable[SalesRecord],
    gross_prices: Iterable[GrossPrice],
    pre_invoice_deductions: Iterable[PreInvoiceDeduction],
    post_invoice_deductions: Iterable[PostInvoiceDeduction],
    products: Iterable[Product],
    customers: Iterable[Customer],
    forecasts: Iterable[ForecastRecord] = (),
    source: str = "memory",
) -> SalesDataset:
    """Assemble a :class:`SalesDataset` from already-parsed rows.

    Raises
    ------
    DataIntegrityError
        If a product or customer code, a ``(product_code, fiscal_year)`` gross
        price, or a ``(customer_code, fiscal_year)`` deduction appears twice.
    """
    return SalesDataset(
        sales=tuple(sales),
        forecasts=tuple(forecasts),
        products=_index(products, lambda p: p.product_code, "dim_product"),
        customers=_index(customers, lambda c: c.customer_code, "dim_customer"),
        gross_prices=_index(
            gross_prices,
            lambda g: (g.product_code, g.fiscal_year),
            "fact_gross_price",
        ),
        pre_invoice_deductions=_index(
            pre_invoice_deductions,
            lambda d: (d.customer_code, d.fiscal_year),
            "fact_pre_invoice_deductions",
        ),
        post_invoice_deductions=_index(
            post_invoice_deductions,
            lambda d: (d.customer_code, d.fiscal_year),
            "fact_post_invoice_deductions",
        ),
        source=source,
    )


def summarize(
    dataset: SalesDataset, start_month: int = FISCAL_YEAR_START_MONTH
) -> DatasetSummary:
    """Return row counts and the fiscal years covered by the sales table."""
    years = sorted({fiscal_year(r.date, start_month) for r in dataset.sales})
    return DatasetSummary(
        source=dataset.source,
        sales_records=len(dataset.sales),
        forecast_records=len(dataset.forecasts),
        gross_prices=len(dataset.gross_prices),
        pre_invoice_deductions=len(dataset.pre_invoice_deductions),
        post_invoice_deductions=len(dataset.post_invoice_deductions),
        products=len(dataset.products),
        customers=len(dataset.customers),
        fiscal_years=years,
    )


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------
def _parse_rows(
    model: type[M], rows: Iterable[dict[str, Any]], table: str
) -> list[M]:
    try:
        return [model.model_validate(row) for row in rows]
    except ValidationError as exc:
        first = exc.errors()[0]
        raise DataSourceError(
            f"{table}: invalid value for {'.'.join(map(str, first['loc']))}: "
            f"{first['msg']}"
        ) from exc


def _build_from_tables(tables: dict[str, list[Any]], source: str) -> SalesDataset:
    dataset = build_dataset(
        sales=tables["fact_sales_monthly"],
        forecasts=tables["fact_forecast_monthly"],
        gross_prices=tables["fact_gross_price"],
        pre_invoice_deductions=tables["fact_pre_invoice_deductions"],
        post_invoice_deductions=tables["fact_post_invoice_deductions"],
        products=tables["dim_product"],
        customers=tables["dim_customer"],
        source=source,
    )
    logger.info(
        "Loaded dataset from %s: %d sales rows, %d forecast rows, "
        "%d products, %d customers",
        source,
        len(dataset.sales),
        len(dataset.forecasts),
        len(dataset.products),
        len(dataset.customers),
    )
    return dataset


def load_from_databricks() -> SalesDataset:
    """Bulk-read every source table through the SQL warehouse."""
    tables: dict[str, list[Any]] = {}
    for name, (model, fqn) in _TABLES.items():
        columns = ", ".join(model.model_fields)
        query = f"SELECT {columns} FROM {fqn}"
        try:
            rows = execute_sql(query, cache_key=f"table:{name}")
        except DataSourceError:
            if name not in _OPTIONAL_TABLES:
                raise
            logger.warning("Optional table %s could not be read; using no rows", fqn)
            rows = []
        tables[name] = _parse_rows(model, rows, name)
    return _build_from_tables(tables, source="databricks")


def load_from_csv(directory: str | os.PathLike[str] = CSV_DATA_DIR) -> SalesDataset:
    """Read ``<table>.csv`` files from *directory* with pandas.

    Every column is read as text and converted by the row models, so codes
    with leading zeros survive intact.
    """
    tables: dict[str, list[Any]] = {}
    for name, (model, _) in _TABLES.items():
        path = os.path.join(directory, f"{name}.csv")
        if not os.path.isfile(path):
            if name in _OPTIONAL_TABLES:
                logger.info("No %s found; forecast reports will be empty", path)
                tables[name] = []
                continue
            raise DataSourceError(f"Missing source file {path}")

        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        missing = [col for col in model.model_fields if col not in df.columns]
        if missing:
            raise DataSourceError(f"{path}: missing column(s) {missing}")
        records = df[list(model.model_fields)].to_dict(orient="records")
        tables[name] = _parse_rows(model, records, name)
    return _build_from_tables(tables, source=f"csv:{directory}")


def load_dataset(source: str | None = None, data_dir: str | None = None) -> SalesDataset:
    """Load a snapshot from *source* (``databricks`` or ``csv``, default ``DATA_SOURCE``)."""
    source = source or DATA_SOURCE
    if source == "databricks":
        return load_from_databricks()
    if source == "csv":
        return load_from_csv(data_dir or CSV_DATA_DIR)
    raise DataSourceError(f"Unknown data source {source!r}; expected 'databricks' or 'csv'")


# ---------------------------------------------------------------------------
# Process-wide snapshot
# ---------------------------------------------------------------------------
_dataset: SalesDataset | None = None
_load_lock = threading.Lock()


def get_dataset() -> SalesDataset:
    """Return the shared snapshot, loading it from ``DATA_SOURCE`` on first use.

    Concurrent first callers wait for a single load.
    """
    global _dataset
    if _dataset is None:
        with _load_lock:
            if _dataset is None:
                _dataset = load_dataset()
    return _dataset


def set_dataset(dataset: SalesDataset) -> None:
    """Replace the shared snapshot (used at startup, by the CLI and in tests)."""
    global _dataset
    _dataset = dataset


def reset_dataset() -> None:
    """Drop the shared snapshot so the next call to get_dataset reloads it."""
    global _dataset
    _dataset = None
