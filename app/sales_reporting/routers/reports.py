"""
Sales reports router.

Exposes every report in the query interface as a GET endpoint.  Handlers are
plain ``def`` functions so FastAPI runs them in its threadpool; they only
read the shared, immutable dataset snapshot.

Parameter validation happens in the query layer, which raises
``InvalidParameterError``; the application maps it to HTTP 400.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel

from sales_reporting.services import queries

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


def _envelope(parameters: dict[str, Any], data: list[BaseModel]) -> dict[str, Any]:
    return {
        "count": len(data),
        "parameters": parameters,
        "data": [row.model_dump(mode="json") for row in data],
    }


# ---------------------------------------------------------------------------
# GET /monthly-gross-sales
# ---------------------------------------------------------------------------
@router.get(
    "/monthly-gross-sales",
    summary="Transaction-level gross sales for one customer",
)
def get_monthly_gross_sales(
    customer_code: str = Query(..., description="Customer code, e.g. 90002002"),
    fiscal_year: int = Query(..., description="Fiscal year, e.g. 2021"),
) -> dict[str, Any]:
    """Return date, product, variant, quantity, gross price and gross total
    for every sales row of the customer in the fiscal year.
    """
    rows = queries.get_monthly_gross_sales(customer_code, fiscal_year)
    return _envelope(
        {"customer_code": customer_code, "fiscal_year": fiscal_year}, rows
    )


# ---------------------------------------------------------------------------
# GET /monthly-gross-sales/summary
# ---------------------------------------------------------------------------
@router.get(
    "/monthly-gross-sales/summary",
    summary="Gross sales for one customer aggregated per month",
)
def get_monthly_gross_sales_summary(
    customer_code: str = Query(..., description="Customer code"),
    fiscal_year: int = Query(..., description="Fiscal year"),
) -> dict[str, Any]:
    """Return one row per calendar month with the customer's gross sales."""
    rows = queries.get_monthly_gross_sales_summary(customer_code, fiscal_year)
    return _envelope(
        {"customer_code": customer_code, "fiscal_year": fiscal_year}, rows
    )


# ---------------------------------------------------------------------------
# GET /top-markets
# ---------------------------------------------------------------------------
@router.get("/top-markets", summary="Top markets by net sales")
def get_top_markets(
    fiscal_year: int = Query(..., description="Fiscal year"),
    top_n: int = Query(5, description="Number of markets returned"),
) -> dict[str, Any]:
    """Return markets ordered by net sales (millions), highest first."""
    rows = queries.get_top_markets(fiscal_year, top_n)
    return _envelope({"fiscal_year": fiscal_year, "top_n": top_n}, rows)


# ---------------------------------------------------------------------------
# GET /top-customers
# ---------------------------------------------------------------------------
@router.get("/top-customers", summary="Top customers by net sales")
def get_top_customers(
    fiscal_year: int = Query(..., description="Fiscal year"),
    top_n: int = Query(5, description="Number of customers returned"),
    market: str | None = Query(None, description="Restrict to one market"),
) -> dict[str, Any]:
    """Return customers ordered by net sales (millions), highest first."""
    rows = queries.get_top_customers(fiscal_year, top_n, market)
    return _envelope(
        {"fiscal_year": fiscal_year, "top_n": top_n, "market": market}, rows
    )


# ---------------------------------------------------------------------------
# GET /top-products
# ---------------------------------------------------------------------------
@router.get("/top-products", summary="Top products by net sales")
def get_top_products(
    fiscal_year: int = Query(..., description="Fiscal year"),
    top_n: int = Query(5, description="Number of products returned"),
) -> dict[str, Any]:
    """Return products ordered by net sales (millions), highest first."""
    rows = queries.get_top_products(fiscal_year, top_n)
    return _envelope({"fiscal_year": fiscal_year, "top_n": top_n}, rows)


# ---------------------------------------------------------------------------
# GET /top-products-by-division
# ---------------------------------------------------------------------------
@router.get(
    "/top-products-by-division",
    summary="Top products by quantity within each division",
)
def get_top_products_by_division(
    fiscal_year: int = Query(..., description="Fiscal year"),
    top_k: int = Query(3, description="Dense-rank cut-off per division"),
) -> dict[str, Any]:
    """Return each division's products ranked by quantity sold (dense rank)."""
    rows = queries.get_top_products_by_division(fiscal_year, top_k)
    return _envelope({"fiscal_year": fiscal_year, "top_k": top_k}, rows)


# ---------------------------------------------------------------------------
# GET /regional-net-sales-share
# ---------------------------------------------------------------------------
@router.get(
    "/regional-net-sales-share",
    summary="Customer share of net sales within each region",
)
def get_regional_net_sales_share(
    fiscal_year: int = Query(..., description="Fiscal year"),
) -> dict[str, Any]:
    """Return every customer's net sales and percentage of its region's total."""
    rows = queries.get_regional_net_sales_share(fiscal_year)
    return _envelope({"fiscal_year": fiscal_year}, rows)


# ---------------------------------------------------------------------------
# GET /market-badge
# ---------------------------------------------------------------------------
@router.get("/market-badge", summary="Gold / Silver badge for a market")
def get_market_badge(
    market: str = Query(..., description="Market name, e.g. India"),
    fiscal_year: int = Query(..., description="Fiscal year"),
) -> dict[str, Any]:
    """Return the market's total quantity sold and its badge."""
    badge = queries.get_market_badge(market, fiscal_year)
    return badge.model_dump(mode="json")


# ---------------------------------------------------------------------------
# GET /forecast-accuracy
# ---------------------------------------------------------------------------
@router.get("/forecast-accuracy", summary="Forecast accuracy per customer")
def get_forecast_accuracy(
    fiscal_year: int = Query(..., description="Fiscal year"),
) -> dict[str, Any]:
    """Return forecast vs. actual quantities and accuracy for every customer."""
    rows = queries.get_forecast_accuracy(fiscal_year)
    return _envelope({"fiscal_year": fiscal_year}, rows)
