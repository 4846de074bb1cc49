"""
Shared fixtures: a small hardware sales snapshot with hand-checked totals.

Fiscal years start in September, so 2020-09-01 .. 2021-08-31 is FY2021.

FY2021 net sales per sales row::

    2021-03-15  Croma            AQ Dracula HDD (Standard)   10,000 x 100  ->    855,000
    2020-09-01  Croma            AQ Master wired x1 Ms      200,000 x  10  ->  1,710,000
    2021-03-01  Croma            AQ Dracula HDD (Plus)        5,000 x 120  ->    513,000
    2020-10-01  Amazon (India)   AQ Velocity                  4,000 x 500  ->  1,600,000
    2021-01-01  Amazon (Germany) AQ Velocity                  6,000 x 500  ->  2,700,000
    2021-02-01  Atliq e Store    AQ Master wired x1 Ms      100,000 x  10  ->  1,000,000
    2021-05-01  Atliq Exclusive  AQ Dracula HDD (Standard)   20,000 x 100  ->  2,000,000

plus one FY2022 row (Croma, 7,000 x 110 -> 658,350) and one FY2020 row with
no gross price or deductions at all.
"""

from __future__ import annotations

import datetime as dt

import pytest

from sales_reporting.models import (
    Customer,
    ForecastRecord,
    GrossPrice,
    PostInvoiceDeduction,
    PreInvoiceDeduction,
    Product,
    SalesRecord,
)
from sales_reporting.services.data_source import SalesDataset, build_dataset

CROMA = "90002002"
AMAZON_IN = "90002008"
AMAZON_DE = "90013120"
ATLIQ_E_STORE = "90008165"
ATLIQ_EXCLUSIVE = "70002017"

HDD_STD = "A0118150101"
HDD_PLUS = "A0118150102"
MOUSE = "A2118150101"
LAPTOP = "A6218160101"


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------
def sale(date: str, customer: str, product: str, qty: int) -> SalesRecord:
    return SalesRecord(
        date=dt.date.fromisoformat(date),
        customer_code=customer,
        product_code=product,
        sold_quantity=qty,
    )


def forecast(date: str, customer: str, product: str, qty: int) -> ForecastRecord:
    return ForecastRecord(
        date=dt.date.fromisoformat(date),
        customer_code=customer,
        product_code=product,
        forecast_quantity=qty,
    )


def price(product: str, fy: int, amount: float) -> GrossPrice:
    return GrossPrice(product_code=product, fiscal_year=fy, gross_price=amount)


def pre(customer: str, fy: int, pct: float) -> PreInvoiceDeduction:
    return PreInvoiceDeduction(
        customer_code=customer, fiscal_year=fy, pre_invoice_discount_pct=pct
    )


def post(customer: str, fy: int, pct: float) -> PostInvoiceDeduction:
    return PostInvoiceDeduction(
        customer_code=customer, fiscal_year=fy, post_invoice_discount_pct=pct
    )


PRODUCTS = [
    Product(product_code=HDD_STD, division="P & A", category="Internal HDD",
            product="AQ Dracula HDD", variant="Standard"),
    Product(product_code=HDD_PLUS, division="P & A", category="Internal HDD",
            product="AQ Dracula HDD", variant="Plus"),
    Product(product_code=MOUSE, division="P & A", category="Mouse",
            product="AQ Master wired x1 Ms", variant="Standard"),
    Product(product_code=LAPTOP, division="PC", category="Personal Laptop",
            product="AQ Velocity", variant="Standard"),
]

CUSTOMERS = [
    Customer(customer_code=CROMA, customer="Croma", market="India",
             region="APAC", channel="Retailer"),
    Customer(customer_code=AMAZON_IN, customer="Amazon", market="India",
             region="APAC", channel="E-Commerce"),
    Customer(customer_code=AMAZON_DE, customer="Amazon", market="Germany",
             region="EU", channel="E-Commerce"),
    Customer(customer_code=ATLIQ_E_STORE, customer="Atliq e Store", market="Germany",
             region="EU", channel="Direct"),
    Customer(customer_code=ATLIQ_EXCLUSIVE, customer="Atliq Exclusive", market="USA",
             region="NA", channel="Direct"),
]


def make_dataset(**overrides) -> SalesDataset:
    """Build the standard snapshot, replacing any table passed by keyword."""
    tables = {
        "sales": [
            sale("2021-03-15", CROMA, HDD_STD, 10_000),
            sale("2020-09-01", CROMA, MOUSE, 200_000),
            sale("2021-03-01", CROMA, HDD_PLUS, 5_000),
            sale("2020-10-01", AMAZON_IN, LAPTOP, 4_000),
            sale("2021-01-01", AMAZON_DE, LAPTOP, 6_000),
            sale("2021-02-01", ATLIQ_E_STORE, MOUSE, 100_000),
            sale("2021-05-01", ATLIQ_EXCLUSIVE, HDD_STD, 20_000),
            sale("2021-09-01", CROMA, HDD_STD, 7_000),
            sale("2020-08-01", CROMA, HDD_STD, 3_000),
        ],
        "forecasts": [
            forecast("2021-03-15", CROMA, HDD_STD, 12_000),
            forecast("2020-09-01", CROMA, MOUSE, 150_000),
            forecast("2021-04-01", CROMA, HDD_STD, 3_000),
            forecast("2020-10-01", AMAZON_IN, LAPTOP, 4_000),
        ],
        "gross_prices": [
            price(HDD_STD, 2021, 100.0),
            price(HDD_PLUS, 2021, 120.0),
            price(MOUSE, 2021, 10.0),
            price(LAPTOP, 2021, 500.0),
            price(HDD_STD, 2022, 110.0),
        ],
        "pre_invoice_deductions": [
            pre(CROMA, 2021, 0.10),
            pre(AMAZON_IN, 2021, 0.20),
            pre(AMAZON_DE, 2021, 0.0),
            pre(ATLIQ_E_STORE, 2021, 0.0),
            pre(ATLIQ_EXCLUSIVE, 2021, 0.0),
            pre(CROMA, 2022, 0.10),
        ],
        "post_invoice_deductions": [
            post(CROMA, 2021, 0.05),
            post(AMAZON_IN, 2021, 0.0),
            post(AMAZON_DE, 2021, 0.10),
            post(ATLIQ_E_STORE, 2021, 0.0),
            post(ATLIQ_EXCLUSIVE, 2021, 0.0),
            post(CROMA, 2022, 0.05),
        ],
        "products": PRODUCTS,
        "customers": CUSTOMERS,
    }
    tables.update(overrides)
    return build_dataset(**tables)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def dataset() -> SalesDataset:
    """The standard snapshot described in the module docstring."""
    return make_dataset()
