"""
Configuration module for the hardware sales reporting service.

All settings are configurable via environment variables with sensible defaults
for a Databricks SQL warehouse deployment.  A local ``.env`` file is honoured.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Unity Catalog
# ---------------------------------------------------------------------------
CATALOG_NAME: str = os.getenv("CATALOG_NAME", "hardware_catalog")
SCHEMA_GOLD: str = os.getenv("SCHEMA_GOLD", "gdb041")


def _fqn(schema: str, table: str) -> str:
    """Return a fully-qualified three-level Unity Catalog table name."""
    return f"{CATALOG_NAME}.{schema}.{table}"


# Fact tables
TABLE_SALES_MONTHLY: str = _fqn(SCHEMA_GOLD, "fact_sales_monthly")
TABLE_GROSS_PRICE: str = _fqn(SCHEMA_GOLD, "fact_gross_price")
TABLE_PRE_INVOICE_DEDUCTIONS: str = _fqn(SCHEMA_GOLD, "fact_pre_invoice_deductions")
TABLE_POST_INVOICE_DEDUCTIONS: str = _fqn(SCHEMA_GOLD, "fact_post_invoice_deductions")
TABLE_FORECAST_MONTHLY: str = _fqn(SCHEMA_GOLD, "fact_forecast_monthly")

# Dimension tables
TABLE_PRODUCT: str = _fqn(SCHEMA_GOLD, "dim_product")
TABLE_CUSTOMER: str = _fqn(SCHEMA_GOLD, "dim_customer")

# ---------------------------------------------------------------------------
# Data source
# ---------------------------------------------------------------------------
# "databricks" reads the tables above through the SQL warehouse; "csv" reads
# <table>.csv files from CSV_DATA_DIR (local development and the CLI).
DATA_SOURCE: str = os.getenv("DATA_SOURCE", "databricks").lower()
CSV_DATA_DIR: str = os.getenv("CSV_DATA_DIR", "data")

# ---------------------------------------------------------------------------
# SQL Warehouse
# ---------------------------------------------------------------------------
WAREHOUSE_ID: str = os.getenv("DATABRICKS_WAREHOUSE_ID", "your-warehouse-id")

# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------
CACHE_TTL: int = int(os.getenv("CACHE_TTL", "300"))  # seconds

# ---------------------------------------------------------------------------
# Databricks connection (local dev fallback)
# ---------------------------------------------------------------------------
DATABRICKS_HOST: str = os.getenv("DATABRICKS_HOST", "")
DATABRICKS_TOKEN: str = os.getenv("DATABRICKS_TOKEN", "")

# ---------------------------------------------------------------------------
# Reporting rules
# ---------------------------------------------------------------------------
# Month in which the fiscal year begins (9 = September, so Sep 2020 falls in
# fiscal year 2021).
FISCAL_YEAR_START_MONTH: int = int(os.getenv("FISCAL_YEAR_START_MONTH", "9"))
if not 1 <= FISCAL_YEAR_START_MONTH <= 12:
    raise ValueError(
        f"FISCAL_YEAR_START_MONTH must be between 1 and 12, "
        f"got {FISCAL_YEAR_START_MONTH}"
    )

# What to do with a sales row that has no gross price or deduction for its
# fiscal year: "skip" drops it with a warning, "fail" aborts the report.
MISSING_REFERENCE_POLICY: str = os.getenv("MISSING_REFERENCE_POLICY", "skip").lower()
if MISSING_REFERENCE_POLICY not in ("skip", "fail"):
    raise ValueError(
        f"MISSING_REFERENCE_POLICY must be 'skip' or 'fail', "
        f"got {MISSING_REFERENCE_POLICY!r}"
    )

# Total units a market must exceed in a fiscal year to earn the Gold badge.
MARKET_BADGE_THRESHOLD: int = int(os.getenv("MARKET_BADGE_THRESHOLD", "5000000"))

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
APP_TITLE: str = "Hardware Sales Reporting"
APP_VERSION: str = "1.0.0"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
