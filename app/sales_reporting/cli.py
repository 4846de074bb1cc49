"""
Command-line access to the sales reports.

Usage:
    sales-reports top-markets --fiscal-year 2021 --top-n 5
    sales-reports monthly-gross-sales --customer-code 90002002 --fiscal-year 2021
    sales-reports regional-share --fiscal-year 2021 --data-dir ./extracts

Reads the configured ``DATA_SOURCE`` unless ``--data-dir`` points at a
directory of ``<table>.csv`` extracts.  Reports are printed as JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Callable, List, Optional

from pydantic import BaseModel

from sales_reporting.errors import InvalidParameterError, ReportingError
from sales_reporting.services import queries
from sales_reporting.services.data_source import load_dataset, set_dataset
from sales_reporting.utils.config import LOG_LEVEL

logger = logging.getLogger(__name__)

# report name -> (query function, argument names in call order)
_REPORTS: dict[str, tuple[Callable[..., Any], tuple[str, ...]]] = {
    "monthly-gross-sales": (
        queries.get_monthly_gross_sales, ("customer_code", "fiscal_year"),
    ),
    "monthly-gross-sales-summary": (
        queries.get_monthly_gross_sales_summary, ("customer_code", "fiscal_year"),
    ),
    "top-markets": (queries.get_top_markets, ("fiscal_year", "top_n")),
    "top-customers": (queries.get_top_customers, ("fiscal_year", "top_n", "market")),
    "top-products": (queries.get_top_products, ("fiscal_year", "top_n")),
    "top-products-by-division": (
        queries.get_top_products_by_division, ("fiscal_year", "top_k"),
    ),
    "regional-share": (queries.get_regional_net_sales_share, ("fiscal_year",)),
    "market-badge": (queries.get_market_badge, ("market", "fiscal_year")),
    "forecast-accuracy": (queries.get_forecast_accuracy, ("fiscal_year",)),
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sales-reports",
        description="Run a sales report and print it as JSON.",
    )
    parser.add_argument("report", choices=sorted(_REPORTS), help="Report to run")
    parser.add_argument("--fiscal-year", type=int, required=True)
    parser.add_argument("--top-n", type=int, default=5)
    parser.add_argument("--top-k", type=int, default=3)
    parser.add_argument("--customer-code")
    parser.add_argument("--market")
    parser.add_argument(
        "--data-dir",
        help="Read <table>.csv extracts from this directory instead of DATA_SOURCE",
    )
    return parser


def _to_json(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    return [row.model_dump(mode="json") for row in result]


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    args = _build_parser().parse_args(argv)
    func, arg_names = _REPORTS[args.report]

    try:
        if args.data_dir:
            set_dataset(load_dataset("csv", args.data_dir))
        result = func(*(getattr(args, name) for name in arg_names))
    except InvalidParameterError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    except ReportingError as exc:
        logger.error("%s failed: %s", args.report, exc)
        return 1

    print(json.dumps(_to_json(result), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
