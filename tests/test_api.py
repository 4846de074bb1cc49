"""
Tests for the FastAPI endpoints.

Uses fastapi.testclient.TestClient over the in-memory snapshot from
conftest.py, so no warehouse connection is needed.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from conftest import CROMA, make_dataset
from sales_reporting.errors import DataSourceError, MissingReferenceDataError
from sales_reporting.services import data_source


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture(scope="module")
def client():
    """TestClient with the shared snapshot replaced by the test dataset."""
    data_source.set_dataset(make_dataset())
    from sales_reporting.main import app

    yield TestClient(app)
    data_source.reset_dataset()


# ---------------------------------------------------------------------------
# Health check and dataset
# ---------------------------------------------------------------------------
class TestHealthCheck:
    """Tests for the /health endpoint."""

    def test_health_check(self, client):
        """GET /health should return 200 with a status field."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestDatasetSummary:
    """Tests for /api/v1/dataset."""

    def test_summary(self, client):
        response = client.get("/api/v1/dataset")
        assert response.status_code == 200

        data = response.json()
        assert data["sales_records"] == 9
        assert data["fiscal_years"] == [2020, 2021, 2022]


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------
class TestReports:
    """Tests for /api/v1/reports/*."""

    def test_monthly_gross_sales(self, client):
        response = client.get(
            "/api/v1/reports/monthly-gross-sales",
            params={"customer_code": CROMA, "fiscal_year": 2021},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["count"] == 3
        assert data["parameters"] == {"customer_code": CROMA, "fiscal_year": 2021}
        first = data["data"][0]
        assert first["date"] == "2020-09-01"
        assert first["gross_price_total"] == 2000000.0

    def test_monthly_gross_sales_summary(self, client):
        response = client.get(
            "/api/v1/reports/monthly-gross-sales/summary",
            params={"customer_code": CROMA, "fiscal_year": 2021},
        )
        assert response.status_code == 200
        assert [r["month"] for r in response.json()["data"]] == ["2020-09-01", "2021-03-01"]
        assert [r["fiscal_quarter"] for r in response.json()["data"]] == ["Q1", "Q3"]

    def test_top_markets(self, client):
        response = client.get(
            "/api/v1/reports/top-markets", params={"fiscal_year": 2021, "top_n": 2}
        )
        assert response.status_code == 200
        assert response.json()["data"] == [
            {"market": "India", "net_sales_mln": 4.68},
            {"market": "Germany", "net_sales_mln": 3.7},
        ]

    def test_top_customers(self, client):
        response = client.get(
            "/api/v1/reports/top-customers",
            params={"fiscal_year": 2021, "top_n": 5, "market": "India"},
        )
        assert response.status_code == 200
        assert [r["customer"] for r in response.json()["data"]] == ["Croma", "Amazon"]

    def test_top_products(self, client):
        response = client.get("/api/v1/reports/top-products", params={"fiscal_year": 2021})
        assert response.status_code == 200
        assert response.json()["data"][0] == {"product": "AQ Velocity", "net_sales_mln": 4.3}

    def test_top_products_by_division(self, client):
        response = client.get(
            "/api/v1/reports/top-products-by-division", params={"fiscal_year": 2021}
        )
        assert response.status_code == 200

        data = response.json()
        assert data["parameters"]["top_k"] == 3
        assert data["data"][0] == {
            "division": "P & A",
            "product": "AQ Master wired x1 Ms",
            "total_sold_quantity": 300000,
            "rank": 1,
        }

    def test_regional_share(self, client):
        response = client.get(
            "/api/v1/reports/regional-net-sales-share", params={"fiscal_year": 2021}
        )
        assert response.status_code == 200
        rows = response.json()["data"]
        na = [r for r in rows if r["region"] == "NA"]
        assert na == [
            {"region": "NA", "customer": "Atliq Exclusive",
             "net_sales_mln": 2.0, "pct_share": 100.0}
        ]

    def test_market_badge(self, client):
        response = client.get(
            "/api/v1/reports/market-badge", params={"market": "India", "fiscal_year": 2021}
        )
        assert response.status_code == 200
        assert response.json() == {
            "market": "India",
            "fiscal_year": 2021,
            "total_sold_quantity": 219000,
            "badge": "Silver",
        }

    def test_forecast_accuracy(self, client):
        response = client.get(
            "/api/v1/reports/forecast-accuracy", params={"fiscal_year": 2021}
        )
        assert response.status_code == 200
        first = response.json()["data"][0]
        assert first["forecast_accuracy"] == 100.0

    def test_empty_report_is_ok(self, client):
        response = client.get(
            "/api/v1/reports/top-markets", params={"fiscal_year": 2030}
        )
        assert response.status_code == 200
        assert response.json()["count"] == 0


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class TestErrors:
    """Error mapping at the HTTP boundary."""

    @pytest.mark.parametrize(
        "path, params",
        [
            ("/api/v1/reports/top-markets", {"fiscal_year": 0}),
            ("/api/v1/reports/top-markets", {"fiscal_year": 2021, "top_n": 0}),
            ("/api/v1/reports/monthly-gross-sales", {"customer_code": " ", "fiscal_year": 2021}),
            ("/api/v1/reports/market-badge", {"market": "", "fiscal_year": 2021}),
        ],
    )
    def test_invalid_parameter_is_400(self, client, path, params):
        response = client.get(path, params=params)
        assert response.status_code == 400
        assert "detail" in response.json()

    def test_non_integer_is_422(self, client):
        response = client.get("/api/v1/reports/top-markets", params={"fiscal_year": "abc"})
        assert response.status_code == 422

    def test_missing_reference_data_is_409(self, client):
        with patch("sales_reporting.services.queries.net_sales_for") as net_sales_for:
            net_sales_for.side_effect = MissingReferenceDataError(
                [("gross_price", "A0118150101", 2020)]
            )
            response = client.get(
                "/api/v1/reports/top-markets", params={"fiscal_year": 2020}
            )
        assert response.status_code == 409
        assert response.json()["missing"] == [
            {"kind": "gross_price", "code": "A0118150101", "fiscal_year": 2020}
        ]

    def test_data_source_error_is_503(self, client):
        with patch(
            "sales_reporting.services.queries.get_dataset",
            side_effect=DataSourceError("warehouse unavailable"),
        ):
            response = client.get(
                "/api/v1/reports/regional-net-sales-share", params={"fiscal_year": 2021}
            )
        assert response.status_code == 503
        assert "warehouse unavailable" in response.json()["detail"]

    def test_unexpected_error_is_500_json(self, client, caplog):
        from sales_reporting.main import app

        # The server-error middleware re-raises by default after responding.
        lenient = TestClient(app, raise_server_exceptions=False)
        with patch(
            "sales_reporting.routers.reports.queries.get_top_markets",
            side_effect=KeyError("India"),
        ):
            response = lenient.get(
                "/api/v1/reports/top-markets", params={"fiscal_year": 2021}
            )
        assert response.status_code == 500
        assert response.headers["content-type"] == "application/json"
        assert "KeyError" in response.json()["detail"]
        assert any(r.exc_info for r in caplog.records if r.name == "sales_reporting.main")
