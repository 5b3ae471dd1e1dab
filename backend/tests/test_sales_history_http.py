# backend/tests/test_sales_history_http.py
from __future__ import annotations

from datetime import date

import httpx
import pytest

from cma_engine.clients.sales_history import HttpSalesHistoryClient
from cma_engine.domain.cma_types import SubjectCriteria
from cma_engine.errors import SalesSourceError
from cma_engine.services.comparables_service import build_query

SUBJECT = SubjectCriteria(zip_code="48201", property_type="single_family", bedrooms=3, bathrooms=2.0, sqft=2000)


def _client(handler) -> HttpSalesHistoryClient:
    return HttpSalesHistoryClient(
        base_url="https://sales.test/v1",
        api_key="k-123",
        transport=httpx.MockTransport(handler),
    )


def test_find_sales_sends_filters_and_orders_result():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["key"] = request.headers.get("X-Api-Key")
        return httpx.Response(
            200,
            json={
                "sales": [
                    {"address": "a", "zipCode": "48201", "salePrice": 400000, "saleDate": "2024-01-01",
                     "bedrooms": 3, "bathrooms": 2, "sqft": 2000},
                    {"address": "b", "zip_code": "48201", "sale_price": 410000, "sale_date": "2024-05-01",
                     "bedrooms": 3, "bathrooms": 2, "square_feet": 2200},
                    {"address": "c", "zipCode": "48201", "salePrice": 420000, "saleDate": "2024-05-01",
                     "bedrooms": 3, "bathrooms": 2, "sqft": 2050, "yearBuilt": 2001},
                ]
            },
        )

    client = _client(handler)
    try:
        sales = client.find_sales(build_query(SUBJECT, 2, date(2024, 6, 30)))
    finally:
        client.close()

    assert seen["path"] == "/v1/sales/comparables"
    assert seen["key"] == "k-123"
    assert seen["params"]["zipCode"] == "48201"
    assert seen["params"]["minSqft"] == "1600"
    assert [s.address for s in sales] == ["c", "b"]
    assert sales[0].year_built == 2001


def test_http_errors_become_source_errors():
    client = _client(lambda request: httpx.Response(503, json={"error": "down"}))
    try:
        with pytest.raises(SalesSourceError):
            client.find_sales(build_query(SUBJECT, 6, date(2024, 6, 30)))
    finally:
        client.close()


def test_malformed_rows_become_source_errors():
    client = _client(lambda request: httpx.Response(200, json={"sales": [{"address": "x"}]}))
    try:
        with pytest.raises(SalesSourceError):
            client.find_sales(build_query(SUBJECT, 6, date(2024, 6, 30)))
    finally:
        client.close()


def test_quarterly_buckets_newest_first():
    payload = {
        "buckets": [
            {"year": 2023, "quarter": 4, "avgPrice": 300000, "medianPrice": 295000, "salesVolume": 8},
            {"year": 2024, "quarter": 1, "avg_price": 310000, "median_price": 305000, "sales_volume": 9,
             "avgDom": 24},
        ]
    }
    client = _client(lambda request: httpx.Response(200, json=payload))
    try:
        buckets = client.quarterly_buckets(
            zip_code="48201", property_type="single_family", since=date(2021, 6, 30), limit=12
        )
    finally:
        client.close()

    assert [b.period for b in buckets] == ["2024 Q1", "2023 Q4"]
    assert buckets[0].avg_days_on_market == 24.0
    assert buckets[1].avg_days_on_market is None


def test_sales_without_positive_price_or_sqft_are_dropped():
    payload = {
        "sales": [
            {"address": "free", "zipCode": "48201", "salePrice": 0, "saleDate": "2024-05-01",
             "bedrooms": 3, "bathrooms": 2, "sqft": 2000},
            {"address": "flat", "zipCode": "48201", "salePrice": 410000, "saleDate": "2024-05-01",
             "bedrooms": 3, "bathrooms": 2, "sqft": 0},
            {"address": "ok", "zipCode": "48201", "salePrice": 420000, "saleDate": "2024-04-01",
             "bedrooms": 3, "bathrooms": 2, "sqft": 2050},
        ]
    }
    client = _client(lambda request: httpx.Response(200, json=payload))
    try:
        sales = client.find_sales(build_query(SUBJECT, 6, date(2024, 6, 30)))
    finally:
        client.close()

    assert [s.address for s in sales] == ["ok"]
    assert sales[0].price_per_sqft > 0
