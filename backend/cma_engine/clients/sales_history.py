from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Protocol

import httpx

from ..config import Settings, settings
from ..domain.cma_types import ComparableQuery, QuarterBucket, SaleRecord
from ..errors import SalesSourceError

log = logging.getLogger(__name__)


class SalesHistorySource(Protocol):
    """
    Read-only access to recorded property sales.

    Implementations raise SalesSourceError for anything that prevents an
    answer (connection, timeout, malformed payload). An empty list means the
    source answered and had nothing.
    """

    def find_sales(self, query: ComparableQuery) -> list[SaleRecord]: ...

    def quarterly_buckets(
        self,
        *,
        zip_code: str,
        property_type: str,
        since: date,
        limit: int,
    ) -> list[QuarterBucket]: ...

    def close(self) -> None: ...


def _pick(row: dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in row and row[k] is not None:
            return row[k]
    return None


def _opt_int(x: Any) -> Optional[int]:
    if x is None or x == "":
        return None
    return int(float(x))


def _opt_float(x: Any) -> Optional[float]:
    if x is None or x == "":
        return None
    return float(x)


def _parse_date(x: Any) -> date:
    if isinstance(x, date):
        return x
    return date.fromisoformat(str(x)[:10])


def parse_sale_row(row: dict[str, Any]) -> SaleRecord:
    return SaleRecord(
        address=str(_pick(row, "address") or ""),
        city=str(_pick(row, "city") or ""),
        state=str(_pick(row, "state") or ""),
        zip_code=str(_pick(row, "zipCode", "zip_code", "postal_code") or ""),
        sale_price=int(float(_pick(row, "salePrice", "sale_price"))),
        sale_date=_parse_date(_pick(row, "saleDate", "sale_date")),
        bedrooms=int(float(_pick(row, "bedrooms"))),
        bathrooms=float(_pick(row, "bathrooms")),
        sqft=int(float(_pick(row, "sqft", "squareFeet", "square_feet"))),
        year_built=_opt_int(_pick(row, "yearBuilt", "year_built")),
        lot_size=_opt_int(_pick(row, "lotSize", "lot_size")),
        distance_from_subject=float(_pick(row, "distanceFromSubject", "distance_miles") or 0.0),
        image_url=_pick(row, "imageUrl", "image_url"),
    )


def parse_bucket_row(row: dict[str, Any]) -> QuarterBucket:
    return QuarterBucket(
        year=int(_pick(row, "year")),
        quarter=int(_pick(row, "quarter")),
        avg_price=float(_pick(row, "avgPrice", "avg_price")),
        median_price=float(_pick(row, "medianPrice", "median_price")),
        sales_volume=int(_pick(row, "salesVolume", "sales_volume")),
        avg_days_on_market=_opt_float(_pick(row, "avgDom", "avg_dom", "avgDaysOnMarket")),
    )


class HttpSalesHistoryClient:
    """
    Sales-data API client.

    One httpx.Client per instance; whoever builds the instance calls close().
    Every request is bounded by timeout_s.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        timeout_s: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base = base_url.rstrip("/")
        self.api_key = api_key
        headers = {"X-Api-Key": api_key} if api_key else {}
        self._client = httpx.Client(
            base_url=self.base,
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    def _get_rows(self, path: str, params: dict[str, Any], key: str) -> list[dict[str, Any]]:
        try:
            r = self._client.get(path, params=params)
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SalesSourceError(f"sales source request failed: {path}: {e}") from e

        rows = data.get(key) if isinstance(data, dict) else data
        if not isinstance(rows, list):
            raise SalesSourceError(f"sales source returned unexpected payload for {path}")
        return [x for x in rows if isinstance(x, dict)]

    def find_sales(self, query: ComparableQuery) -> list[SaleRecord]:
        params = {
            "zipCode": query.zip_code,
            "propertyType": query.property_type,
            "minBeds": query.min_bedrooms,
            "maxBeds": query.max_bedrooms,
            "minBaths": query.min_bathrooms,
            "maxBaths": query.max_bathrooms,
            "minSqft": query.min_sqft,
            "maxSqft": query.max_sqft,
            "sqft": query.subject_sqft,
            "soldSince": query.sold_since.isoformat(),
            "limit": query.limit,
        }
        rows = self._get_rows("/sales/comparables", params, "sales")
        try:
            parsed = [parse_sale_row(r) for r in rows]
        except (TypeError, ValueError) as e:
            raise SalesSourceError(f"malformed sale row: {e}") from e

        # price_per_sqft and the adjustment are meaningless without both
        sales = [s for s in parsed if s.sale_price > 0 and s.sqft > 0]
        if len(sales) < len(parsed):
            log.warning("dropped %s sales with non-positive price or sqft", len(parsed) - len(sales))

        # the API is asked to order and limit; enforce it anyway
        sales.sort(key=lambda s: (-s.sale_date.toordinal(), abs(s.sqft - query.subject_sqft)))
        return sales[: query.limit]

    def quarterly_buckets(
        self,
        *,
        zip_code: str,
        property_type: str,
        since: date,
        limit: int,
    ) -> list[QuarterBucket]:
        params = {
            "zipCode": zip_code,
            "propertyType": property_type,
            "since": since.isoformat(),
            "limit": limit,
        }
        rows = self._get_rows("/sales/quarterly-trends", params, "buckets")
        try:
            buckets = [parse_bucket_row(r) for r in rows]
        except (TypeError, ValueError) as e:
            raise SalesSourceError(f"malformed trend row: {e}") from e
        buckets.sort(key=lambda b: b.sort_key, reverse=True)
        return buckets[:limit]

    def close(self) -> None:
        self._client.close()


def build_sales_source(cfg: Settings = settings) -> SalesHistorySource:
    if cfg.sales_source == "http":
        log.info("sales source: http %s", cfg.sales_source_base_url)
        return HttpSalesHistoryClient(
            base_url=cfg.sales_source_base_url,
            api_key=cfg.sales_source_api_key,
            timeout_s=cfg.sales_source_timeout_seconds,
        )

    from .sales_history_db import DbSalesHistorySource

    log.info("sales source: database")
    return DbSalesHistorySource()
