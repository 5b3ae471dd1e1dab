# backend/cma_engine/domain/importers/base.py
from __future__ import annotations

import csv
import hashlib
from dataclasses import dataclass
from datetime import date, datetime
from io import StringIO
from typing import Any, Optional


def _clean_str(x: Any) -> str:
    return (str(x).strip() if x is not None else "").strip()


def _to_float(x: Any) -> Optional[float]:
    s = _clean_str(x).replace("$", "").replace(",", "")
    if not s:
        return None
    try:
        return float(s)
    except ValueError:
        return None


def _to_int(x: Any) -> Optional[int]:
    f = _to_float(x)
    return int(f) if f is not None else None


_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%Y/%m/%d", "%m/%d/%y")


def _to_date(x: Any) -> Optional[date]:
    s = _clean_str(x)
    if not s:
        return None
    s = s[:10] if "T" in s else s
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def fingerprint(source: str, address: str, zip_code: str, sale_date: date, sale_price: int) -> str:
    key = f"{source}|{address.lower()}|{zip_code}|{sale_date.isoformat()}|{int(sale_price)}"
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


@dataclass
class NormalizedSale:
    address: str
    city: str
    state: str
    zip_code: str
    property_type: str

    sale_price: int
    sale_date: date

    bedrooms: int
    bathrooms: float
    square_feet: int
    year_built: Optional[int]
    lot_size: Optional[int]
    days_on_market: Optional[int]
    image_url: Optional[str]

    raw: dict[str, Any]


def parse_csv_bytes(data: bytes) -> list[dict[str, str]]:
    text = data.decode("utf-8-sig", errors="replace")
    reader = csv.DictReader(StringIO(text))
    out: list[dict[str, str]] = []
    for row in reader:
        out.append({(k or "").strip(): (v or "").strip() for k, v in row.items()})
    return out


def _get_ci(row: dict[str, str], key: str) -> Optional[str]:
    if key in row:
        return row.get(key)
    key_cf = key.casefold()
    for k, v in row.items():
        if (k or "").casefold() == key_cf:
            return v
    return None


def required(row: dict[str, str], *keys: str) -> str:
    for k in keys:
        v = _get_ci(row, k)
        if v is not None and str(v).strip():
            return str(v).strip()
    return ""


def optional_float(row: dict[str, str], *keys: str) -> Optional[float]:
    for k in keys:
        f = _to_float(_get_ci(row, k))
        if f is not None:
            return f
    return None


def optional_int(row: dict[str, str], *keys: str) -> Optional[int]:
    for k in keys:
        i = _to_int(_get_ci(row, k))
        if i is not None:
            return i
    return None


def optional_date(row: dict[str, str], *keys: str) -> Optional[date]:
    for k in keys:
        d = _to_date(_get_ci(row, k))
        if d is not None:
            return d
    return None
