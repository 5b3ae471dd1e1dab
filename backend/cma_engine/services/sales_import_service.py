# backend/cma_engine/services/sales_import_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.importers.base import fingerprint, parse_csv_bytes
from ..domain.importers.sales import normalize_sale
from ..models import PropertySale

log = logging.getLogger(__name__)


@dataclass
class ImportResult:
    source: str
    imported: int = 0
    skipped_duplicates: int = 0
    errors: list[tuple[int, str]] = field(default_factory=list)


def import_sales_csv(db: Session, data: bytes, *, source: str = "csv") -> ImportResult:
    """
    Load sold-property rows into property_sales.

    Rows are deduplicated on (source, address, zip, sale date, price); bad rows
    are reported by 1-based data row number and skipped.
    """
    result = ImportResult(source=source)
    seen: set[str] = set()

    for i, row in enumerate(parse_csv_bytes(data), start=1):
        try:
            n = normalize_sale(row)
        except ValueError as e:
            result.errors.append((i, str(e)))
            continue

        fp = fingerprint(source, n.address, n.zip_code, n.sale_date, n.sale_price)
        if fp in seen or db.scalar(select(PropertySale.id).where(PropertySale.fingerprint == fp)):
            result.skipped_duplicates += 1
            continue
        seen.add(fp)

        db.add(
            PropertySale(
                address=n.address,
                city=n.city,
                state=n.state,
                zip_code=n.zip_code,
                property_type=n.property_type,
                sale_price=n.sale_price,
                sale_date=n.sale_date,
                bedrooms=n.bedrooms,
                bathrooms=n.bathrooms,
                square_feet=n.square_feet,
                year_built=n.year_built,
                lot_size=n.lot_size,
                days_on_market=n.days_on_market,
                image_url=n.image_url,
                source=source,
                fingerprint=fp,
            )
        )
        result.imported += 1

    db.commit()
    log.info(
        "sales import done source=%s imported=%s duplicates=%s errors=%s",
        source,
        result.imported,
        result.skipped_duplicates,
        len(result.errors),
    )
    return result
