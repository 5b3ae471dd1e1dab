# backend/tests/test_sales_import.py
from __future__ import annotations

from datetime import date

import pytest

from cma_engine.domain.importers.sales import normalize_sale
from cma_engine.models import PropertySale
from cma_engine.services.sales_import_service import import_sales_csv

CSV = b"""Street Address,City,State,Zip Code,Property Type,Sold Price,Sold Date,Beds,Baths,Living Area,Year Built,DOM
12 Cass Ave,Detroit,Michigan,48201,single_family,"$412,000",03/15/2024,3,2,1850,1998,21
40 Brush St,Detroit,MI,48201,single_family,455000,2024-04-02,4,2.5,2100,,
12 Cass Ave,Detroit,MI,48201,single_family,412000,2024-03-15,3,2,1850,1998,21
99 Nowhere Rd,Detroit,MI,48201,single_family,,2024-04-02,3,2,1500,,
"""


def test_normalize_accepts_common_headers():
    n = normalize_sale(
        {
            "Address": "1 Main St",
            "City": "Detroit",
            "State": "mi",
            "Zip": "48201",
            "Property Type": "condo",
            "Sale Price": "$250,000",
            "Close Date": "2024-01-31T00:00:00",
            "Bedrooms": "2",
            "Bathrooms": "1.5",
            "SqFt": "1,100",
        }
    )
    assert n.sale_price == 250_000
    assert n.sale_date == date(2024, 1, 31)
    assert n.state == "MI"
    assert n.bathrooms == 1.5
    assert n.square_feet == 1100
    assert n.year_built is None


def test_normalize_reports_missing_fields():
    with pytest.raises(ValueError, match="sale_price"):
        normalize_sale({"Address": "1 Main St", "Zip": "48201", "Property Type": "condo"})


def test_import_dedupes_and_reports_bad_rows(db):
    result = import_sales_csv(db, CSV, source="mls")

    assert result.imported == 2
    assert result.skipped_duplicates == 1
    assert [row for row, _ in result.errors] == [4]

    rows = db.query(PropertySale).order_by(PropertySale.sale_date).all()
    assert [r.address for r in rows] == ["12 Cass Ave", "40 Brush St"]
    assert rows[0].state == "MI"
    assert rows[0].days_on_market == 21
    assert rows[1].bathrooms == 2.5

    again = import_sales_csv(db, CSV, source="mls")
    assert again.imported == 0
    assert again.skipped_duplicates == 3
