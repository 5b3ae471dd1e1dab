# backend/cma_engine/domain/importers/sales.py
from __future__ import annotations

from .base import NormalizedSale, optional_date, optional_float, optional_int, required


def normalize_sale(row: dict[str, str]) -> NormalizedSale:
    """
    Normalize one sold-property export row.

    Accepts the common MLS/public-record header spellings:
      - Address / Street Address, City, State, Zip / Postal Code
      - Sale Price / Sold Price, Sale Date / Sold Date / Close Date
      - Bedrooms, Bathrooms, Square Feet / Living Area / SqFt
      - Property Type, Year Built, Lot Size, Days on Market / DOM

    Raises ValueError when a field the comparables query filters on is missing.
    """
    address = required(row, "Address", "Street Address", "Street address", "Street")
    city = required(row, "City")
    state = required(row, "State", "ST")
    zip_code = required(row, "Zip", "ZIP", "Zip Code", "Postal Code", "zip_code")
    property_type = required(row, "Property Type", "Property type", "Type", "property_type")

    sale_price = optional_int(row, "Sale Price", "Sold Price", "Close Price", "sale_price")
    sale_date = optional_date(row, "Sale Date", "Sold Date", "Close Date", "sale_date")

    beds = optional_int(row, "Bedrooms", "Beds", "Bed")
    baths = optional_float(row, "Bathrooms", "Baths", "Bath")
    sqft = optional_int(row, "Square Feet", "Living Area", "Living area", "SqFt", "sqft")

    missing = [
        name
        for name, value in (
            ("address", address),
            ("zip", zip_code),
            ("property_type", property_type),
            ("sale_price", sale_price),
            ("sale_date", sale_date),
            ("bedrooms", beds),
            ("bathrooms", baths),
            ("square_feet", sqft),
        )
        if value in (None, "")
    ]
    if missing:
        raise ValueError(f"missing required fields: {', '.join(missing)}")
    if sale_price <= 0 or sqft <= 0:
        raise ValueError("sale_price and square_feet must be positive")

    return NormalizedSale(
        address=address,
        city=city,
        state=state[:2].upper(),
        zip_code=zip_code,
        property_type=property_type,
        sale_price=int(sale_price),
        sale_date=sale_date,
        bedrooms=int(beds),
        bathrooms=float(baths),
        square_feet=int(sqft),
        year_built=optional_int(row, "Year Built", "YearBuilt", "year_built"),
        lot_size=optional_int(row, "Lot Size", "Lot SqFt", "lot_size"),
        days_on_market=optional_int(row, "Days on Market", "DOM", "days_on_market"),
        image_url=required(row, "Image URL", "Photo URL", "image_url") or None,
        raw=dict(row),
    )
