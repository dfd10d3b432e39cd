"""Merchant category code (ISO 18245) descriptions used to name classification codes.

The table covers the codes that show up on everyday card activity. Unknown
codes resolve to ``None`` and the category resolver falls back to
"Unknown Category".
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path

MCC_DESCRIPTIONS: Mapping[str, str] = {
    "4111": "Commuter Transport, Ferries",
    "4121": "Taxicabs/Limousines",
    "4131": "Bus Lines",
    "4511": "Airlines, Air Carriers",
    "4784": "Tolls/Bridge Fees",
    "4789": "Transportation Services",
    "4812": "Telecommunication Equipment and Telephone Sales",
    "4814": "Telecommunication Services",
    "4899": "Cable, Satellite, and Other Pay Television and Radio",
    "4900": "Utilities",
    "5021": "Office and Commercial Furniture",
    "5200": "Home Supply Warehouse Stores",
    "5251": "Hardware Stores",
    "5300": "Wholesale Clubs",
    "5311": "Department Stores",
    "5411": "Grocery Stores, Supermarkets",
    "5441": "Candy, Nut, and Confectionery Stores",
    "5462": "Bakeries",
    "5499": "Miscellaneous Food Stores",
    "5541": "Service Stations",
    "5542": "Automated Fuel Dispensers",
    "5651": "Family Clothing Stores",
    "5691": "Men's and Women's Clothing Stores",
    "5712": "Furniture, Home Furnishings, and Equipment Stores",
    "5732": "Electronics Stores",
    "5734": "Computer Software Stores",
    "5812": "Eating Places, Restaurants",
    "5813": "Drinking Places (Alcoholic Beverages)",
    "5814": "Fast Food Restaurants",
    "5815": "Digital Goods Media",
    "5816": "Digital Goods Games",
    "5817": "Digital Goods Applications",
    "5818": "Digital Goods Large Digital Goods Merchant",
    "5912": "Drug Stores and Pharmacies",
    "5942": "Book Stores",
    "5945": "Hobby, Toy, and Game Shops",
    "5964": "Direct Marketing - Catalog Merchant",
    "5983": "Fuel Dealers",
    "5999": "Miscellaneous and Specialty Retail Stores",
    "6011": "Automated Cash Disburse",
    "6300": "Insurance Underwriting, Premiums",
    "7011": "Hotels, Motels, and Resorts",
    "7230": "Barber and Beauty Shops",
    "7298": "Health and Beauty Spas",
    "7372": "Computer Programming",
    "7523": "Parking Lots, Garages",
    "7832": "Motion Picture Theaters",
    "7997": "Membership Clubs (Sports, Recreation, Athletic)",
    "8011": "Doctors",
    "8021": "Dentists, Orthodontists",
    "8062": "Hospitals",
    "8099": "Medical Services",
    "8220": "Colleges, Universities",
    "8398": "Charitable and Social Service Organizations",
    "9311": "Tax Payments",
    "9399": "Government Services",
}


def load_mcc_table(path: Path) -> dict[str, str]:
    """Load extra descriptions from a JSON list of ``{"mcc": ..., "description": ...}``."""

    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"MCC table must be a JSON list: {path}")
    table: dict[str, str] = {}
    for entry in data:
        code = str(entry.get("mcc") or "").strip()
        desc = str(entry.get("description") or "").strip()
        if code and desc:
            table[code] = desc
    return table


def describe_mcc(code: str | None, table: Mapping[str, str] | None = None) -> str | None:
    if not code:
        return None
    lookup = MCC_DESCRIPTIONS if table is None else table
    return lookup.get(code.strip())


__all__ = ["MCC_DESCRIPTIONS", "describe_mcc", "load_mcc_table"]
