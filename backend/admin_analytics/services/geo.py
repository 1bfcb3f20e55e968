from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from admin_analytics.services.normalize import read_path


class Region(str, Enum):
    LATAM = "LATAM"
    EU = "EU"
    APAC = "APAC"
    NA = "NA"
    MENA = "MENA"
    OTHER = "OTHER"


COUNTRY_FIELDS = (
    "countryCode",
    "country",
    "shippingAddress.countryCode",
    "shippingAddress.country",
    "billingAddress.countryCode",
    "billingAddress.country",
    "customerCountry",
)

REGIONS: dict[Region, frozenset[str]] = {
    Region.LATAM: frozenset(
        {"BR", "MX", "AR", "CL", "CO", "PE", "VE", "EC", "UY", "PY", "BO"}
    ),
    Region.EU: frozenset(
        {
            "GB", "DE", "FR", "ES", "IT", "NL", "SE", "NO",
            "PL", "CH", "AT", "BE", "DK", "FI", "IE", "PT",
        }
    ),
    Region.APAC: frozenset(
        {"CN", "JP", "KR", "IN", "AU", "SG", "TH", "VN", "ID", "MY", "PH", "NZ", "HK", "TW"}
    ),
    Region.NA: frozenset({"US", "CA"}),
    Region.MENA: frozenset(
        {"AE", "SA", "IL", "TR", "EG", "QA", "KW", "OM", "BH", "JO", "LB"}
    ),
}

COUNTRY_NAMES: dict[str, str] = {
    # LATAM
    "BR": "Brazil",
    "MX": "Mexico",
    "AR": "Argentina",
    "CL": "Chile",
    "CO": "Colombia",
    "PE": "Peru",
    "VE": "Venezuela",
    "EC": "Ecuador",
    # Europe
    "GB": "United Kingdom",
    "DE": "Germany",
    "FR": "France",
    "ES": "Spain",
    "IT": "Italy",
    "NL": "Netherlands",
    "SE": "Sweden",
    "NO": "Norway",
    "PL": "Poland",
    "CH": "Switzerland",
    # APAC
    "CN": "China",
    "JP": "Japan",
    "KR": "South Korea",
    "IN": "India",
    "AU": "Australia",
    "SG": "Singapore",
    "TH": "Thailand",
    "VN": "Vietnam",
    "ID": "Indonesia",
    "MY": "Malaysia",
    "PH": "Philippines",
    # North America
    "US": "United States",
    "CA": "Canada",
    # MENA
    "AE": "UAE",
    "SA": "Saudi Arabia",
    "IL": "Israel",
    "TR": "Turkey",
}

NAME_TO_CODE: dict[str, str] = {
    "United States": "US",
    "United States of America": "US",
    "USA": "US",
    "United Kingdom": "GB",
    "UK": "GB",
    "Brazil": "BR",
    "Brasil": "BR",
    "Mexico": "MX",
    "México": "MX",
    "Germany": "DE",
    "Deutschland": "DE",
    "France": "FR",
    "Spain": "ES",
    "España": "ES",
    "Italy": "IT",
    "Italia": "IT",
    "Canada": "CA",
    "Canadá": "CA",
    "Australia": "AU",
    "Japan": "JP",
    "China": "CN",
    "India": "IN",
    "Singapore": "SG",
    "Netherlands": "NL",
    "Argentina": "AR",
    "Chile": "CL",
    "Colombia": "CO",
    "Peru": "PE",
    "Perú": "PE",
}


def extract_country_code(data: Mapping[str, Any] | None) -> str:
    """Normalized country code for a record, or ``""`` when it carries none."""
    raw = ""
    for path in COUNTRY_FIELDS:
        value = read_path(data, path)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            raw = text
            break
    if not raw:
        return ""
    if len(raw) > 2:
        raw = NAME_TO_CODE.get(raw, raw)
    return raw.upper()


def region_of(code: str) -> Region:
    for region, codes in REGIONS.items():
        if code in codes:
            return region
    return Region.OTHER


def country_name_of(code: str) -> str:
    return COUNTRY_NAMES.get(code, code)
