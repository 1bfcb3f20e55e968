from itertools import combinations

from admin_analytics.services.geo import (
    COUNTRY_NAMES,
    REGIONS,
    Region,
    country_name_of,
    extract_country_code,
    region_of,
)


def test_regions_are_disjoint() -> None:
    for left, right in combinations(REGIONS.values(), 2):
        assert not left & right


def test_named_countries_map_to_one_region() -> None:
    assert region_of("BR") is Region.LATAM
    assert region_of("DE") is Region.EU
    assert region_of("SG") is Region.APAC
    assert region_of("US") is Region.NA
    assert region_of("AE") is Region.MENA
    assert region_of("ZZ") is Region.OTHER
    assert all(region_of(code) is not Region.OTHER for code in COUNTRY_NAMES)


def test_country_code_field_wins_over_name() -> None:
    data = {"country": "Germany", "countryCode": "br"}

    assert extract_country_code(data) == "BR"


def test_country_name_is_mapped_to_code() -> None:
    assert extract_country_code({"country": "Brasil"}) == "BR"
    assert extract_country_code({"country": "United States of America"}) == "US"


def test_nested_address_fields_are_probed_in_order() -> None:
    data = {
        "countryCode": "  ",
        "shippingAddress": {"country": "Mexico"},
        "billingAddress": {"countryCode": "CA"},
    }

    assert extract_country_code(data) == "MX"
    assert extract_country_code({"customerCountry": "jp"}) == "JP"


def test_unknown_name_is_uppercased() -> None:
    assert extract_country_code({"country": "Atlantis"}) == "ATLANTIS"


def test_missing_country_yields_empty_code() -> None:
    assert extract_country_code({"email": "a@example.com"}) == ""
    assert extract_country_code(None) == ""


def test_country_name_falls_back_to_code() -> None:
    assert country_name_of("GB") == "United Kingdom"
    assert country_name_of("ZZ") == "ZZ"
