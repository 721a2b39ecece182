from datetime import date, timedelta
from decimal import Decimal

import pytest

from rideshare.catalog.pricing import PriceCatalog, calculate_price, price_breakdown
from rideshare.catalog.value_objects import (
    AdditionalService, DiscountCode, DiscountType, DistrictSurcharge, Itinerary, ItineraryType
)

ITINERARY = Itinerary("i1", "Airport Pickup", ItineraryType.AIRPORT_PICKUP, Decimal("500000"))
CATALOG = PriceCatalog.of(
    surcharges=[DistrictSurcharge("d1", "Kuta", Decimal("50000"))],
    services=[AdditionalService("s1", "Extra Luggage", Decimal("100000"))],
)

def _fixed(value):
    return DiscountCode("dc1", "FIXED", DiscountType.FIXED, Decimal(value))

def _percent(value):
    return DiscountCode("dc2", "PCT", DiscountType.PERCENTAGE, Decimal(value))

def test_base_price_only():
    assert calculate_price(ITINERARY, 2) == Decimal("1000000")

def test_surcharge_and_service():
    assert calculate_price(ITINERARY, 2, "Kuta", ["s1"], catalog=CATALOG) == Decimal("1150000")

def test_fixed_discount():
    price = calculate_price(ITINERARY, 2, "Kuta", ["s1"], _fixed("200000"), catalog=CATALOG)
    assert price == Decimal("950000")

def test_percentage_discount_uses_full_subtotal():
    price = calculate_price(ITINERARY, 2, "Kuta", ["s1"], _percent("10"), catalog=CATALOG)
    assert price == Decimal("1035000")

def test_discount_larger_than_subtotal_clamps_to_zero():
    price = calculate_price(ITINERARY, 2, "Kuta", ["s1"], _fixed("2000000"), catalog=CATALOG)
    assert price == Decimal("0")

def test_service_priced_regardless_of_applicable_types():
    tour = Itinerary("i2", "City Tour", ItineraryType.TOURISM, Decimal("250000"))
    airport_only = PriceCatalog.of(services=[
        AdditionalService("s1", "Extra Luggage", Decimal("100000"), applicable_to=[ItineraryType.AIRPORT_PICKUP]),
    ])
    breakdown = price_breakdown(tour, 1, service_ids=["s1"], catalog=airport_only)
    assert breakdown.applied_service_ids == ("s1",)
    assert breakdown.total == Decimal("350000")

def test_full_percentage_discount_is_free():
    assert calculate_price(ITINERARY, 3, discount=_percent("100")) == Decimal("0")

@pytest.mark.parametrize("value", ["0", "12.5", "33", "99"])
def test_percentage_matches_formula(value):
    subtotal = Decimal("1150000")
    expected = (subtotal * (1 - Decimal(value) / 100)).quantize(Decimal("0.01"))
    assert calculate_price(ITINERARY, 2, "Kuta", ["s1"], _percent(value), catalog=CATALOG) == expected

def test_unknown_district_and_service_are_ignored():
    breakdown = price_breakdown(ITINERARY, 1, "Atlantis", ["s1", "nope"], catalog=CATALOG)
    assert breakdown.district_surcharge == Decimal("0")
    assert breakdown.applied_service_ids == ("s1",)
    assert breakdown.total == Decimal("600000")

def test_breakdown_reports_each_line():
    breakdown = price_breakdown(ITINERARY, 2, "Kuta", ["s1"], _percent("10"), catalog=CATALOG)
    assert breakdown.base == Decimal("1000000")
    assert breakdown.subtotal == Decimal("1150000")
    assert breakdown.discount == Decimal("115000")
    assert breakdown.applied_discount_code == "PCT"

def test_itinerary_rejects_negative_price():
    with pytest.raises(ValueError):
        Itinerary("i2", "Bad", ItineraryType.TOURISM, Decimal("-1"))

def test_discount_code_normalized_and_bounded():
    assert DiscountCode("x", " summer ", DiscountType.FIXED, Decimal("5")).code == "SUMMER"
    with pytest.raises(ValueError):
        _percent("101")
    with pytest.raises(ValueError):
        _fixed("-5")

def test_discount_redeemable_rules():
    today = date(2026, 5, 1)
    active = DiscountCode("a", "A", DiscountType.FIXED, Decimal("1"), expiry_date=today)
    assert active.is_redeemable(today)
    assert not active.is_redeemable(today + timedelta(days=1))

    inactive = DiscountCode("b", "B", DiscountType.FIXED, Decimal("1"), is_active=False)
    assert not inactive.is_redeemable(today)

    used_up = DiscountCode("c", "C", DiscountType.FIXED, Decimal("1"), usage_limit=3, used_count=3)
    assert used_up.is_exhausted()
    assert not used_up.is_redeemable(today)

def test_service_applicability():
    service = AdditionalService("s2", "Guide", Decimal("1"), applicable_to=[ItineraryType.TOURISM])
    assert service.applies_to(ItineraryType.TOURISM)
    assert not service.applies_to(ItineraryType.AIRPORT_PICKUP)
