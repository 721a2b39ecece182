"""Trip price calculation.

price = price_per_person * people
      + district surcharge (if the district is known)
      + each known additional service
      - discount (fixed amount, or a percentage of that whole subtotal)
clamped at zero.

Unknown district names and service ids are skipped, never an error.
A service is charged on any itinerary, `applicable_to` only filters the
public service list.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Optional

from .value_objects import AdditionalService, DiscountCode, DistrictSurcharge, Itinerary, PriceBreakdown

@dataclass(frozen=True)
class PriceCatalog:
    surcharges: Dict[str, DistrictSurcharge] = field(default_factory=dict)
    services: Dict[str, AdditionalService] = field(default_factory=dict)

    @staticmethod
    def of(surcharges: Iterable[DistrictSurcharge] = (), services: Iterable[AdditionalService] = ()) -> 'PriceCatalog':
        return PriceCatalog(
            surcharges={s.district_name: s for s in surcharges},
            services={s.service_id: s for s in services},
        )

EMPTY_CATALOG = PriceCatalog()

def price_breakdown(
    itinerary: Itinerary,
    number_of_people: int,
    district_name: Optional[str] = None,
    service_ids: Optional[Iterable[str]] = None,
    discount: Optional[DiscountCode] = None,
    catalog: PriceCatalog = EMPTY_CATALOG
) -> PriceBreakdown:
    base = itinerary.price_per_person * number_of_people

    surcharge = Decimal("0")
    if district_name and district_name in catalog.surcharges:
        surcharge = catalog.surcharges[district_name].surcharge_amount

    services_total = Decimal("0")
    applied = []
    for service_id in service_ids or ():
        service = catalog.services.get(service_id)
        if service:
            services_total += service.price
            applied.append(service_id)

    discount_amount = Decimal("0")
    if discount:
        discount_amount = discount.amount_off(base + surcharge + services_total)

    return PriceBreakdown(
        base=base,
        district_surcharge=surcharge,
        services=services_total,
        discount=discount_amount,
        applied_service_ids=tuple(applied),
        applied_discount_code=discount.code if discount else None,
    )

def calculate_price(
    itinerary: Itinerary,
    number_of_people: int,
    district_name: Optional[str] = None,
    service_ids: Optional[Iterable[str]] = None,
    discount: Optional[DiscountCode] = None,
    catalog: PriceCatalog = EMPTY_CATALOG
) -> Decimal:
    return price_breakdown(
        itinerary, number_of_people, district_name, service_ids, discount, catalog
    ).total
