from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

class ItineraryType(Enum):
    AIRPORT_PICKUP = "airport_pickup"
    AIRPORT_DROPOFF = "airport_dropoff"
    TOURISM = "tourism"

class DiscountType(Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"

@dataclass(frozen=True)
class Itinerary:
    itinerary_id: str
    name: str
    type: ItineraryType
    price_per_person: Decimal
    description: str = ""
    image_url: Optional[str] = None
    available_times: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.price_per_person < 0:
            raise ValueError("Price per person cannot be negative")
        # lists from JSON columns and request bodies are frozen into tuples
        object.__setattr__(self, 'available_times', tuple(self.available_times))

@dataclass(frozen=True)
class DistrictSurcharge:
    district_id: str
    district_name: str
    surcharge_amount: Decimal

    def __post_init__(self):
        if self.surcharge_amount < 0:
            raise ValueError("Surcharge amount cannot be negative")

@dataclass(frozen=True)
class AdditionalService:
    service_id: str
    name: str
    price: Decimal
    applicable_to: Tuple[ItineraryType, ...] = ()
    description: str = ""
    icon_name: Optional[str] = None

    def __post_init__(self):
        if self.price < 0:
            raise ValueError("Service price cannot be negative")
        object.__setattr__(self, 'applicable_to', tuple(self.applicable_to))

    def applies_to(self, itinerary_type: ItineraryType) -> bool:
        return itinerary_type in self.applicable_to

@dataclass(frozen=True)
class DiscountCode:
    discount_id: str
    code: str
    type: DiscountType
    value: Decimal
    is_active: bool = True
    description: str = ""
    usage_limit: Optional[int] = None
    used_count: int = 0
    expiry_date: Optional[date] = None

    def __post_init__(self):
        if self.value < 0:
            raise ValueError("Discount value cannot be negative")
        if self.type == DiscountType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        object.__setattr__(self, 'code', self.code.strip().upper())

    def is_expired(self, today: Optional[date] = None) -> bool:
        if self.expiry_date is None:
            return False
        return self.expiry_date < (today or date.today())

    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    def is_redeemable(self, today: Optional[date] = None) -> bool:
        return self.is_active and not self.is_expired(today) and not self.is_exhausted()

    def amount_off(self, subtotal: Decimal) -> Decimal:
        if self.type == DiscountType.FIXED:
            return self.value
        return subtotal * self.value / Decimal(100)

@dataclass(frozen=True)
class PriceBreakdown:
    base: Decimal
    district_surcharge: Decimal = Decimal("0")
    services: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    applied_service_ids: Tuple[str, ...] = field(default_factory=tuple)
    applied_discount_code: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return self.base + self.district_surcharge + self.services

    @property
    def total(self) -> Decimal:
        return max(Decimal("0"), self.subtotal - self.discount).quantize(Decimal("0.01"))
