from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from rideshare.catalog.value_objects import Itinerary, ItineraryType
from rideshare.errors import DomainError

class TripStatus(Enum):
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_CONFIRMED = "payment_confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

PAID_STATUSES = frozenset({TripStatus.PAYMENT_CONFIRMED, TripStatus.COMPLETED})

@dataclass(frozen=True)
class ItinerarySnapshot:
    """Itinerary fields copied onto a trip when it is booked."""
    itinerary_id: str
    name: str
    type: ItineraryType

    @staticmethod
    def of(itinerary: Itinerary) -> 'ItinerarySnapshot':
        return ItinerarySnapshot(itinerary.itinerary_id, itinerary.name, itinerary.type)

@dataclass(frozen=True)
class PaymentConfirmation:
    admin_id: str
    admin_username: str
    confirmed_at: datetime

@dataclass(frozen=True)
class DeletionMark:
    deleted_by: str
    deleted_at: datetime

@dataclass(frozen=True)
class TripComment:
    comment_id: str
    username: str
    comment: str
    created_at: datetime

    def __post_init__(self):
        if not self.comment or not self.comment.strip():
            raise DomainError("Comment cannot be empty.")
