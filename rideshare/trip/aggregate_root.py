from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4

from rideshare.catalog.value_objects import ItineraryType
from rideshare.errors import DomainError, NotFoundError, StateConflictError
from .entities import Participant
from .value_objects import DeletionMark, ItinerarySnapshot, PAID_STATUSES, TripComment, TripStatus

def derive_overall_status(trip: 'Trip', today: Optional[date] = None) -> TripStatus:
    """Aggregate payment state across the creator and every joiner.

    Cancelled joiners have withdrawn and do not hold the trip back; a
    cancelled creator cancels the trip.
    """
    today = today or date.today()
    if trip.creator.status == TripStatus.CANCELLED:
        return TripStatus.CANCELLED

    active = [p for p in trip.payers() if p.status != TripStatus.CANCELLED]
    if all(p.status in PAID_STATUSES for p in active):
        if trip.date < today:
            return TripStatus.COMPLETED
        return TripStatus.PAYMENT_CONFIRMED
    return TripStatus.PENDING_PAYMENT

class Trip:
    def __init__(
        self,
        trip_id: str,
        itinerary: ItinerarySnapshot,
        trip_date: date,
        trip_time: str,
        creator: Participant,
        pickup_address: Optional[str] = None,
        dropoff_address: Optional[str] = None,
        secondary_contact: Optional[str] = None,
        district: Optional[str] = None,
        created_at: Optional[datetime] = None
    ):
        self.trip_id = trip_id
        self.itinerary = itinerary
        self.date = trip_date
        self.time = trip_time
        self.creator = creator
        self.creator.is_main_booker = True
        self.pickup_address = pickup_address
        self.dropoff_address = dropoff_address
        self.secondary_contact = secondary_contact
        self.district = district
        self.created_at = created_at or datetime.now()
        self.participants: List[Participant] = []
        self.comments: List[TripComment] = []
        self.deletion: Optional[DeletionMark] = None

    @staticmethod
    def create_trip(
        trip_id: str,
        itinerary: ItinerarySnapshot,
        trip_date: date,
        trip_time: str,
        creator: Participant,
        pickup_address: Optional[str] = None,
        dropoff_address: Optional[str] = None,
        secondary_contact: Optional[str] = None,
        district: Optional[str] = None
    ) -> 'Trip':
        # the airport end of the ride is fixed, the city end must be given
        if itinerary.type == ItineraryType.AIRPORT_PICKUP and not dropoff_address:
            raise DomainError("Dropoff address is required for airport pickups.")
        if itinerary.type in (ItineraryType.AIRPORT_DROPOFF, ItineraryType.TOURISM) and not pickup_address:
            raise DomainError("Pickup address is required for this itinerary type.")

        if creator.address is None:
            creator.address = dropoff_address if itinerary.type == ItineraryType.AIRPORT_PICKUP else pickup_address

        return Trip(
            trip_id, itinerary, trip_date, trip_time, creator,
            pickup_address=pickup_address,
            dropoff_address=dropoff_address,
            secondary_contact=secondary_contact,
            district=district
        )

    # ------------------------------------------------------------------
    # Creator booking, mirrored at trip level
    # ------------------------------------------------------------------

    @property
    def status(self) -> TripStatus:
        return self.creator.status

    @property
    def total_price(self) -> Decimal:
        return self.creator.price_paid

    @property
    def number_of_people(self) -> int:
        return self.creator.number_of_people

    @property
    def contact_name(self) -> str:
        return self.creator.name

    @property
    def contact_phone(self) -> str:
        return self.creator.phone

    @property
    def is_deleted(self) -> bool:
        return self.deletion is not None

    def payers(self) -> List[Participant]:
        return [self.creator] + self.participants

    def total_people(self) -> int:
        return sum(p.number_of_people for p in self.payers() if p.status != TripStatus.CANCELLED)

    def find_payer(self, participant_id: Optional[str] = None) -> Participant:
        """Return the creator when no id is given, otherwise the matching payer."""
        if not participant_id:
            return self.creator
        for payer in self.payers():
            if payer.participant_id == participant_id:
                return payer
        raise NotFoundError("Participant not found.")

    def involves_phone(self, phone: str) -> bool:
        return any(p.phone == phone for p in self.payers())

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def overall_status(self, today: Optional[date] = None) -> TripStatus:
        return derive_overall_status(self, today)

    def is_joinable(self, today: Optional[date] = None) -> bool:
        return not self.is_deleted and self.overall_status(today) == TripStatus.PAYMENT_CONFIRMED

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_participant(self, participant: Participant, today: Optional[date] = None) -> None:
        if self.is_deleted:
            raise NotFoundError("Trip not found or no longer available.")
        if not self.is_joinable(today):
            raise StateConflictError("This trip is not confirmed for joining.")
        if any(p.participant_id == participant.participant_id for p in self.payers()):
            raise StateConflictError("Participant already belongs to this trip.")

        participant.is_main_booker = False
        self.participants.append(participant)

    def upload_proof(self, participant_id: Optional[str], image_url: str) -> Participant:
        payer = self.find_payer(participant_id)
        payer.attach_proof(image_url)
        return payer

    def confirm_payment(self, participant_id: Optional[str], admin_id: str, admin_username: str) -> Participant:
        payer = self.find_payer(participant_id)
        payer.confirm_payment(admin_id, admin_username)
        return payer

    def revert_payment(self, participant_id: Optional[str]) -> Participant:
        payer = self.find_payer(participant_id)
        payer.revert_payment()
        return payer

    def cancel_payment(self, participant_id: Optional[str]) -> Participant:
        payer = self.find_payer(participant_id)
        payer.cancel()
        return payer

    def complete_if_elapsed(self, today: Optional[date] = None) -> bool:
        """Persistently mark paid payers completed once the trip is over."""
        if self.overall_status(today) != TripStatus.COMPLETED:
            return False
        changed = False
        for payer in self.payers():
            if payer.status == TripStatus.PAYMENT_CONFIRMED:
                payer.mark_completed()
                changed = True
        return changed

    def soft_delete(self, deleted_by: str, deleted_at: Optional[datetime] = None) -> None:
        if self.is_deleted:
            raise StateConflictError("Trip is already deleted.")
        self.deletion = DeletionMark(deleted_by, deleted_at or datetime.now())

    def add_comment(self, username: str, comment: str) -> TripComment:
        new_comment = TripComment(str(uuid4()), username, (comment or "").strip(), datetime.now())
        self.comments.append(new_comment)
        return new_comment
