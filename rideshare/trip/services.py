"""Trip booking and payment operations.

Every mutating operation is wrapped in `@action` and returns an
`ActionResult`; none of them raise. Reads return domain objects or views
and are allowed to return empty results.
"""
import logging
import math
from datetime import date
from typing import List, Optional, Tuple, Union
from uuid import uuid4

from rideshare.auth import AdminUser
from rideshare.catalog.pricing import PriceCatalog, calculate_price
from rideshare.catalog.value_objects import DiscountCode
from rideshare.config import Config
from rideshare.errors import ActionResult, NotFoundError, PermissionDeniedError, action
from rideshare.storage import (
    AdditionalServiceStorage, DiscountCodeStorage, DistrictSurchargeStorage,
    ItineraryStorage, TripStorage
)
from .aggregate_root import Trip
from .entities import Participant
from .schemas import CreateTripRequest, JoinTripRequest, ParticipantView
from .value_objects import ItinerarySnapshot, TripComment, TripStatus

# ============================================================================
# HELPERS
# ============================================================================

def _load_trip(trip_id: str) -> Trip:
    trip = TripStorage.find_by_id(trip_id)
    if not trip:
        raise NotFoundError("Trip not found.")
    return trip

def load_price_catalog() -> PriceCatalog:
    return PriceCatalog.of(DistrictSurchargeStorage.get_all(), AdditionalServiceStorage.get_all())

def validate_discount_code(code: Optional[str], today: Optional[date] = None) -> Optional[DiscountCode]:
    """Return the discount for `code` if it can be redeemed today, else None."""
    if not code or not code.strip():
        return None
    discount = DiscountCodeStorage.find_by_code(code)
    if discount is None or not discount.is_redeemable(today):
        return None
    return discount

def _redeem(discount: Optional[DiscountCode]) -> None:
    if discount:
        DiscountCodeStorage.record_redemption(discount.discount_id)

# ============================================================================
# BOOKING
# ============================================================================

@action("trip.create")
def create_trip(payload: Union[CreateTripRequest, dict], today: Optional[date] = None) -> ActionResult:
    data = CreateTripRequest.model_validate(payload)

    itinerary = ItineraryStorage.find_by_id(data.itinerary_id)
    if not itinerary:
        raise NotFoundError("Selected itinerary not found.")

    # unknown or expired codes book at full price
    discount = validate_discount_code(data.discount_code, today)
    price = calculate_price(
        itinerary,
        data.number_of_people,
        data.district,
        data.additional_service_ids,
        discount,
        catalog=load_price_catalog()
    )

    creator = Participant(
        participant_id=str(uuid4()),
        name=data.contact_name,
        phone=data.contact_phone,
        number_of_people=data.number_of_people,
        price_paid=price,
        is_main_booker=True,
        gender=data.gender,
        nationality=data.nationality,
        date_of_birth=data.date_of_birth,
        additional_service_ids=data.additional_service_ids,
        discount_code=discount.code if discount else None,
        notes=data.notes,
    )
    trip = Trip.create_trip(
        trip_id=str(uuid4()),
        itinerary=ItinerarySnapshot.of(itinerary),
        trip_date=data.date,
        trip_time=data.time,
        creator=creator,
        pickup_address=data.pickup_address,
        dropoff_address=data.dropoff_address,
        secondary_contact=data.secondary_contact,
        district=data.district,
    )
    TripStorage.save(trip)
    _redeem(discount)

    logging.info("trip.create success id=%s itinerary=%s price=%s", trip.trip_id, itinerary.itinerary_id, price)
    return ActionResult.ok(
        "Trip created successfully. Please upload your payment proof.",
        trip_id=trip.trip_id,
        participant_id=creator.participant_id
    )

@action("trip.join")
def join_trip(payload: Union[JoinTripRequest, dict], today: Optional[date] = None) -> ActionResult:
    data = JoinTripRequest.model_validate(payload)

    trip = TripStorage.find_by_id(data.trip_id)
    if not trip:
        raise NotFoundError("Trip not found or no longer available.")

    itinerary = ItineraryStorage.find_by_id(trip.itinerary.itinerary_id)
    if not itinerary:
        raise NotFoundError("The itinerary for this trip is no longer available.")

    # joiners pay for their own party only, the creator's district is not inherited
    discount = validate_discount_code(data.discount_code, today)
    price = calculate_price(
        itinerary,
        data.number_of_people,
        None,
        data.additional_service_ids,
        discount,
        catalog=load_price_catalog()
    )

    participant = Participant(
        participant_id=str(uuid4()),
        name=data.name,
        phone=data.phone,
        number_of_people=data.number_of_people,
        address=data.address,
        price_paid=price,
        gender=data.gender,
        nationality=data.nationality,
        date_of_birth=data.date_of_birth,
        additional_service_ids=data.additional_service_ids,
        discount_code=discount.code if discount else None,
        notes=data.notes,
    )
    trip.add_participant(participant, today)
    TripStorage.save(trip)
    _redeem(discount)

    logging.info("trip.join success id=%s participant=%s price=%s", trip.trip_id, participant.participant_id, price)
    return ActionResult.ok(
        "Successfully joined the trip! Please upload your payment proof.",
        trip_id=trip.trip_id,
        participant_id=participant.participant_id
    )

# ============================================================================
# PAYMENT
# ============================================================================

@action("trip.upload_proof")
def upload_proof(trip_id: str, image_url: str, participant_id: Optional[str] = None) -> ActionResult:
    trip = _load_trip(trip_id)
    payer = trip.upload_proof(participant_id, image_url)
    TripStorage.save(trip)

    logging.info("trip.upload_proof success id=%s participant=%s", trip_id, payer.participant_id)
    return ActionResult.ok(
        "Payment proof uploaded. An admin will review it shortly.",
        trip_id=trip_id,
        participant_id=payer.participant_id
    )

@action("trip.confirm_payment")
def confirm_payment(trip_id: str, acting_admin: AdminUser, participant_id: Optional[str] = None) -> ActionResult:
    trip = _load_trip(trip_id)
    payer = trip.confirm_payment(participant_id, acting_admin.user_id, acting_admin.username)
    TripStorage.save(trip)

    logging.info("trip.confirm_payment success id=%s participant=%s by=%s",
                 trip_id, payer.participant_id, acting_admin.username)
    return ActionResult.ok("Payment confirmed.", trip_id=trip_id, participant_id=payer.participant_id)

@action("trip.revert_payment")
def revert_payment(trip_id: str, acting_admin: AdminUser, participant_id: Optional[str] = None) -> ActionResult:
    if not acting_admin.is_admin:
        raise PermissionDeniedError("Only admins can revert payments.")

    trip = _load_trip(trip_id)
    payer = trip.revert_payment(participant_id)
    TripStorage.save(trip)

    logging.info("trip.revert_payment success id=%s participant=%s by=%s",
                 trip_id, payer.participant_id, acting_admin.username)
    return ActionResult.ok("Payment reverted to pending.", trip_id=trip_id, participant_id=payer.participant_id)

@action("trip.cancel_payment")
def cancel_payment(trip_id: str, acting_admin: AdminUser, participant_id: Optional[str] = None) -> ActionResult:
    trip = _load_trip(trip_id)
    payer = trip.cancel_payment(participant_id)
    TripStorage.save(trip)

    logging.info("trip.cancel_payment success id=%s participant=%s by=%s",
                 trip_id, payer.participant_id, acting_admin.username)
    return ActionResult.ok("Booking cancelled.", trip_id=trip_id, participant_id=payer.participant_id)

@action("trip.complete_elapsed")
def complete_elapsed_trips(today: Optional[date] = None) -> ActionResult:
    completed = 0
    for trip in TripStorage.find_with_payer_status(TripStatus.PAYMENT_CONFIRMED):
        if trip.complete_if_elapsed(today):
            TripStorage.save(trip)
            completed += 1

    logging.info("trip.complete_elapsed success count=%s", completed)
    return ActionResult.ok(f"{completed} trip(s) marked as completed.")

# ============================================================================
# ADMINISTRATION
# ============================================================================

@action("trip.delete")
def delete_trip(trip_id: str, acting_admin: AdminUser, today: Optional[date] = None) -> ActionResult:
    trip = _load_trip(trip_id)
    if not acting_admin.is_admin and trip.overall_status(today) == TripStatus.PAYMENT_CONFIRMED:
        raise PermissionDeniedError("Staff cannot delete a trip with confirmed payments.")

    trip.soft_delete(acting_admin.username)
    TripStorage.save(trip)

    logging.info("trip.delete success id=%s by=%s", trip_id, acting_admin.username)
    return ActionResult.ok("Trip deleted.", trip_id=trip_id)

@action("trip.comment")
def add_trip_comment(trip_id: str, comment: str, acting_admin: AdminUser) -> ActionResult:
    trip = _load_trip(trip_id)
    trip.add_comment(acting_admin.username, comment)
    TripStorage.save(trip)

    logging.info("trip.comment success id=%s by=%s", trip_id, acting_admin.username)
    return ActionResult.ok("Comment added.", trip_id=trip_id)

# ============================================================================
# QUERIES
# ============================================================================

def get_trip(trip_id: str, include_deleted: bool = False) -> Optional[Trip]:
    return TripStorage.find_by_id(trip_id, include_deleted=include_deleted)

def get_trip_comments(trip_id: str) -> Optional[List[TripComment]]:
    trip = TripStorage.find_by_id(trip_id)
    return list(trip.comments) if trip else None

def get_joinable_trips(limit: Optional[int] = None, today: Optional[date] = None) -> List[Trip]:
    """Upcoming trips whose every payer has paid, soonest first."""
    limit = limit or Config.JOINABLE_TRIPS_LIMIT
    today = today or date.today()
    joinable = [t for t in TripStorage.find_upcoming(today) if t.is_joinable(today)]
    return joinable[:limit]

def _pending_payers(with_proof: bool) -> List[ParticipantView]:
    views = []
    for trip in TripStorage.find_with_payer_status(TripStatus.PENDING_PAYMENT):
        for payer in trip.payers():
            if payer.status == TripStatus.PENDING_PAYMENT and payer.has_proof == with_proof:
                views.append(ParticipantView.of(trip, payer))
    return views

def get_pending_proof_participants() -> List[ParticipantView]:
    return _pending_payers(with_proof=True)

def get_not_paid_participants() -> List[ParticipantView]:
    return _pending_payers(with_proof=False)

def get_user_trips(phone: str) -> List[Trip]:
    if not phone or not phone.strip():
        return []
    return TripStorage.find_by_phone(phone.strip())

def get_deleted_trips() -> List[Trip]:
    return TripStorage.find_deleted()

def _matches(trip: Trip, search: str) -> bool:
    needle = search.lower()
    return any(
        needle in (value or "").lower()
        for value in (trip.trip_id, trip.itinerary.name, trip.contact_name, trip.contact_phone)
    )

def list_trips(
    page: int = 1,
    search: Optional[str] = None,
    status: Optional[TripStatus] = None,
    today: Optional[date] = None,
    page_size: Optional[int] = None
) -> Tuple[List[Trip], int]:
    """Return one page of non-deleted trips, newest first, and the match count."""
    page_size = page_size or Config.ADMIN_PAGE_SIZE
    page = max(1, page)

    trips = TripStorage.get_all()
    if search and search.strip():
        trips = [t for t in trips if _matches(t, search.strip())]
    if status is not None:
        trips = [t for t in trips if t.overall_status(today) == status]

    start = (page - 1) * page_size
    return trips[start:start + page_size], len(trips)

def total_pages(total: int, page_size: Optional[int] = None) -> int:
    return max(1, math.ceil(total / (page_size or Config.ADMIN_PAGE_SIZE)))
