"""
Request and response schemas for trip booking.

Inputs are validated here before any catalog lookup happens; views are
read-only projections built from the `Trip` aggregate.
"""
import re
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from rideshare.catalog.value_objects import ItineraryType
from .aggregate_root import Trip
from .entities import Participant
from .value_objects import TripComment, TripStatus

PHONE_PATTERN = re.compile(r"^\+?[0-9\s-]{10,15}$")
TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")

def _required(v: str, label: str) -> str:
    if not v or not v.strip():
        raise ValueError(f"{label} is required.")
    return v.strip()

def _phone(v: str) -> str:
    v = _required(v, "Phone")
    if not PHONE_PATTERN.match(v):
        raise ValueError("Invalid phone number format.")
    return v

def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None or not v.strip():
        return None
    return v.strip()

# ============================================================================
# INPUTS
# ============================================================================

class CreateTripRequest(BaseModel):
    itinerary_id: str = Field(..., description="Catalog itinerary to book")
    date: date
    time: str = Field(..., description="Departure slot, HH:MM")
    number_of_people: int = Field(..., description="Headcount of the creator's party")
    contact_name: str
    contact_phone: str
    pickup_address: Optional[str] = None
    dropoff_address: Optional[str] = None
    secondary_contact: Optional[str] = None
    district: Optional[str] = Field(None, description="District name used for the surcharge lookup")
    additional_service_ids: List[str] = Field(default_factory=list)
    discount_code: Optional[str] = None
    notes: Optional[str] = None
    gender: Optional[str] = None
    nationality: Optional[str] = None
    date_of_birth: Optional[date] = None

    @field_validator('itinerary_id')
    @classmethod
    def validate_itinerary_id(cls, v: str) -> str:
        return _required(v, "Itinerary")

    @field_validator('time')
    @classmethod
    def validate_time(cls, v: str) -> str:
        v = _required(v, "Time")
        if not TIME_PATTERN.match(v):
            raise ValueError("Time must use the HH:MM format.")
        return v

    @field_validator('number_of_people')
    @classmethod
    def validate_people(cls, v: int) -> int:
        if v < 1:
            raise ValueError("At least one person is required.")
        return v

    @field_validator('contact_name')
    @classmethod
    def validate_contact_name(cls, v: str) -> str:
        return _required(v, "Contact name")

    @field_validator('contact_phone')
    @classmethod
    def validate_contact_phone(cls, v: str) -> str:
        return _phone(v)

    @field_validator('pickup_address', 'dropoff_address', 'secondary_contact', 'district', 'discount_code', 'notes')
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

class JoinTripRequest(BaseModel):
    trip_id: str
    name: str
    phone: str
    number_of_people: int
    address: str
    additional_service_ids: List[str] = Field(default_factory=list)
    discount_code: Optional[str] = None
    notes: Optional[str] = None
    gender: Optional[str] = None
    nationality: Optional[str] = None
    date_of_birth: Optional[date] = None

    @field_validator('trip_id')
    @classmethod
    def validate_trip_id(cls, v: str) -> str:
        return _required(v, "Trip")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _required(v, "Name")

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _phone(v)

    @field_validator('number_of_people')
    @classmethod
    def validate_people(cls, v: int) -> int:
        if v < 1:
            raise ValueError("At least one person is required.")
        return v

    @field_validator('address')
    @classmethod
    def validate_address(cls, v: str) -> str:
        return _required(v, "Address")

    @field_validator('discount_code', 'notes')
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

class UploadProofRequest(BaseModel):
    participant_id: Optional[str] = Field(None, description="Omit to target the creator's booking")
    image_url: str

class PaymentActionRequest(BaseModel):
    participant_id: Optional[str] = Field(None, description="Omit to target the creator's booking")

class CommentRequest(BaseModel):
    comment: str

# ============================================================================
# VIEWS
# ============================================================================

class ParticipantView(BaseModel):
    trip_id: str
    participant_id: str
    is_main_booker: bool
    itinerary_name: str
    trip_date: date
    trip_time: str
    name: str
    phone: str
    number_of_people: int
    address: Optional[str] = None
    additional_service_ids: List[str] = []
    discount_code: Optional[str] = None
    notes: Optional[str] = None
    price_paid: Decimal
    status: TripStatus
    transfer_proof_image_url: Optional[str] = None
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None

    @staticmethod
    def of(trip: Trip, payer: Participant) -> 'ParticipantView':
        return ParticipantView(
            trip_id=trip.trip_id,
            participant_id=payer.participant_id,
            is_main_booker=payer.is_main_booker,
            itinerary_name=trip.itinerary.name,
            trip_date=trip.date,
            trip_time=trip.time,
            name=payer.name,
            phone=payer.phone,
            number_of_people=payer.number_of_people,
            address=payer.address,
            additional_service_ids=payer.additional_service_ids,
            discount_code=payer.discount_code,
            notes=payer.notes,
            price_paid=payer.price_paid,
            status=payer.status,
            transfer_proof_image_url=payer.transfer_proof_image_url,
            confirmed_by=payer.confirmation.admin_username if payer.confirmation else None,
            confirmed_at=payer.confirmation.confirmed_at if payer.confirmation else None,
        )

class CommentResponse(BaseModel):
    comment_id: str
    username: str
    comment: str
    created_at: datetime

    @staticmethod
    def of(comment: TripComment) -> 'CommentResponse':
        return CommentResponse(
            comment_id=comment.comment_id,
            username=comment.username,
            comment=comment.comment,
            created_at=comment.created_at,
        )

class TripSummary(BaseModel):
    """Public projection: no phone numbers, addresses or proofs."""
    trip_id: str
    itinerary_id: str
    itinerary_name: str
    itinerary_type: ItineraryType
    date: date
    time: str
    district: Optional[str] = None
    overall_status: TripStatus
    participant_count: int
    total_people: int

    @staticmethod
    def of(trip: Trip, today: Optional[date] = None) -> 'TripSummary':
        return TripSummary(
            trip_id=trip.trip_id,
            itinerary_id=trip.itinerary.itinerary_id,
            itinerary_name=trip.itinerary.name,
            itinerary_type=trip.itinerary.type,
            date=trip.date,
            time=trip.time,
            district=trip.district,
            overall_status=trip.overall_status(today),
            participant_count=len(trip.participants),
            total_people=trip.total_people(),
        )

class TripDetail(BaseModel):
    trip_id: str
    itinerary_id: str
    itinerary_name: str
    itinerary_type: ItineraryType
    date: date
    time: str
    contact_name: str
    contact_phone: str
    secondary_contact: Optional[str] = None
    pickup_address: Optional[str] = None
    dropoff_address: Optional[str] = None
    district: Optional[str] = None
    number_of_people: int
    total_price: Decimal
    status: TripStatus
    overall_status: TripStatus
    participants: List[ParticipantView]
    comments: List[CommentResponse]
    created_at: datetime
    is_deleted: bool = False
    deleted_by: Optional[str] = None
    deleted_at: Optional[datetime] = None

    @staticmethod
    def of(trip: Trip, today: Optional[date] = None) -> 'TripDetail':
        return TripDetail(
            trip_id=trip.trip_id,
            itinerary_id=trip.itinerary.itinerary_id,
            itinerary_name=trip.itinerary.name,
            itinerary_type=trip.itinerary.type,
            date=trip.date,
            time=trip.time,
            contact_name=trip.contact_name,
            contact_phone=trip.contact_phone,
            secondary_contact=trip.secondary_contact,
            pickup_address=trip.pickup_address,
            dropoff_address=trip.dropoff_address,
            district=trip.district,
            number_of_people=trip.number_of_people,
            total_price=trip.total_price,
            status=trip.status,
            overall_status=trip.overall_status(today),
            participants=[ParticipantView.of(trip, p) for p in trip.payers()],
            comments=[CommentResponse.of(c) for c in trip.comments],
            created_at=trip.created_at,
            is_deleted=trip.is_deleted,
            deleted_by=trip.deletion.deleted_by if trip.deletion else None,
            deleted_at=trip.deletion.deleted_at if trip.deletion else None,
        )

class TripPage(BaseModel):
    items: List[TripDetail]
    total: int
    page: int
    page_size: int
    total_pages: int
