from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from rideshare.errors import ActionResult, raise_for_failure
from . import services
from .schemas import CreateTripRequest, JoinTripRequest, ParticipantView, TripSummary, UploadProofRequest

router = APIRouter(prefix="/trips", tags=["Trips"])

class MyTripResponse(BaseModel):
    trip: TripSummary
    bookings: List[ParticipantView]

# ==========================================
# ENDPOINTS
# ==========================================

@router.post("/", status_code=status.HTTP_201_CREATED, response_model=ActionResult)
def create_trip(request: CreateTripRequest):
    return raise_for_failure(services.create_trip(request))

@router.post("/join", status_code=status.HTTP_201_CREATED, response_model=ActionResult)
def join_trip(request: JoinTripRequest):
    """Join a trip whose existing bookings are all paid."""
    return raise_for_failure(services.join_trip(request))

@router.get("/joinable", response_model=List[TripSummary])
def get_joinable_trips(limit: Optional[int] = Query(None, ge=1, le=100)):
    return [TripSummary.of(t) for t in services.get_joinable_trips(limit)]

@router.get("/mine", response_model=List[MyTripResponse])
def get_my_trips(phone: str = Query(..., min_length=1)):
    """Trips booked or joined with this phone number, newest first."""
    phone = phone.strip()
    return [
        MyTripResponse(
            trip=TripSummary.of(t),
            bookings=[ParticipantView.of(t, p) for p in t.payers() if p.phone == phone]
        )
        for t in services.get_user_trips(phone)
    ]

@router.get("/{trip_id}", response_model=TripSummary)
def get_trip(trip_id: str):
    trip = services.get_trip(trip_id)
    if not trip:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Trip not found"
        )
    return TripSummary.of(trip)

@router.post("/{trip_id}/proof", response_model=ActionResult)
def upload_proof(trip_id: str, request: UploadProofRequest):
    return raise_for_failure(services.upload_proof(trip_id, request.image_url, request.participant_id))
