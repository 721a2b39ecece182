from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from rideshare.auth import AdminUser, get_current_admin
from rideshare.config import Config
from rideshare.errors import ActionResult, raise_for_failure
from rideshare.storage import FeedbackStorage, ItineraryStorage, TripStorage
from . import services
from .schemas import CommentRequest, CommentResponse, ParticipantView, PaymentActionRequest, TripDetail, TripPage
from .value_objects import TripStatus

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(get_current_admin)])

class DashboardResponse(BaseModel):
    trips: int
    pending_proof: int
    not_paid: int
    itineraries: int
    feedback: int

def _get_trip(trip_id: str, include_deleted: bool = False):
    trip = services.get_trip(trip_id, include_deleted=include_deleted)
    if not trip:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Trip not found"
        )
    return trip

# ==========================================
# DASHBOARD & LISTS
# ==========================================

@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard():
    return DashboardResponse(
        trips=TripStorage.count(),
        pending_proof=len(services.get_pending_proof_participants()),
        not_paid=len(services.get_not_paid_participants()),
        itineraries=ItineraryStorage.count(),
        feedback=FeedbackStorage.count(),
    )

@router.get("/trips", response_model=TripPage)
def list_trips(
    page: int = Query(1, ge=1),
    search: Optional[str] = None,
    status_filter: Optional[TripStatus] = Query(None, alias="status")
):
    trips, total = services.list_trips(page=page, search=search, status=status_filter)
    return TripPage(
        items=[TripDetail.of(t) for t in trips],
        total=total,
        page=page,
        page_size=Config.ADMIN_PAGE_SIZE,
        total_pages=services.total_pages(total),
    )

@router.get("/trips/deleted", response_model=List[TripDetail])
def get_deleted_trips():
    return [TripDetail.of(t) for t in services.get_deleted_trips()]

@router.get("/trips/pending-proof", response_model=List[ParticipantView])
def get_pending_proof():
    """Bookings with an uploaded proof that still wait for confirmation."""
    return services.get_pending_proof_participants()

@router.get("/trips/not-paid", response_model=List[ParticipantView])
def get_not_paid():
    return services.get_not_paid_participants()

@router.post("/trips/complete-elapsed", response_model=ActionResult)
def complete_elapsed_trips():
    return raise_for_failure(services.complete_elapsed_trips())

@router.get("/trips/{trip_id}", response_model=TripDetail)
def get_trip(trip_id: str):
    return TripDetail.of(_get_trip(trip_id, include_deleted=True))

# ==========================================
# PAYMENT ACTIONS
# ==========================================

@router.post("/trips/{trip_id}/confirm-payment", response_model=ActionResult)
def confirm_payment(
    trip_id: str,
    request: PaymentActionRequest,
    current_admin: AdminUser = Depends(get_current_admin)
):
    return raise_for_failure(services.confirm_payment(trip_id, current_admin, request.participant_id))

@router.post("/trips/{trip_id}/revert-payment", response_model=ActionResult)
def revert_payment(
    trip_id: str,
    request: PaymentActionRequest,
    current_admin: AdminUser = Depends(get_current_admin)
):
    return raise_for_failure(services.revert_payment(trip_id, current_admin, request.participant_id))

@router.post("/trips/{trip_id}/cancel-payment", response_model=ActionResult)
def cancel_payment(
    trip_id: str,
    request: PaymentActionRequest,
    current_admin: AdminUser = Depends(get_current_admin)
):
    return raise_for_failure(services.cancel_payment(trip_id, current_admin, request.participant_id))

@router.delete("/trips/{trip_id}", response_model=ActionResult)
def delete_trip(trip_id: str, current_admin: AdminUser = Depends(get_current_admin)):
    return raise_for_failure(services.delete_trip(trip_id, current_admin))

# ==========================================
# HANDOVER COMMENTS
# ==========================================

@router.get("/trips/{trip_id}/comments", response_model=List[CommentResponse])
def get_comments(trip_id: str):
    comments = services.get_trip_comments(trip_id)
    if comments is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Trip not found"
        )
    return [CommentResponse.of(c) for c in comments]

@router.post("/trips/{trip_id}/comments", status_code=status.HTTP_201_CREATED, response_model=ActionResult)
def add_comment(
    trip_id: str,
    request: CommentRequest,
    current_admin: AdminUser = Depends(get_current_admin)
):
    return raise_for_failure(services.add_trip_comment(trip_id, request.comment, current_admin))
