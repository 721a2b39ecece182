import logging
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, field_validator

from rideshare.auth import AdminUser, get_current_admin, require_admin_role
from rideshare.storage import FeedbackStorage, SpamReportStorage
from rideshare.trip import services as trip_services
from rideshare.trip.schemas import TripSummary
from .value_objects import Feedback, SpamReport

router = APIRouter(tags=["Moderation"])

# ============================================================================
# REQUEST/RESPONSE
# ============================================================================

class FeedbackRequest(BaseModel):
    name: str
    email: EmailStr
    message: str
    trip_id: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('Name is required')
        return v.strip()

    @field_validator('message')
    @classmethod
    def validate_message(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 10:
            raise ValueError('Message must be at least 10 characters long')
        return v

class FeedbackResponse(BaseModel):
    feedback_id: str
    name: str
    email: str
    message: str
    trip_id: Optional[str]
    submitted_at: datetime

class SpamReportRequest(BaseModel):
    reported_user_phone: str
    reported_user_name: str
    trip_id: str
    reason: str

    @field_validator('reported_user_phone', 'reported_user_name', 'trip_id', 'reason')
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('Field cannot be empty')
        return v.strip()

class SpamReportResponse(BaseModel):
    report_id: str
    reported_user_phone: str
    reported_user_name: str
    reported_by: str
    trip_id: str
    reason: str
    created_at: datetime
    is_hidden: bool

class PhoneHistoryResponse(BaseModel):
    phone: str
    reports: List[SpamReportResponse]
    trips: List[TripSummary]

# ============================================================================
# FEEDBACK
# ============================================================================

@router.post("/feedback", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
def submit_feedback(request: FeedbackRequest):
    feedback = Feedback(
        feedback_id=str(uuid4()),
        name=request.name,
        email=str(request.email),
        message=request.message,
        trip_id=request.trip_id,
    )
    FeedbackStorage.save(feedback)
    logging.info("feedback.submit success id=%s", feedback.feedback_id)
    return FeedbackResponse(**vars(feedback))

@router.get("/admin/feedback", response_model=List[FeedbackResponse])
def list_feedback(_: AdminUser = Depends(get_current_admin)):
    return [FeedbackResponse(**vars(f)) for f in FeedbackStorage.get_all()]

@router.get("/admin/feedback/{feedback_id}", response_model=FeedbackResponse)
def get_feedback(feedback_id: str, _: AdminUser = Depends(get_current_admin)):
    feedback = FeedbackStorage.find_by_id(feedback_id)
    if not feedback:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Feedback not found"
        )
    return FeedbackResponse(**vars(feedback))

# ============================================================================
# SPAM REPORTS
# ============================================================================

@router.post("/admin/spam", response_model=SpamReportResponse, status_code=status.HTTP_201_CREATED)
def create_report(request: SpamReportRequest, current_admin: AdminUser = Depends(require_admin_role)):
    report = SpamReport(
        report_id=str(uuid4()),
        reported_user_phone=request.reported_user_phone,
        reported_user_name=request.reported_user_name,
        reported_by=current_admin.username,
        trip_id=request.trip_id,
        reason=request.reason,
    )
    SpamReportStorage.save(report)
    logging.info("spam.report success phone=%s by=%s", report.reported_user_phone, current_admin.username)
    return SpamReportResponse(**vars(report))

@router.get("/admin/spam", response_model=List[SpamReportResponse])
def list_reports(_: AdminUser = Depends(require_admin_role)):
    return [SpamReportResponse(**vars(r)) for r in SpamReportStorage.get_visible()]

@router.get("/admin/spam/phone/{phone}", response_model=PhoneHistoryResponse)
def get_phone_history(phone: str, _: AdminUser = Depends(require_admin_role)):
    """Every report filed against a phone number and the trips it booked or joined."""
    return PhoneHistoryResponse(
        phone=phone,
        reports=[SpamReportResponse(**vars(r)) for r in SpamReportStorage.find_by_phone(phone)],
        trips=[TripSummary.of(t) for t in trip_services.get_user_trips(phone)],
    )

@router.post("/admin/spam/{report_id}/hide", response_model=SpamReportResponse)
def hide_report(report_id: str, current_admin: AdminUser = Depends(require_admin_role)):
    report = SpamReportStorage.find_by_id(report_id)
    if not report:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Report not found"
        )
    try:
        report.hide()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    SpamReportStorage.save(report)
    logging.info("spam.hide success id=%s by=%s", report_id, current_admin.username)
    return SpamReportResponse(**vars(report))
