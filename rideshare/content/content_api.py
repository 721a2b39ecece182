import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from rideshare.auth import AdminUser, require_admin_role
from rideshare.storage import TermsContentStorage
from .value_objects import BOOKING_TERMS_KEY, TermsContent

router = APIRouter(tags=["Content"])

class TermsRequest(BaseModel):
    content: str

class TermsResponse(BaseModel):
    content: str

class TermsUpdateResponse(BaseModel):
    success: bool
    content: str
    updated_at: datetime

@router.get("/terms", response_model=TermsResponse)
def get_terms(response: Response):
    """Booking terms shown on the booking form, empty until an admin writes them."""
    terms = TermsContentStorage.find_by_key(BOOKING_TERMS_KEY)
    response.headers["Cache-Control"] = "public, max-age=300"
    return TermsResponse(content=terms.content if terms else "")

@router.put("/admin/terms", response_model=TermsUpdateResponse)
def update_terms(request: TermsRequest, current_admin: AdminUser = Depends(require_admin_role)):
    terms = TermsContent(key=BOOKING_TERMS_KEY, content=request.content)
    TermsContentStorage.save(terms)
    logging.info("terms.update success by=%s length=%s", current_admin.username, len(terms.content))
    return TermsUpdateResponse(success=True, content=terms.content, updated_at=terms.updated_at)
