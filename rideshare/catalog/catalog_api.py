import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator

from rideshare.auth import AdminUser, require_admin_role
from rideshare.storage import (
    AdditionalServiceStorage, DiscountCodeStorage, DistrictSurchargeStorage, ItineraryStorage
)
from rideshare.trip import services as trip_services
from rideshare.trip.schemas import TIME_PATTERN
from .pricing import price_breakdown
from .value_objects import (
    AdditionalService, DiscountCode, DiscountType, DistrictSurcharge, Itinerary, ItineraryType
)

router = APIRouter(tags=["Catalog"])
admin_router = APIRouter(prefix="/admin", tags=["Catalog Admin"])

# ============================================================================
# REQUEST/RESPONSE
# ============================================================================

class ItineraryRequest(BaseModel):
    name: str = Field(..., min_length=1)
    type: ItineraryType
    price_per_person: Decimal = Field(..., ge=0)
    description: str = ""
    image_url: Optional[str] = None
    available_times: List[str] = Field(default_factory=list)

    @field_validator('available_times')
    @classmethod
    def validate_times(cls, v: List[str]) -> List[str]:
        for slot in v:
            if not TIME_PATTERN.match(slot):
                raise ValueError(f"Invalid time slot '{slot}', expected HH:MM")
        return sorted(set(v))

class ItineraryResponse(BaseModel):
    itinerary_id: str
    name: str
    type: ItineraryType
    price_per_person: Decimal
    description: str
    image_url: Optional[str]
    available_times: List[str]

    @staticmethod
    def of(itinerary: Itinerary) -> 'ItineraryResponse':
        return ItineraryResponse(
            itinerary_id=itinerary.itinerary_id,
            name=itinerary.name,
            type=itinerary.type,
            price_per_person=itinerary.price_per_person,
            description=itinerary.description,
            image_url=itinerary.image_url,
            available_times=list(itinerary.available_times),
        )

class DistrictRequest(BaseModel):
    district_name: str = Field(..., min_length=1)
    surcharge_amount: Decimal = Field(..., ge=0)

class DistrictResponse(BaseModel):
    district_id: str
    district_name: str
    surcharge_amount: Decimal

class ServiceRequest(BaseModel):
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    description: str = ""
    applicable_to: List[ItineraryType] = Field(default_factory=list)
    icon_name: Optional[str] = None

class ServiceResponse(BaseModel):
    service_id: str
    name: str
    price: Decimal
    description: str
    applicable_to: List[ItineraryType]
    icon_name: Optional[str]

    @staticmethod
    def of(service: AdditionalService) -> 'ServiceResponse':
        return ServiceResponse(
            service_id=service.service_id,
            name=service.name,
            price=service.price,
            description=service.description,
            applicable_to=list(service.applicable_to),
            icon_name=service.icon_name,
        )

class DiscountRequest(BaseModel):
    code: str = Field(..., min_length=1)
    type: DiscountType
    value: Decimal = Field(..., ge=0)
    is_active: bool = True
    description: str = ""
    usage_limit: Optional[int] = Field(None, ge=1)
    expiry_date: Optional[date] = None

    @field_validator('code')
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError('Code cannot be empty')
        return v

    @model_validator(mode='after')
    def check_percentage(self) -> 'DiscountRequest':
        if self.type == DiscountType.PERCENTAGE and self.value > 100:
            raise ValueError('Percentage discount cannot exceed 100')
        return self

class DiscountResponse(BaseModel):
    discount_id: str
    code: str
    type: DiscountType
    value: Decimal
    is_active: bool
    description: str
    usage_limit: Optional[int]
    used_count: int
    expiry_date: Optional[date]
    is_expired: bool
    is_exhausted: bool

    @staticmethod
    def of(discount: DiscountCode) -> 'DiscountResponse':
        return DiscountResponse(
            discount_id=discount.discount_id,
            code=discount.code,
            type=discount.type,
            value=discount.value,
            is_active=discount.is_active,
            description=discount.description,
            usage_limit=discount.usage_limit,
            used_count=discount.used_count,
            expiry_date=discount.expiry_date,
            is_expired=discount.is_expired(),
            is_exhausted=discount.is_exhausted(),
        )

class ValidateDiscountRequest(BaseModel):
    code: str

class ValidateDiscountResponse(BaseModel):
    valid: bool
    message: str
    code: Optional[str] = None
    type: Optional[DiscountType] = None
    value: Optional[Decimal] = None

class QuoteRequest(BaseModel):
    itinerary_id: str
    number_of_people: int = Field(..., ge=1)
    district: Optional[str] = None
    additional_service_ids: List[str] = Field(default_factory=list)
    discount_code: Optional[str] = None

class QuoteResponse(BaseModel):
    base: Decimal
    district_surcharge: Decimal
    services: Decimal
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    applied_service_ids: List[str]
    applied_discount_code: Optional[str]

# ============================================================================
# HELPERS
# ============================================================================

def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")

def _get_itinerary(itinerary_id: str) -> Itinerary:
    itinerary = ItineraryStorage.find_by_id(itinerary_id)
    if not itinerary:
        raise _not_found("Itinerary")
    return itinerary

# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@router.get("/itineraries", response_model=List[ItineraryResponse])
def list_itineraries():
    return [ItineraryResponse.of(i) for i in ItineraryStorage.get_all()]

@router.get("/itineraries/{itinerary_id}", response_model=ItineraryResponse)
def get_itinerary(itinerary_id: str):
    return ItineraryResponse.of(_get_itinerary(itinerary_id))

@router.get("/districts", response_model=List[DistrictResponse])
def list_districts():
    return [DistrictResponse(**vars(d)) for d in DistrictSurchargeStorage.get_all()]

@router.get("/services", response_model=List[ServiceResponse])
def list_services(itinerary_type: Optional[ItineraryType] = Query(None)):
    services = AdditionalServiceStorage.get_all()
    if itinerary_type is not None:
        services = [s for s in services if s.applies_to(itinerary_type)]
    return [ServiceResponse.of(s) for s in services]

@router.post("/discounts/validate", response_model=ValidateDiscountResponse)
def validate_discount(request: ValidateDiscountRequest):
    discount = trip_services.validate_discount_code(request.code)
    if not discount:
        return ValidateDiscountResponse(valid=False, message="Invalid or expired discount code.")
    return ValidateDiscountResponse(
        valid=True,
        message="Discount code applied.",
        code=discount.code,
        type=discount.type,
        value=discount.value,
    )

@router.post("/quote", response_model=QuoteResponse)
def quote(request: QuoteRequest):
    """Price a prospective booking without saving anything."""
    itinerary = _get_itinerary(request.itinerary_id)
    breakdown = price_breakdown(
        itinerary,
        request.number_of_people,
        request.district,
        request.additional_service_ids,
        trip_services.validate_discount_code(request.discount_code),
        catalog=trip_services.load_price_catalog()
    )
    return QuoteResponse(
        base=breakdown.base,
        district_surcharge=breakdown.district_surcharge,
        services=breakdown.services,
        subtotal=breakdown.subtotal,
        discount=breakdown.discount,
        total=breakdown.total,
        applied_service_ids=list(breakdown.applied_service_ids),
        applied_discount_code=breakdown.applied_discount_code,
    )

# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================

@admin_router.post("/itineraries", response_model=ItineraryResponse, status_code=status.HTTP_201_CREATED)
def create_itinerary(request: ItineraryRequest, current_admin: AdminUser = Depends(require_admin_role)):
    try:
        itinerary = Itinerary(itinerary_id=str(uuid4()), **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    ItineraryStorage.save(itinerary)
    logging.info("catalog.itinerary_create success id=%s by=%s", itinerary.itinerary_id, current_admin.username)
    return ItineraryResponse.of(itinerary)

@admin_router.put("/itineraries/{itinerary_id}", response_model=ItineraryResponse)
def update_itinerary(itinerary_id: str, request: ItineraryRequest, current_admin: AdminUser = Depends(require_admin_role)):
    _get_itinerary(itinerary_id)
    try:
        itinerary = Itinerary(itinerary_id=itinerary_id, **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    # booked trips keep their own snapshot of the old values
    ItineraryStorage.save(itinerary)
    logging.info("catalog.itinerary_update success id=%s by=%s", itinerary_id, current_admin.username)
    return ItineraryResponse.of(itinerary)

@admin_router.delete("/itineraries/{itinerary_id}")
def delete_itinerary(itinerary_id: str, current_admin: AdminUser = Depends(require_admin_role)):
    if not ItineraryStorage.delete(itinerary_id):
        raise _not_found("Itinerary")
    logging.info("catalog.itinerary_delete success id=%s by=%s", itinerary_id, current_admin.username)
    return {"message": "Itinerary deleted successfully"}

def _check_district_name(name: str, district_id: Optional[str] = None) -> None:
    existing = DistrictSurchargeStorage.find_by_name(name)
    if existing and existing.district_id != district_id:
        raise HTTPException(status_code=400, detail="District already exists")

@admin_router.post("/districts", response_model=DistrictResponse, status_code=status.HTTP_201_CREATED)
def create_district(request: DistrictRequest, current_admin: AdminUser = Depends(require_admin_role)):
    name = request.district_name.strip()
    _check_district_name(name)
    surcharge = DistrictSurcharge(str(uuid4()), name, request.surcharge_amount)
    DistrictSurchargeStorage.save(surcharge)
    logging.info("catalog.district_create success name=%s by=%s", name, current_admin.username)
    return DistrictResponse(**vars(surcharge))

@admin_router.put("/districts/{district_id}", response_model=DistrictResponse)
def update_district(district_id: str, request: DistrictRequest, current_admin: AdminUser = Depends(require_admin_role)):
    if not DistrictSurchargeStorage.find_by_id(district_id):
        raise _not_found("District")
    name = request.district_name.strip()
    _check_district_name(name, district_id)
    surcharge = DistrictSurcharge(district_id, name, request.surcharge_amount)
    DistrictSurchargeStorage.save(surcharge)
    logging.info("catalog.district_update success id=%s by=%s", district_id, current_admin.username)
    return DistrictResponse(**vars(surcharge))

@admin_router.delete("/districts/{district_id}")
def delete_district(district_id: str, current_admin: AdminUser = Depends(require_admin_role)):
    if not DistrictSurchargeStorage.delete(district_id):
        raise _not_found("District")
    logging.info("catalog.district_delete success id=%s by=%s", district_id, current_admin.username)
    return {"message": "District deleted successfully"}

def _check_service_name(name: str, service_id: Optional[str] = None) -> None:
    existing = AdditionalServiceStorage.find_by_name(name)
    if existing and existing.service_id != service_id:
        raise HTTPException(status_code=400, detail="Service already exists")

@admin_router.post("/services", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(request: ServiceRequest, current_admin: AdminUser = Depends(require_admin_role)):
    name = request.name.strip()
    _check_service_name(name)
    service = AdditionalService(
        service_id=str(uuid4()),
        name=name,
        price=request.price,
        applicable_to=request.applicable_to,
        description=request.description,
        icon_name=request.icon_name,
    )
    AdditionalServiceStorage.save(service)
    logging.info("catalog.service_create success name=%s by=%s", name, current_admin.username)
    return ServiceResponse.of(service)

@admin_router.put("/services/{service_id}", response_model=ServiceResponse)
def update_service(service_id: str, request: ServiceRequest, current_admin: AdminUser = Depends(require_admin_role)):
    if not AdditionalServiceStorage.find_by_id(service_id):
        raise _not_found("Service")
    name = request.name.strip()
    _check_service_name(name, service_id)
    service = AdditionalService(
        service_id=service_id,
        name=name,
        price=request.price,
        applicable_to=request.applicable_to,
        description=request.description,
        icon_name=request.icon_name,
    )
    AdditionalServiceStorage.save(service)
    logging.info("catalog.service_update success id=%s by=%s", service_id, current_admin.username)
    return ServiceResponse.of(service)

@admin_router.delete("/services/{service_id}")
def delete_service(service_id: str, current_admin: AdminUser = Depends(require_admin_role)):
    if not AdditionalServiceStorage.delete(service_id):
        raise _not_found("Service")
    logging.info("catalog.service_delete success id=%s by=%s", service_id, current_admin.username)
    return {"message": "Service deleted successfully"}

@admin_router.get("/discounts", response_model=List[DiscountResponse])
def list_discounts(_: AdminUser = Depends(require_admin_role)):
    return [DiscountResponse.of(d) for d in DiscountCodeStorage.get_all()]

def _check_code(code: str, discount_id: Optional[str] = None) -> None:
    existing = DiscountCodeStorage.find_by_code(code)
    if existing and existing.discount_id != discount_id:
        raise HTTPException(status_code=400, detail="Discount code already exists")

@admin_router.post("/discounts", response_model=DiscountResponse, status_code=status.HTTP_201_CREATED)
def create_discount(request: DiscountRequest, current_admin: AdminUser = Depends(require_admin_role)):
    _check_code(request.code)
    try:
        discount = DiscountCode(discount_id=str(uuid4()), **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    DiscountCodeStorage.save(discount)
    logging.info("catalog.discount_create success code=%s by=%s", discount.code, current_admin.username)
    return DiscountResponse.of(discount)

@admin_router.put("/discounts/{discount_id}", response_model=DiscountResponse)
def update_discount(discount_id: str, request: DiscountRequest, current_admin: AdminUser = Depends(require_admin_role)):
    existing = DiscountCodeStorage.find_by_id(discount_id)
    if not existing:
        raise _not_found("Discount code")
    _check_code(request.code, discount_id)
    try:
        discount = DiscountCode(discount_id=discount_id, used_count=existing.used_count, **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    DiscountCodeStorage.save(discount)
    logging.info("catalog.discount_update success code=%s by=%s", discount.code, current_admin.username)
    return DiscountResponse.of(discount)

@admin_router.delete("/discounts/{discount_id}")
def delete_discount(discount_id: str, current_admin: AdminUser = Depends(require_admin_role)):
    if not DiscountCodeStorage.delete(discount_id):
        raise _not_found("Discount code")
    logging.info("catalog.discount_delete success id=%s by=%s", discount_id, current_admin.username)
    return {"message": "Discount code deleted successfully"}
