"""Repositories mapping domain objects to the ORM tables in `database.py`.

Every method opens its own short session from `database.SessionLocal`, so
tests can swap the session factory for an in-memory engine.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func

import rideshare.database as _db
from rideshare.database import (
    TripModel, ParticipantModel, TripCommentModel, ItineraryModel,
    DistrictSurchargeModel, AdditionalServiceModel, DiscountCodeModel,
    FeedbackModel, SpamReportModel, TermsContentModel
)
from rideshare.catalog.value_objects import (
    AdditionalService, DiscountCode, DiscountType, DistrictSurcharge, Itinerary, ItineraryType
)
from rideshare.content.value_objects import TermsContent
from rideshare.moderation.value_objects import Feedback, SpamReport
from rideshare.trip.aggregate_root import Trip
from rideshare.trip.entities import Participant
from rideshare.trip.value_objects import (
    DeletionMark, ItinerarySnapshot, PaymentConfirmation, TripComment, TripStatus
)

# ============================================================================
# TRIPS
# ============================================================================

def _participant_to_model(participant: Participant, trip_id: str, position: int) -> ParticipantModel:
    confirmation = participant.confirmation
    return ParticipantModel(
        participant_id=participant.participant_id,
        trip_id=trip_id,
        position=position,
        is_main_booker=participant.is_main_booker,
        name=participant.name,
        phone=participant.phone,
        number_of_people=participant.number_of_people,
        address=participant.address,
        gender=participant.gender,
        nationality=participant.nationality,
        date_of_birth=participant.date_of_birth,
        additional_service_ids=list(participant.additional_service_ids),
        discount_code=participant.discount_code,
        notes=participant.notes,
        status=participant.status.value,
        price_paid=participant.price_paid,
        transfer_proof_image_url=participant.transfer_proof_image_url,
        confirmed_by_id=confirmation.admin_id if confirmation else None,
        confirmed_by=confirmation.admin_username if confirmation else None,
        confirmed_at=confirmation.confirmed_at if confirmation else None,
    )

def _participant_to_domain(model: ParticipantModel) -> Participant:
    participant = Participant(
        participant_id=model.participant_id,
        name=model.name,
        phone=model.phone,
        number_of_people=model.number_of_people,
        address=model.address,
        price_paid=Decimal(model.price_paid),
        is_main_booker=model.is_main_booker,
        gender=model.gender,
        nationality=model.nationality,
        date_of_birth=model.date_of_birth,
        additional_service_ids=model.additional_service_ids or [],
        discount_code=model.discount_code,
        notes=model.notes,
    )
    participant.status = TripStatus(model.status)
    participant.transfer_proof_image_url = model.transfer_proof_image_url
    if model.confirmed_at is not None:
        participant.confirmation = PaymentConfirmation(
            model.confirmed_by_id or "", model.confirmed_by or "", model.confirmed_at
        )
    return participant

def _trip_to_model(trip: Trip) -> TripModel:
    model = TripModel(
        trip_id=trip.trip_id,
        itinerary_id=trip.itinerary.itinerary_id,
        itinerary_name=trip.itinerary.name,
        itinerary_type=trip.itinerary.type.value,
        date=trip.date,
        time=trip.time,
        pickup_address=trip.pickup_address,
        dropoff_address=trip.dropoff_address,
        secondary_contact=trip.secondary_contact,
        district=trip.district,
        is_deleted=trip.is_deleted,
        deleted_by=trip.deletion.deleted_by if trip.deletion else None,
        deleted_at=trip.deletion.deleted_at if trip.deletion else None,
        created_at=trip.created_at,
    )
    model.participants = [
        _participant_to_model(p, trip.trip_id, position) for position, p in enumerate(trip.payers())
    ]
    model.comments = [
        TripCommentModel(
            comment_id=c.comment_id,
            trip_id=trip.trip_id,
            username=c.username,
            comment=c.comment,
            created_at=c.created_at,
        )
        for c in trip.comments
    ]
    return model

def _trip_to_domain(model: TripModel) -> Trip:
    payers = [_participant_to_domain(p) for p in model.participants]
    creator = next((p for p in payers if p.is_main_booker), None)
    if creator is None:
        raise ValueError(f"Trip {model.trip_id} has no main booker")

    trip = Trip(
        trip_id=model.trip_id,
        itinerary=ItinerarySnapshot(model.itinerary_id, model.itinerary_name, ItineraryType(model.itinerary_type)),
        trip_date=model.date,
        trip_time=model.time,
        creator=creator,
        pickup_address=model.pickup_address,
        dropoff_address=model.dropoff_address,
        secondary_contact=model.secondary_contact,
        district=model.district,
        created_at=model.created_at,
    )
    trip.participants = [p for p in payers if not p.is_main_booker]
    trip.comments = [
        TripComment(c.comment_id, c.username, c.comment, c.created_at) for c in model.comments
    ]
    if model.is_deleted:
        trip.deletion = DeletionMark(model.deleted_by or "", model.deleted_at or model.created_at)
    return trip

class TripStorage:
    @staticmethod
    def save(trip: Trip) -> None:
        # no version check, last writer wins. The participant and comment
        # collections are replaced wholesale, so saving a stale copy deletes
        # joiners and comments added since it was read.
        with _db.SessionLocal() as session:
            session.merge(_trip_to_model(trip))
            session.commit()

    @staticmethod
    def find_by_id(trip_id: str, include_deleted: bool = False) -> Optional[Trip]:
        with _db.SessionLocal() as session:
            model = session.get(TripModel, trip_id)
            if model is None or (model.is_deleted and not include_deleted):
                return None
            return _trip_to_domain(model)

    @staticmethod
    def get_all() -> List[Trip]:
        with _db.SessionLocal() as session:
            models = (
                session.query(TripModel)
                .filter(TripModel.is_deleted.is_(False))
                .order_by(TripModel.created_at.desc())
                .all()
            )
            return [_trip_to_domain(m) for m in models]

    @staticmethod
    def find_upcoming(today: date) -> List[Trip]:
        with _db.SessionLocal() as session:
            models = (
                session.query(TripModel)
                .filter(TripModel.is_deleted.is_(False), TripModel.date >= today)
                .order_by(TripModel.date.asc(), TripModel.time.asc())
                .all()
            )
            return [_trip_to_domain(m) for m in models]

    @staticmethod
    def find_with_payer_status(status: TripStatus) -> List[Trip]:
        with _db.SessionLocal() as session:
            models = (
                session.query(TripModel)
                .filter(
                    TripModel.is_deleted.is_(False),
                    TripModel.participants.any(ParticipantModel.status == status.value),
                )
                .order_by(TripModel.date.asc())
                .all()
            )
            return [_trip_to_domain(m) for m in models]

    @staticmethod
    def find_by_phone(phone: str) -> List[Trip]:
        with _db.SessionLocal() as session:
            models = (
                session.query(TripModel)
                .filter(
                    TripModel.is_deleted.is_(False),
                    TripModel.participants.any(ParticipantModel.phone == phone),
                )
                .order_by(TripModel.created_at.desc())
                .all()
            )
            return [_trip_to_domain(m) for m in models]

    @staticmethod
    def find_deleted() -> List[Trip]:
        with _db.SessionLocal() as session:
            models = (
                session.query(TripModel)
                .filter(TripModel.is_deleted.is_(True))
                .order_by(TripModel.deleted_at.desc())
                .all()
            )
            return [_trip_to_domain(m) for m in models]

    @staticmethod
    def count() -> int:
        with _db.SessionLocal() as session:
            return session.query(func.count(TripModel.trip_id)).filter(TripModel.is_deleted.is_(False)).scalar() or 0

# ============================================================================
# CATALOG
# ============================================================================

def _itinerary_to_domain(model: ItineraryModel) -> Itinerary:
    return Itinerary(
        itinerary_id=model.itinerary_id,
        name=model.name,
        type=ItineraryType(model.type),
        price_per_person=Decimal(model.price_per_person),
        description=model.description or "",
        image_url=model.image_url,
        available_times=model.available_times or [],
    )

class ItineraryStorage:
    @staticmethod
    def save(itinerary: Itinerary) -> None:
        with _db.SessionLocal() as session:
            session.merge(ItineraryModel(
                itinerary_id=itinerary.itinerary_id,
                name=itinerary.name,
                type=itinerary.type.value,
                price_per_person=itinerary.price_per_person,
                description=itinerary.description,
                image_url=itinerary.image_url,
                available_times=list(itinerary.available_times),
            ))
            session.commit()

    @staticmethod
    def find_by_id(itinerary_id: str) -> Optional[Itinerary]:
        with _db.SessionLocal() as session:
            model = session.get(ItineraryModel, itinerary_id)
            return _itinerary_to_domain(model) if model else None

    @staticmethod
    def get_all() -> List[Itinerary]:
        with _db.SessionLocal() as session:
            models = session.query(ItineraryModel).order_by(ItineraryModel.name.asc()).all()
            return [_itinerary_to_domain(m) for m in models]

    @staticmethod
    def count() -> int:
        with _db.SessionLocal() as session:
            return session.query(func.count(ItineraryModel.itinerary_id)).scalar() or 0

    @staticmethod
    def delete(itinerary_id: str) -> bool:
        with _db.SessionLocal() as session:
            model = session.get(ItineraryModel, itinerary_id)
            if model is None:
                return False
            session.delete(model)
            session.commit()
            return True

def _surcharge_to_domain(model: DistrictSurchargeModel) -> DistrictSurcharge:
    return DistrictSurcharge(model.district_id, model.district_name, Decimal(model.surcharge_amount))

class DistrictSurchargeStorage:
    @staticmethod
    def save(surcharge: DistrictSurcharge) -> None:
        with _db.SessionLocal() as session:
            session.merge(DistrictSurchargeModel(
                district_id=surcharge.district_id,
                district_name=surcharge.district_name,
                surcharge_amount=surcharge.surcharge_amount,
            ))
            session.commit()

    @staticmethod
    def find_by_id(district_id: str) -> Optional[DistrictSurcharge]:
        with _db.SessionLocal() as session:
            model = session.get(DistrictSurchargeModel, district_id)
            return _surcharge_to_domain(model) if model else None

    @staticmethod
    def find_by_name(district_name: str) -> Optional[DistrictSurcharge]:
        with _db.SessionLocal() as session:
            model = session.query(DistrictSurchargeModel).filter(
                DistrictSurchargeModel.district_name == district_name
            ).first()
            return _surcharge_to_domain(model) if model else None

    @staticmethod
    def get_all() -> List[DistrictSurcharge]:
        with _db.SessionLocal() as session:
            models = session.query(DistrictSurchargeModel).order_by(DistrictSurchargeModel.district_name.asc()).all()
            return [_surcharge_to_domain(m) for m in models]

    @staticmethod
    def delete(district_id: str) -> bool:
        with _db.SessionLocal() as session:
            model = session.get(DistrictSurchargeModel, district_id)
            if model is None:
                return False
            session.delete(model)
            session.commit()
            return True

def _service_to_domain(model: AdditionalServiceModel) -> AdditionalService:
    return AdditionalService(
        service_id=model.service_id,
        name=model.name,
        price=Decimal(model.price),
        applicable_to=[ItineraryType(t) for t in model.applicable_to or []],
        description=model.description or "",
        icon_name=model.icon_name,
    )

class AdditionalServiceStorage:
    @staticmethod
    def save(service: AdditionalService) -> None:
        with _db.SessionLocal() as session:
            session.merge(AdditionalServiceModel(
                service_id=service.service_id,
                name=service.name,
                price=service.price,
                description=service.description,
                applicable_to=[t.value for t in service.applicable_to],
                icon_name=service.icon_name,
            ))
            session.commit()

    @staticmethod
    def find_by_id(service_id: str) -> Optional[AdditionalService]:
        with _db.SessionLocal() as session:
            model = session.get(AdditionalServiceModel, service_id)
            return _service_to_domain(model) if model else None

    @staticmethod
    def find_by_name(name: str) -> Optional[AdditionalService]:
        with _db.SessionLocal() as session:
            model = session.query(AdditionalServiceModel).filter(AdditionalServiceModel.name == name).first()
            return _service_to_domain(model) if model else None

    @staticmethod
    def get_all() -> List[AdditionalService]:
        with _db.SessionLocal() as session:
            models = session.query(AdditionalServiceModel).order_by(AdditionalServiceModel.name.asc()).all()
            return [_service_to_domain(m) for m in models]

    @staticmethod
    def delete(service_id: str) -> bool:
        with _db.SessionLocal() as session:
            model = session.get(AdditionalServiceModel, service_id)
            if model is None:
                return False
            session.delete(model)
            session.commit()
            return True

def _discount_to_domain(model: DiscountCodeModel) -> DiscountCode:
    return DiscountCode(
        discount_id=model.discount_id,
        code=model.code,
        type=DiscountType(model.type),
        value=Decimal(model.value),
        is_active=model.is_active,
        description=model.description or "",
        usage_limit=model.usage_limit,
        used_count=model.used_count or 0,
        expiry_date=model.expiry_date,
    )

class DiscountCodeStorage:
    @staticmethod
    def save(discount: DiscountCode) -> None:
        with _db.SessionLocal() as session:
            model = session.get(DiscountCodeModel, discount.discount_id)
            if model is None:
                model = DiscountCodeModel(discount_id=discount.discount_id, created_at=datetime.now())
                session.add(model)
            model.code = discount.code
            model.type = discount.type.value
            model.value = discount.value
            model.is_active = discount.is_active
            model.description = discount.description
            model.usage_limit = discount.usage_limit
            model.used_count = discount.used_count
            model.expiry_date = discount.expiry_date
            session.commit()

    @staticmethod
    def find_by_id(discount_id: str) -> Optional[DiscountCode]:
        with _db.SessionLocal() as session:
            model = session.get(DiscountCodeModel, discount_id)
            return _discount_to_domain(model) if model else None

    @staticmethod
    def find_by_code(code: str) -> Optional[DiscountCode]:
        # codes are stored upper-case
        with _db.SessionLocal() as session:
            model = session.query(DiscountCodeModel).filter(
                DiscountCodeModel.code == code.strip().upper()
            ).first()
            return _discount_to_domain(model) if model else None

    @staticmethod
    def get_all() -> List[DiscountCode]:
        with _db.SessionLocal() as session:
            models = session.query(DiscountCodeModel).order_by(DiscountCodeModel.created_at.desc()).all()
            return [_discount_to_domain(m) for m in models]

    @staticmethod
    def record_redemption(discount_id: str) -> None:
        with _db.SessionLocal() as session:
            session.query(DiscountCodeModel).filter(DiscountCodeModel.discount_id == discount_id).update(
                {DiscountCodeModel.used_count: DiscountCodeModel.used_count + 1},
                synchronize_session=False
            )
            session.commit()

    @staticmethod
    def delete(discount_id: str) -> bool:
        with _db.SessionLocal() as session:
            model = session.get(DiscountCodeModel, discount_id)
            if model is None:
                return False
            session.delete(model)
            session.commit()
            return True

# ============================================================================
# MODERATION
# ============================================================================

def _feedback_to_domain(model: FeedbackModel) -> Feedback:
    return Feedback(
        feedback_id=model.feedback_id,
        name=model.name,
        email=model.email,
        message=model.message,
        trip_id=model.trip_id,
        submitted_at=model.submitted_at,
    )

class FeedbackStorage:
    @staticmethod
    def save(feedback: Feedback) -> None:
        with _db.SessionLocal() as session:
            session.merge(FeedbackModel(
                feedback_id=feedback.feedback_id,
                trip_id=feedback.trip_id,
                name=feedback.name,
                email=feedback.email,
                message=feedback.message,
                submitted_at=feedback.submitted_at,
            ))
            session.commit()

    @staticmethod
    def find_by_id(feedback_id: str) -> Optional[Feedback]:
        with _db.SessionLocal() as session:
            model = session.get(FeedbackModel, feedback_id)
            return _feedback_to_domain(model) if model else None

    @staticmethod
    def get_all() -> List[Feedback]:
        with _db.SessionLocal() as session:
            models = session.query(FeedbackModel).order_by(FeedbackModel.submitted_at.desc()).all()
            return [_feedback_to_domain(m) for m in models]

    @staticmethod
    def count() -> int:
        with _db.SessionLocal() as session:
            return session.query(func.count(FeedbackModel.feedback_id)).scalar() or 0

def _report_to_domain(model: SpamReportModel) -> SpamReport:
    return SpamReport(
        report_id=model.report_id,
        reported_user_phone=model.reported_user_phone,
        reported_user_name=model.reported_user_name,
        reported_by=model.reported_by,
        trip_id=model.trip_id,
        reason=model.reason,
        created_at=model.created_at,
        is_hidden=model.is_hidden,
    )

class SpamReportStorage:
    @staticmethod
    def save(report: SpamReport) -> None:
        with _db.SessionLocal() as session:
            session.merge(SpamReportModel(
                report_id=report.report_id,
                reported_user_phone=report.reported_user_phone,
                reported_user_name=report.reported_user_name,
                reported_by=report.reported_by,
                trip_id=report.trip_id,
                reason=report.reason,
                is_hidden=report.is_hidden,
                created_at=report.created_at,
            ))
            session.commit()

    @staticmethod
    def find_by_id(report_id: str) -> Optional[SpamReport]:
        with _db.SessionLocal() as session:
            model = session.get(SpamReportModel, report_id)
            return _report_to_domain(model) if model else None

    @staticmethod
    def get_visible() -> List[SpamReport]:
        with _db.SessionLocal() as session:
            models = (
                session.query(SpamReportModel)
                .filter(SpamReportModel.is_hidden.is_(False))
                .order_by(SpamReportModel.created_at.desc())
                .all()
            )
            return [_report_to_domain(m) for m in models]

    @staticmethod
    def find_by_phone(phone: str) -> List[SpamReport]:
        with _db.SessionLocal() as session:
            models = (
                session.query(SpamReportModel)
                .filter(SpamReportModel.reported_user_phone == phone)
                .order_by(SpamReportModel.created_at.desc())
                .all()
            )
            return [_report_to_domain(m) for m in models]

# ============================================================================
# CONTENT
# ============================================================================

class TermsContentStorage:
    @staticmethod
    def save(terms: TermsContent) -> None:
        # upsert keyed on the text block name
        with _db.SessionLocal() as session:
            session.merge(TermsContentModel(
                key=terms.key,
                content=terms.content,
                updated_at=terms.updated_at,
            ))
            session.commit()

    @staticmethod
    def find_by_key(key: str) -> Optional[TermsContent]:
        with _db.SessionLocal() as session:
            model = session.get(TermsContentModel, key)
            if not model:
                return None
            return TermsContent(key=model.key, content=model.content, updated_at=model.updated_at)
