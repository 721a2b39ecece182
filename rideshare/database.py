from sqlalchemy import (
    create_engine, Column, String, Integer, Boolean, Date,
    Text, Numeric, DateTime, ForeignKey, JSON
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship

from rideshare.config import Config

# Do NOT default to a local SQLite file here; tests set `DATABASE_URL`
# themselves (see `rideshare/tests/conftest.py`).
DATABASE_URL = Config.get_database_url()

if not DATABASE_URL:
    raise EnvironmentError(
        "DATABASE_URL is not set. For runtime set DATABASE_URL to your Postgres database. "
        "For tests, `rideshare/tests/conftest.py` sets DATABASE_URL to an in-memory SQLite database."
    )

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False}
    )
else:
    engine = create_engine(DATABASE_URL, echo=False, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()

# ============================================================================
# ORM MODELS
# ============================================================================

class TripModel(Base):
    __tablename__ = "trips"

    trip_id = Column(String, primary_key=True)
    # snapshot of the itinerary at booking time, never re-read from the catalog
    itinerary_id = Column(String, nullable=False)
    itinerary_name = Column(String, nullable=False)
    itinerary_type = Column(String(32), nullable=False)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(5), nullable=False)
    pickup_address = Column(String, nullable=True)
    dropoff_address = Column(String, nullable=True)
    secondary_contact = Column(String, nullable=True)
    district = Column(String, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_by = Column(String, nullable=True)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False)

    participants = relationship(
        "ParticipantModel",
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by="ParticipantModel.position",
    )
    comments = relationship(
        "TripCommentModel",
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by="TripCommentModel.created_at",
    )


class ParticipantModel(Base):
    __tablename__ = "trip_participants"

    participant_id = Column(String, primary_key=True)
    trip_id = Column(String, ForeignKey("trips.trip_id", ondelete="CASCADE"), nullable=False, index=True)
    # 0 is the trip creator, joiners follow in join order
    position = Column(Integer, nullable=False, default=0)
    is_main_booker = Column(Boolean, nullable=False, default=False)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False, index=True)
    number_of_people = Column(Integer, nullable=False)
    address = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    nationality = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    additional_service_ids = Column(JSON, nullable=False, default=list)
    discount_code = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(32), nullable=False, default="pending_payment", index=True)
    price_paid = Column(Numeric(precision=12, scale=2), nullable=False, default=0)
    transfer_proof_image_url = Column(String, nullable=True)
    confirmed_by_id = Column(String, nullable=True)
    confirmed_by = Column(String, nullable=True)
    confirmed_at = Column(DateTime, nullable=True)

    trip = relationship("TripModel", back_populates="participants")


class TripCommentModel(Base):
    __tablename__ = "trip_comments"

    comment_id = Column(String, primary_key=True)
    trip_id = Column(String, ForeignKey("trips.trip_id", ondelete="CASCADE"), nullable=False, index=True)
    username = Column(String, nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)

    trip = relationship("TripModel", back_populates="comments")


class ItineraryModel(Base):
    __tablename__ = "itineraries"

    itinerary_id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    type = Column(String(32), nullable=False)
    price_per_person = Column(Numeric(precision=12, scale=2), nullable=False)
    description = Column(Text, nullable=False, default="")
    image_url = Column(String, nullable=True)
    available_times = Column(JSON, nullable=False, default=list)


class DistrictSurchargeModel(Base):
    __tablename__ = "district_surcharges"

    district_id = Column(String, primary_key=True)
    district_name = Column(String, nullable=False, unique=True)
    surcharge_amount = Column(Numeric(precision=12, scale=2), nullable=False)


class AdditionalServiceModel(Base):
    __tablename__ = "additional_services"

    service_id = Column(String, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    price = Column(Numeric(precision=12, scale=2), nullable=False)
    description = Column(Text, nullable=True)
    applicable_to = Column(JSON, nullable=False, default=list)
    icon_name = Column(String, nullable=True)


class DiscountCodeModel(Base):
    __tablename__ = "discount_codes"

    discount_id = Column(String, primary_key=True)
    code = Column(String, nullable=False, unique=True, index=True)
    type = Column(String(16), nullable=False)
    value = Column(Numeric(precision=12, scale=2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text, nullable=True)
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    expiry_date = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False)


class AdminUserModel(Base):
    __tablename__ = "admin_users"

    user_id = Column(String, primary_key=True)
    username = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(16), nullable=False, default="staff")
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class FeedbackModel(Base):
    __tablename__ = "feedback"

    feedback_id = Column(String, primary_key=True)
    trip_id = Column(String, nullable=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    submitted_at = Column(DateTime, nullable=False)


class SpamReportModel(Base):
    __tablename__ = "spam_reports"

    report_id = Column(String, primary_key=True)
    reported_user_phone = Column(String, nullable=False, index=True)
    reported_user_name = Column(String, nullable=False)
    reported_by = Column(String, nullable=False)
    trip_id = Column(String, nullable=False)
    reason = Column(Text, nullable=False)
    is_hidden = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False)


class TermsContentModel(Base):
    __tablename__ = "terms_content"

    # one row per editable text block, the booking terms use "booking_terms"
    key = Column(String, primary_key=True)
    content = Column(Text, nullable=False, default="")
    updated_at = Column(DateTime, nullable=False)


# ============================================================================
# HELPERS
# ============================================================================

def init_db():
    Base.metadata.create_all(bind=engine)

# Alias used by the application lifespan
create_tables = init_db


def drop_tables():
    """Drop all tables (use with caution)."""
    Base.metadata.drop_all(bind=engine)

