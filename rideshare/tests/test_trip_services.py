from datetime import date, datetime, timedelta
from decimal import Decimal

from rideshare.auth import AdminRole, AdminUser
from rideshare.errors import ErrorKind, GENERIC_ERROR_MESSAGE
from rideshare.storage import DiscountCodeStorage, TripStorage
from rideshare.trip import services
from rideshare.trip.value_objects import TripStatus

NOW = datetime(2026, 1, 1, 9, 0)
ADMIN = AdminUser(user_id="a1", username="root", password_hash="x", role=AdminRole.ADMIN, created_at=NOW, updated_at=NOW)
STAFF = AdminUser(user_id="s1", username="helper", password_hash="x", role=AdminRole.STAFF, created_at=NOW, updated_at=NOW)

def _create(future_date, **overrides):
    payload = {
        "itinerary_id": "iti-airport",
        "date": future_date.isoformat(),
        "time": "08:00",
        "number_of_people": 2,
        "contact_name": "Budi",
        "contact_phone": "+6281234567890",
        "dropoff_address": "Hotel Kuta",
        "district": "Kuta",
        "additional_service_ids": ["svc-luggage"],
    }
    payload.update(overrides)
    return services.create_trip(payload)

def _join(trip_id, **overrides):
    payload = {
        "trip_id": trip_id,
        "name": "Sari",
        "phone": "081298765432",
        "number_of_people": 1,
        "address": "Villa Seminyak",
    }
    payload.update(overrides)
    return services.join_trip(payload)

def _confirmed_trip_id(future_date):
    trip_id = _create(future_date).trip_id
    assert services.confirm_payment(trip_id, ADMIN).success
    return trip_id

# ----------------------------------------------------------------------
# create
# ----------------------------------------------------------------------

def test_create_trip_prices_and_persists(catalog, future_date):
    result = _create(future_date)
    assert result.success
    assert result.trip_id and result.participant_id

    trip = TripStorage.find_by_id(result.trip_id)
    assert trip.status == TripStatus.PENDING_PAYMENT
    assert trip.total_price == Decimal("1150000")
    assert trip.itinerary.name == "Airport Pickup"
    assert trip.creator.participant_id == result.participant_id

def test_create_trip_with_discount_counts_redemption(catalog, future_date):
    result = _create(future_date, discount_code="ten")
    trip = TripStorage.find_by_id(result.trip_id)
    assert trip.total_price == Decimal("1035000")
    assert trip.creator.discount_code == "TEN"
    assert DiscountCodeStorage.find_by_code("TEN").used_count == 1

def test_create_trip_ignores_unknown_discount(catalog, future_date):
    result = _create(future_date, discount_code="NOPE")
    assert result.success
    assert TripStorage.find_by_id(result.trip_id).total_price == Decimal("1150000")

def test_create_trip_validation_message(catalog, future_date):
    result = _create(future_date, contact_phone="abc", number_of_people=0)
    assert not result.success
    assert result.error == ErrorKind.VALIDATION
    assert "Invalid phone number format." in result.message
    assert "At least one person is required." in result.message

def test_create_trip_address_rule(catalog, future_date):
    result = _create(future_date, dropoff_address=None, pickup_address="Airport")
    assert result.error == ErrorKind.VALIDATION
    assert result.message == "Dropoff address is required for airport pickups."

def test_create_trip_unknown_itinerary(catalog, future_date):
    result = _create(future_date, itinerary_id="missing")
    assert result.error == ErrorKind.NOT_FOUND
    assert result.message == "Selected itinerary not found."

def test_unexpected_error_is_reduced_to_generic_message(catalog, future_date, monkeypatch):
    def boom(trip):
        raise RuntimeError("database exploded")
    monkeypatch.setattr(TripStorage, "save", staticmethod(boom))

    result = _create(future_date)
    assert not result.success
    assert result.error == ErrorKind.UNEXPECTED
    assert result.message == GENERIC_ERROR_MESSAGE

# ----------------------------------------------------------------------
# join
# ----------------------------------------------------------------------

def test_join_pending_trip_is_rejected(catalog, future_date):
    trip_id = _create(future_date).trip_id
    result = _join(trip_id)
    assert result.error == ErrorKind.CONFLICT
    assert TripStorage.find_by_id(trip_id).participants == []

def test_join_confirmed_trip(catalog, future_date):
    trip_id = _confirmed_trip_id(future_date)
    result = _join(trip_id, discount_code="HEMAT200")
    assert result.success

    trip = TripStorage.find_by_id(trip_id)
    joiner = trip.find_payer(result.participant_id)
    # base price only, the creator's district and services are not inherited
    assert joiner.price_paid == Decimal("300000")
    assert joiner.status == TripStatus.PENDING_PAYMENT
    assert trip.overall_status() == TripStatus.PENDING_PAYMENT

def test_join_missing_or_deleted_trip(catalog, future_date):
    assert _join("missing").error == ErrorKind.NOT_FOUND

    trip_id = _confirmed_trip_id(future_date)
    assert services.delete_trip(trip_id, ADMIN).success
    result = _join(trip_id)
    assert result.error == ErrorKind.NOT_FOUND
    assert result.message == "Trip not found or no longer available."

# ----------------------------------------------------------------------
# payment workflow
# ----------------------------------------------------------------------

def test_upload_proof_and_views(catalog, future_date):
    with_proof = _create(future_date).trip_id
    without_proof = _create(future_date, contact_name="Andi").trip_id
    assert services.upload_proof(with_proof, "https://cdn/proof.png").success

    pending = services.get_pending_proof_participants()
    assert [(v.trip_id, v.is_main_booker) for v in pending] == [(with_proof, True)]
    assert pending[0].transfer_proof_image_url == "https://cdn/proof.png"

    not_paid = services.get_not_paid_participants()
    assert [v.trip_id for v in not_paid] == [without_proof]
    assert not_paid[0].name == "Andi"

def test_views_include_joiners(catalog, future_date):
    trip_id = _confirmed_trip_id(future_date)
    joined = _join(trip_id)
    assert services.upload_proof(trip_id, "https://cdn/joiner.png", joined.participant_id).success

    pending = services.get_pending_proof_participants()
    assert [v.participant_id for v in pending] == [joined.participant_id]
    assert pending[0].itinerary_name == "Airport Pickup"

def test_confirm_twice_is_a_conflict(catalog, future_date):
    trip_id = _create(future_date).trip_id
    assert services.confirm_payment(trip_id, ADMIN).success
    again = services.confirm_payment(trip_id, STAFF)
    assert again.error == ErrorKind.CONFLICT

    creator = TripStorage.find_by_id(trip_id).creator
    assert creator.status == TripStatus.PAYMENT_CONFIRMED
    assert creator.confirmation.admin_username == "root"

def test_revert_is_admin_only(catalog, future_date):
    trip_id = _confirmed_trip_id(future_date)
    denied = services.revert_payment(trip_id, STAFF)
    assert denied.error == ErrorKind.FORBIDDEN
    assert TripStorage.find_by_id(trip_id).status == TripStatus.PAYMENT_CONFIRMED

    assert services.revert_payment(trip_id, ADMIN).success
    creator = TripStorage.find_by_id(trip_id).creator
    assert creator.status == TripStatus.PENDING_PAYMENT
    assert creator.confirmation is None

def test_unknown_participant(catalog, future_date):
    trip_id = _create(future_date).trip_id
    result = services.confirm_payment(trip_id, ADMIN, "ghost")
    assert result.error == ErrorKind.NOT_FOUND
    assert services.upload_proof("missing", "https://x").error == ErrorKind.NOT_FOUND

def test_cancel_payment(catalog, future_date):
    trip_id = _create(future_date).trip_id
    assert services.cancel_payment(trip_id, STAFF).success
    trip = TripStorage.find_by_id(trip_id)
    assert trip.overall_status() == TripStatus.CANCELLED

def test_complete_elapsed_trips(catalog, future_date):
    trip_id = _confirmed_trip_id(future_date)
    result = services.complete_elapsed_trips(today=future_date + timedelta(days=1))
    assert result.success
    assert TripStorage.find_by_id(trip_id).status == TripStatus.COMPLETED

    assert services.complete_elapsed_trips(today=future_date + timedelta(days=1)).message.startswith("0 ")

# ----------------------------------------------------------------------
# queries
# ----------------------------------------------------------------------

def test_joinable_trips_sorted_and_filtered(catalog, future_date):
    later = _confirmed_trip_id(future_date + timedelta(days=3))
    sooner = _confirmed_trip_id(future_date)
    _create(future_date)  # unpaid
    past = _confirmed_trip_id(date.today() - timedelta(days=2))

    joinable = services.get_joinable_trips()
    ids = [t.trip_id for t in joinable]
    assert ids == [sooner, later]
    assert past not in ids
    assert len(services.get_joinable_trips(limit=1)) == 1

def test_user_trips_by_phone(catalog, future_date):
    own = _create(future_date).trip_id
    joined = _confirmed_trip_id(future_date)
    _join(joined, phone="089911112222")

    assert [t.trip_id for t in services.get_user_trips("089911112222")] == [joined]
    assert {t.trip_id for t in services.get_user_trips("+6281234567890")} == {own, joined}
    assert services.get_user_trips("  ") == []

def test_list_trips_paging_search_and_status(catalog, future_date):
    for i in range(12):
        _create(future_date, contact_name=f"Guest {i}")
    confirmed = _confirmed_trip_id(future_date)

    page_one, total = services.list_trips(page=1)
    assert total == 13
    assert len(page_one) == 10
    page_two, _ = services.list_trips(page=2)
    assert len(page_two) == 3

    found, total = services.list_trips(search="guest 11")
    assert total == 1 and found[0].contact_name == "Guest 11"

    paid, total = services.list_trips(status=TripStatus.PAYMENT_CONFIRMED)
    assert [t.trip_id for t in paid] == [confirmed]
    assert services.total_pages(13) == 2

def test_delete_trip_rules(catalog, future_date):
    confirmed = _confirmed_trip_id(future_date)
    denied = services.delete_trip(confirmed, STAFF)
    assert denied.error == ErrorKind.FORBIDDEN

    pending = _create(future_date).trip_id
    assert services.delete_trip(pending, STAFF).success
    assert services.delete_trip(confirmed, ADMIN).success

    assert services.get_trip(pending) is None
    deleted = services.get_deleted_trips()
    assert {t.trip_id for t in deleted} == {pending, confirmed}
    assert services.get_trip(pending, include_deleted=True).deletion.deleted_by == "helper"
    assert services.list_trips()[1] == 0

def test_trip_comments(catalog, future_date):
    trip_id = _create(future_date).trip_id
    assert services.add_trip_comment(trip_id, "Driver assigned", STAFF).success
    assert services.add_trip_comment(trip_id, "  ", STAFF).error == ErrorKind.VALIDATION

    comments = services.get_trip_comments(trip_id)
    assert [(c.username, c.comment) for c in comments] == [("helper", "Driver assigned")]
    assert services.get_trip_comments("missing") is None

def test_validate_discount_code(catalog):
    assert services.validate_discount_code("hemat200").code == "HEMAT200"
    assert services.validate_discount_code("") is None
    assert services.validate_discount_code("nope") is None
