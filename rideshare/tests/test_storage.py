from datetime import date, datetime
from decimal import Decimal

from rideshare.catalog.value_objects import DiscountCode, DiscountType, ItineraryType
from rideshare.moderation.value_objects import Feedback
from rideshare.storage import DiscountCodeStorage, FeedbackStorage, TripStorage
from rideshare.trip.aggregate_root import Trip
from rideshare.trip.entities import Participant
from rideshare.trip.value_objects import ItinerarySnapshot, TripStatus

SNAPSHOT = ItinerarySnapshot("i1", "Airport Dropoff", ItineraryType.AIRPORT_DROPOFF)

def _trip(trip_id="t1", phone="081111111111", trip_date=date(2030, 1, 5)):
    creator = Participant("c-" + trip_id, "Creator", phone, 2, price_paid=Decimal("120.50"),
                          additional_service_ids=["s1"], discount_code="TEN")
    return Trip.create_trip(trip_id, SNAPSHOT, trip_date, "10:00", creator, pickup_address="Hotel")

def test_trip_round_trip_keeps_every_payer_field():
    trip = _trip()
    trip.confirm_payment(None, "a1", "root")
    joiner = Participant("p1", "Joiner", "082222222222", 1, address="Villa", price_paid=Decimal("60"))
    trip.add_participant(joiner, date(2030, 1, 1))
    trip.upload_proof("p1", "https://cdn/p1.png")
    trip.add_comment("root", "Shared van")
    TripStorage.save(trip)

    loaded = TripStorage.find_by_id("t1")
    assert loaded.itinerary == SNAPSHOT
    assert loaded.creator.is_main_booker
    assert loaded.creator.status == TripStatus.PAYMENT_CONFIRMED
    assert loaded.creator.confirmation.admin_username == "root"
    assert loaded.creator.price_paid == Decimal("120.50")
    assert loaded.creator.additional_service_ids == ["s1"]
    assert loaded.creator.address == "Hotel"

    assert [p.participant_id for p in loaded.participants] == ["p1"]
    assert loaded.participants[0].transfer_proof_image_url == "https://cdn/p1.png"
    assert loaded.participants[0].confirmation is None
    assert [c.comment for c in loaded.comments] == ["Shared van"]

def test_save_overwrites_previous_state():
    trip = _trip()
    TripStorage.save(trip)
    trip.confirm_payment(None, "a1", "root")
    TripStorage.save(trip)
    trip.revert_payment(None)
    TripStorage.save(trip)

    loaded = TripStorage.find_by_id("t1")
    assert loaded.status == TripStatus.PENDING_PAYMENT
    assert loaded.creator.confirmation is None
    assert TripStorage.count() == 1

def test_deleted_trips_are_hidden():
    trip = _trip()
    trip.soft_delete("root", datetime(2030, 1, 2, 8, 0))
    TripStorage.save(trip)
    TripStorage.save(_trip("t2"))

    assert TripStorage.find_by_id("t1") is None
    assert TripStorage.find_by_id("t1", include_deleted=True).deletion.deleted_by == "root"
    assert [t.trip_id for t in TripStorage.get_all()] == ["t2"]
    assert [t.trip_id for t in TripStorage.find_deleted()] == ["t1"]
    assert TripStorage.find_by_phone("081111111111")[0].trip_id == "t2"
    assert TripStorage.count() == 1

def test_find_upcoming_and_by_status():
    TripStorage.save(_trip("past", trip_date=date(2020, 1, 1)))
    TripStorage.save(_trip("later", trip_date=date(2030, 2, 1)))
    TripStorage.save(_trip("sooner", trip_date=date(2030, 1, 1)))

    upcoming = TripStorage.find_upcoming(date(2025, 1, 1))
    assert [t.trip_id for t in upcoming] == ["sooner", "later"]
    assert len(TripStorage.find_with_payer_status(TripStatus.PENDING_PAYMENT)) == 3
    assert TripStorage.find_with_payer_status(TripStatus.PAYMENT_CONFIRMED) == []

def test_discount_lookup_and_redemption():
    DiscountCodeStorage.save(DiscountCode("d1", "promo", DiscountType.FIXED, Decimal("10"), usage_limit=2))
    assert DiscountCodeStorage.find_by_code(" Promo ").discount_id == "d1"
    assert DiscountCodeStorage.find_by_code("other") is None

    DiscountCodeStorage.record_redemption("d1")
    DiscountCodeStorage.record_redemption("d1")
    found = DiscountCodeStorage.find_by_id("d1")
    assert found.used_count == 2
    assert found.is_exhausted()
    assert DiscountCodeStorage.delete("d1") is True
    assert DiscountCodeStorage.delete("d1") is False

def test_feedback_storage():
    FeedbackStorage.save(Feedback("f1", "A", "a@example.com", "Great ride overall", trip_id="t1"))
    assert FeedbackStorage.find_by_id("f1").trip_id == "t1"
    assert FeedbackStorage.count() == 1

def test_stale_save_drops_later_joiners():
    trip = _trip()
    trip.confirm_payment(None, "a1", "root")
    TripStorage.save(trip)

    fresh = TripStorage.find_by_id("t1")
    fresh.add_participant(Participant("p1", "Joiner", "082222222222", 1, address="Villa"), date(2030, 1, 1))
    TripStorage.save(fresh)
    assert len(TripStorage.find_by_id("t1").participants) == 1

    TripStorage.save(trip)
    assert TripStorage.find_by_id("t1").participants == []
