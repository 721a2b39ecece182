from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from rideshare.errors import DomainError, StateConflictError
from .value_objects import PAID_STATUSES, PaymentConfirmation, TripStatus

class Participant:
    """One payer of a trip: the creator's own booking or a joiner's share."""

    def __init__(
        self,
        participant_id: str,
        name: str,
        phone: str,
        number_of_people: int,
        address: Optional[str] = None,
        price_paid: Decimal = Decimal("0"),
        is_main_booker: bool = False,
        gender: Optional[str] = None,
        nationality: Optional[str] = None,
        date_of_birth: Optional[date] = None,
        additional_service_ids: Optional[List[str]] = None,
        discount_code: Optional[str] = None,
        notes: Optional[str] = None
    ):
        if number_of_people < 1:
            raise DomainError("At least one person is required.")
        if price_paid < 0:
            raise DomainError("Price cannot be negative.")

        self.participant_id = participant_id
        self.name = name
        self.phone = phone
        self.number_of_people = number_of_people
        self.address = address
        # fixed at booking time, catalog edits do not touch it
        self.price_paid = price_paid
        self.is_main_booker = is_main_booker
        self.gender = gender
        self.nationality = nationality
        self.date_of_birth = date_of_birth
        self.additional_service_ids: List[str] = list(additional_service_ids or [])
        self.discount_code = discount_code
        self.notes = notes
        self.status = TripStatus.PENDING_PAYMENT
        self.transfer_proof_image_url: Optional[str] = None
        self.confirmation: Optional[PaymentConfirmation] = None

    @property
    def has_proof(self) -> bool:
        return bool(self.transfer_proof_image_url)

    @property
    def is_paid(self) -> bool:
        return self.status in PAID_STATUSES

    def attach_proof(self, image_url: str) -> None:
        if not image_url or not image_url.strip():
            raise DomainError("Proof image URL cannot be empty.")
        if self.status != TripStatus.PENDING_PAYMENT:
            raise StateConflictError("Proof can only be uploaded while payment is pending.")
        self.transfer_proof_image_url = image_url.strip()

    def confirm_payment(self, admin_id: str, admin_username: str, confirmed_at: Optional[datetime] = None) -> None:
        if self.status == TripStatus.PAYMENT_CONFIRMED:
            raise StateConflictError("Payment is already confirmed.")
        if self.status != TripStatus.PENDING_PAYMENT:
            raise StateConflictError(f"Cannot confirm payment in status {self.status.value}.")

        self.status = TripStatus.PAYMENT_CONFIRMED
        self.confirmation = PaymentConfirmation(admin_id, admin_username, confirmed_at or datetime.now())

    def revert_payment(self) -> None:
        if self.status != TripStatus.PAYMENT_CONFIRMED:
            raise StateConflictError("Only confirmed payments can be reverted.")

        self.status = TripStatus.PENDING_PAYMENT
        self.confirmation = None

    def cancel(self) -> None:
        if self.status == TripStatus.CANCELLED:
            raise StateConflictError("Booking is already cancelled.")
        if self.status != TripStatus.PENDING_PAYMENT:
            raise StateConflictError("Only unpaid bookings can be cancelled.")

        self.status = TripStatus.CANCELLED

    def mark_completed(self) -> None:
        if self.status != TripStatus.PAYMENT_CONFIRMED:
            raise StateConflictError("Only confirmed payments can be completed.")
        self.status = TripStatus.COMPLETED
