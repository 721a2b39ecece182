from dataclasses import dataclass, field
from datetime import datetime

BOOKING_TERMS_KEY = "booking_terms"

@dataclass(frozen=True)
class TermsContent:
    key: str
    content: str = ""
    updated_at: datetime = field(default_factory=datetime.now)
