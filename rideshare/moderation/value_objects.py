from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

@dataclass(frozen=True)
class Feedback:
    feedback_id: str
    name: str
    email: str
    message: str
    trip_id: Optional[str] = None
    submitted_at: datetime = field(default_factory=datetime.now)

@dataclass
class SpamReport:
    report_id: str
    reported_user_phone: str
    reported_user_name: str
    reported_by: str
    trip_id: str
    reason: str
    created_at: datetime = field(default_factory=datetime.now)
    is_hidden: bool = False

    def hide(self) -> None:
        if self.is_hidden:
            raise ValueError("Report is already hidden")
        self.is_hidden = True
