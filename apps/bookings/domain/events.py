"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass
class BookingCreated(DomainEvent):
    """
    Event: A booking (payment plus one reservation per cycle) was committed

    Triggers:
    - Send the receipt email for completed payments
    """
    payment_id: UUID | None = None
    reservation_ids: List[UUID] = field(default_factory=list)
    student_id: UUID | None = None
    branch_id: UUID | None = None
    payment_status: str = ''
    receipt: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'payment_id': str(self.payment_id) if self.payment_id else None,
            'reservation_ids': [str(pk) for pk in self.reservation_ids],
            'student_id': str(self.student_id) if self.student_id else None,
            'branch_id': str(self.branch_id) if self.branch_id else None,
            'payment_status': self.payment_status,
            'receipt': self.receipt,
        })
        return data
