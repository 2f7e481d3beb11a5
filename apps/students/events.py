"""
Student Domain Events

Published after the registering transaction commits.
"""

from dataclasses import dataclass

from shared.domain.base import DomainEvent


@dataclass
class StudentRegistered(DomainEvent):
    """
    Event: A student was registered from the public booking form

    Triggers:
    - Send the welcome email
    """
    name: str = ''
    email: str = ''
    phone: str = ''

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
        })
        return data
