"""
Point-of-contact records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.utils import format_timestamp, parse_timestamp, utc_now


class ContactRole(str, Enum):
    """Role a contact plays for a registry object."""
    ADMIN = "admin"
    TECH = "tech"
    BILLING = "billing"
    ABUSE = "abuse"


@dataclass
class Contact:
    """
    A registry contact.

    Attributes:
        id: Registry handle; also the identity key
        name: Person or role name
        email: Contact email address
        phone: Optional phone number
        role: One of ContactRole values (kept as text so unknown roles load)
        organization: Optional organization name
        address: Postal address lines
        created: When the registry first saw the contact
        last_modified: When the registry last changed the contact
        raw_attributes: Unparsed attributes, kept for round-tripping
    """
    id: str
    name: str = ""
    email: str = ""
    phone: str = ""
    role: str = ""
    organization: str = ""
    address: List[str] = field(default_factory=list)
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    raw_attributes: Dict[str, List[str]] = field(default_factory=dict)

    def validate(self) -> List[str]:
        """Return a list of problems; empty when the contact is valid."""
        errors = []
        if not self.name:
            errors.append("contact name is required")
        if not self.email:
            errors.append("contact email is required")
        if not self.role:
            errors.append("contact role is required")
        elif self.role not in {r.value for r in ContactRole}:
            errors.append(f"invalid contact role: {self.role}")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
        }
        if self.phone:
            data["phone"] = self.phone
        data["role"] = self.role
        if self.organization:
            data["organization"] = self.organization
        if self.address:
            data["address"] = list(self.address)
        if self.created is not None:
            data["created"] = format_timestamp(self.created)
        if self.last_modified is not None:
            data["last_modified"] = format_timestamp(self.last_modified)
        if self.raw_attributes:
            data["raw_attributes"] = {k: list(v) for k, v in self.raw_attributes.items()}
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Contact":
        role = data.get("role", "")
        if isinstance(role, ContactRole):
            role = role.value
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            role=role,
            organization=data.get("organization", ""),
            address=list(data.get("address") or []),
            created=parse_timestamp(data.get("created")),
            last_modified=parse_timestamp(data.get("last_modified")),
            raw_attributes={
                k: list(v) for k, v in (data.get("raw_attributes") or {}).items()
            },
        )


@dataclass
class ContactList:
    """A captured collection of contacts."""
    contacts: List[Contact] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utc_now)
    count: int = -1

    def __post_init__(self):
        if self.count < 0:
            self.count = len(self.contacts)

    def by_id(self) -> Dict[str, Contact]:
        """Index the contacts by id."""
        return {contact.id: contact for contact in self.contacts}

    def __len__(self) -> int:
        return len(self.contacts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contacts": [contact.to_dict() for contact in self.contacts],
            "timestamp": format_timestamp(self.timestamp),
            "count": self.count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContactList":
        contacts = [Contact.from_dict(c) for c in data.get("contacts") or []]
        return cls(
            contacts=contacts,
            timestamp=parse_timestamp(data.get("timestamp")) or utc_now(),
            count=data.get("count", len(contacts)),
        )
