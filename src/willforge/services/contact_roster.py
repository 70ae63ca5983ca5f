"""
Contact roster validation and management.

`is_complete` is the single completeness predicate: the Contacts stage and
the contact editing surface both go through it.
"""

import re
from datetime import datetime
from typing import Iterable

import structlog
from pydantic import BaseModel, Field

from willforge.config import get_settings
from willforge.models.contact import Contact, ContactRole
from willforge.models.facts import FactModel, normalize_key

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
PHONE_PATTERN = re.compile(r"(\+\d{1,3})?[-.\s]?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")

# Grouping order for display; roles not listed fall under "Other"
ROLE_DISPLAY_ORDER = [
    "Executor",
    "Alternate Executor",
    "Guardian",
    "Beneficiary",
    "Trustee",
    "Witness",
    "Other",
]


class ContactRemovalError(ValueError):
    """Raised when removing a contact would leave a required role empty."""


class RosterReport(BaseModel):
    """Result of validating a roster against the required roles."""

    complete: bool
    missing_roles: list[str] = Field(default_factory=list)
    unreachable_contacts: list[str] = Field(default_factory=list)

    @property
    def message(self) -> str:
        if self.complete:
            return "All required contacts have been provided."
        problems = []
        if self.missing_roles:
            problems.append(f"Missing required role(s): {', '.join(self.missing_roles)}")
        if self.unreachable_contacts:
            problems.append(
                "Add an email or phone number for: " + ", ".join(self.unreachable_contacts)
            )
        return ". ".join(problems) + "."


def _required(required_roles: Iterable[str] | None) -> list[str]:
    if required_roles is None:
        required_roles = get_settings().required_contact_roles
    return [r.strip() for r in required_roles if r and r.strip()]


def _holds_required_role(contact: Contact, required: list[str]) -> bool:
    return any(contact.has_role(role) for role in required)


def check_roster(
    contacts: Iterable[Contact], required_roles: Iterable[str] | None = None
) -> RosterReport:
    """Validate a roster, naming each missing role and unreachable contact."""
    contacts = list(contacts)
    required = _required(required_roles)

    missing = [
        role for role in required if not any(c.has_role(role) for c in contacts)
    ]
    unreachable = [
        c.name or c.id
        for c in contacts
        if _holds_required_role(c, required) and not c.is_reachable
    ]
    return RosterReport(
        complete=not missing and not unreachable,
        missing_roles=missing,
        unreachable_contacts=unreachable,
    )


def is_complete(
    contacts: Iterable[Contact], required_roles: Iterable[str] | None = None
) -> bool:
    """True iff every required role is present and every required-role contact is reachable."""
    return check_roster(contacts, required_roles).complete


def can_remove(
    contact: Contact,
    all_contacts: Iterable[Contact],
    required_roles: Iterable[str] | None = None,
) -> bool:
    """False if `contact` is the only holder of a required role."""
    required = _required(required_roles)
    held = [role for role in required if contact.has_role(role)]
    if not held:
        return True
    others = [c for c in all_contacts if c.id != contact.id]
    return all(any(o.has_role(role) for o in others) for role in held)


class ContactSuggestion(BaseModel):
    """A contact proposed from the conversation; the user decides whether to add it."""

    name: str
    role: ContactRole
    reason: str


class ContactRoster:
    """
    Mutable contact list for one will.

    Edits come from direct user action only; the extractor never creates contacts.
    """

    def __init__(
        self,
        contacts: Iterable[Contact] | None = None,
        required_roles: Iterable[str] | None = None,
    ):
        self._contacts: list[Contact] = list(contacts or [])
        self.required_roles = _required(required_roles)

    @property
    def contacts(self) -> list[Contact]:
        return list(self._contacts)

    def __len__(self) -> int:
        return len(self._contacts)

    def get(self, contact_id: str) -> Contact:
        for contact in self._contacts:
            if contact.id == contact_id:
                return contact
        raise KeyError(contact_id)

    def add(
        self,
        name: str,
        role: ContactRole | str,
        email: str | None = None,
        phone: str | None = None,
        address: str | None = None,
    ) -> Contact:
        contact = Contact(name=name, role=role, email=email, phone=phone, address=address)
        self._contacts.append(contact)
        logger.info("contact_added", contact_id=contact.id, role=contact.role_label)
        return contact

    def update(self, contact_id: str, **fields) -> Contact:
        """Replace fields of a contact; the id never changes."""
        current = self.get(contact_id)
        data = current.model_dump(exclude={"id", "created_at", "updated_at"})
        data.update(
            {k: v for k, v in fields.items() if k not in ("id", "created_at", "updated_at")}
        )
        if "role" in fields and "custom_role" not in fields:
            data["custom_role"] = None
        updated = Contact(
            id=current.id,
            created_at=current.created_at,
            updated_at=datetime.utcnow(),
            **data,
        )
        dropped = [
            role for role in self.required_roles
            if current.has_role(role) and not updated.has_role(role)
        ]
        if dropped and not can_remove(current, self._contacts, dropped):
            raise ContactRemovalError(
                f"{current.name} is the only {current.role_label}; add another "
                f"{current.role_label} before changing this contact's role."
            )
        index = self._contacts.index(current)
        self._contacts[index] = updated
        logger.info("contact_updated", contact_id=contact_id, fields=sorted(fields))
        return updated

    def remove(self, contact_id: str) -> Contact:
        contact = self.get(contact_id)
        if not can_remove(contact, self._contacts, self.required_roles):
            raise ContactRemovalError(
                f"{contact.name} is the only {contact.role_label}; add another "
                f"{contact.role_label} before removing this contact."
            )
        self._contacts.remove(contact)
        logger.info("contact_removed", contact_id=contact_id, role=contact.role_label)
        return contact

    def report(self) -> RosterReport:
        return check_roster(self._contacts, self.required_roles)

    @property
    def is_complete(self) -> bool:
        return is_complete(self._contacts, self.required_roles)

    def grouped(self) -> dict[str, list[Contact]]:
        """Contacts grouped by role in display order; empty groups omitted."""
        groups: dict[str, list[Contact]] = {label: [] for label in ROLE_DISPLAY_ORDER}
        for contact in self._contacts:
            label = contact.role_label if contact.role_label in groups else "Other"
            groups[label].append(contact)
        return {label: members for label, members in groups.items() if members}

    def validate_emails(self) -> list[str]:
        """Names of contacts whose e-mail, when given, is not a valid address."""
        return [
            c.name
            for c in self._contacts
            if c.email and c.email.strip() and not EMAIL_PATTERN.match(c.email.strip())
        ]

    def validate_phones(self) -> list[str]:
        """Names of contacts whose phone, when given, does not look like a phone number."""
        return [
            c.name
            for c in self._contacts
            if c.phone and c.phone.strip() and not PHONE_PATTERN.search(c.phone)
        ]

    def has_person(self, name: str) -> bool:
        key = normalize_key(name)
        return any(normalize_key(c.name) == key for c in self._contacts)


def suggest_contacts(facts: FactModel, roster: ContactRoster) -> list[ContactSuggestion]:
    """Propose contacts for people named in the conversation but missing from the roster."""
    candidates = [
        (facts.executor, ContactRole.EXECUTOR, "Named as executor"),
        (facts.alternate_executor, ContactRole.ALTERNATE_EXECUTOR, "Named as alternate executor"),
        (facts.guardian, ContactRole.GUARDIAN, "Named as guardian"),
        (facts.alternate_guardian, ContactRole.GUARDIAN, "Named as alternate guardian"),
    ]
    suggestions: list[ContactSuggestion] = []
    seen: set[str] = set()
    for name, role, reason in candidates:
        if not name or roster.has_person(name) or normalize_key(name) in seen:
            continue
        seen.add(normalize_key(name))
        suggestions.append(ContactSuggestion(name=name, role=role, reason=reason))
    return suggestions
