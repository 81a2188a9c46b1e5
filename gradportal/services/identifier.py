"""
Login identifier classification
"""

import re
from dataclasses import dataclass
from typing import Optional

IDENTITY_SUPER_ADMIN = 'super_admin'
IDENTITY_STUDENT = 'student'
IDENTITY_STAFF = 'staff'

NUMERIC_ID_RE = re.compile(r'^[0-9]{6,}$')
# "firstname_2200001234" style local parts
EMBEDDED_ID_RE = re.compile(r'_(\d{6,})$')


@dataclass(frozen=True)
class ClassifiedIdentifier:
    """A login identifier and what it was recognised as"""
    raw: str
    kind: str
    numeric_id: Optional[str]
    email: str

    @property
    def is_student(self) -> bool:
        return self.kind == IDENTITY_STUDENT

    @property
    def is_staff(self) -> bool:
        return self.kind == IDENTITY_STAFF

    @property
    def is_super_admin(self) -> bool:
        return self.kind == IDENTITY_SUPER_ADMIN


def normalize_email(identifier: str, domain: str = 'uic.edu.ph') -> str:
    """Lowercase the identifier and append the institution domain when it has no '@'"""
    email = identifier.strip().lower()
    if '@' not in email:
        email = f"{email}@{domain}"
    return email


def classify_identifier(raw: str, domain: str = 'uic.edu.ph') -> ClassifiedIdentifier:
    """
    Classify a login identifier, first matching rule wins

    Args:
        raw: Identifier as typed by the user
        domain: Institution email domain

    Returns:
        ClassifiedIdentifier with the numeric student id when one was found
    """
    identifier = (raw or '').strip()
    email = normalize_email(identifier, domain)

    if identifier.lower() in (f"superadmin@{domain}", 'superadmin'):
        return ClassifiedIdentifier(identifier, IDENTITY_SUPER_ADMIN, None, f"superadmin@{domain}")

    if NUMERIC_ID_RE.match(identifier):
        return ClassifiedIdentifier(identifier, IDENTITY_STUDENT, identifier, email)

    match = EMBEDDED_ID_RE.search(identifier)
    if match:
        return ClassifiedIdentifier(identifier, IDENTITY_STUDENT, match.group(1), email)

    return ClassifiedIdentifier(identifier, IDENTITY_STAFF, None, email)
