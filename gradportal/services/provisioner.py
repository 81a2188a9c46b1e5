"""
Create or update the local user after a successful legacy login
"""

import secrets
from typing import Optional, Tuple
from sqlalchemy.exc import IntegrityError
from gradportal.models import (
    db, User, ROLE_STUDENT, ROLE_FACULTY, STAFF_ROLES,
    PLACEHOLDER_FIRST_NAME, PLACEHOLDER_LAST_NAME
)
from gradportal.services.clearance import ClearanceEnricher, ClearanceLookup
from gradportal.services.identifier import ClassifiedIdentifier
from gradportal.services.user_resolver import UserResolver
from gradportal.utils.exceptions import DatabaseError
from gradportal.utils.helpers import log_info, log_warning


class UserProvisioner:
    """Applies a classified identity to the users table"""

    def __init__(self, resolver: UserResolver):
        self.resolver = resolver

    @staticmethod
    def _grant_roles(user: User, identity: ClassifiedIdentifier) -> None:
        if identity.numeric_id:
            user.add_role(ROLE_STUDENT)
        if identity.is_staff:
            user.add_role(ROLE_FACULTY)

    def create(self, identity: ClassifiedIdentifier, clearance: Optional[ClearanceLookup] = None) -> User:
        """
        Create a user for an identity that resolved to nobody

        Args:
            identity: Classified login identifier
            clearance: Pre-fetched clearance lookup, if any

        Returns:
            The new user, or the row a concurrent login created first

        Raises:
            DatabaseError: if the insert fails for another reason
        """
        user = User(
            email=identity.email,
            student_number=identity.numeric_id,
            school_id=identity.numeric_id,
            role=ROLE_FACULTY if identity.is_staff else ROLE_STUDENT,
            first_name=PLACEHOLDER_FIRST_NAME,
            last_name=PLACEHOLDER_LAST_NAME,
        )
        # Nobody logs in locally with this password; the legacy portal owns credentials
        user.set_password(secrets.token_urlsafe(32))
        if clearance is not None and clearance.matched:
            ClearanceEnricher.apply(user, clearance.record, include_name=True)
        self._grant_roles(user, identity)

        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            existing = self.resolver.resolve(identity)
            if existing is None:
                raise DatabaseError(f"Could not create user {identity.email}: {e}") from e
            log_warning(f"Concurrent login created {identity.email} first; reusing user {existing.id}")
            return self.update(existing, identity)

        log_info(f"Provisioned user {user.id} ({user.role}) for '{identity.raw}'")
        return user

    def update(self, user: User, identity: ClassifiedIdentifier) -> User:
        """Backfill ids and roles on an existing user without overwriting populated fields"""
        numeric_id = identity.numeric_id
        if numeric_id and not user.student_number:
            user.student_number = numeric_id
        if numeric_id and not user.school_id:
            user.school_id = numeric_id
        if identity.is_staff and user.role not in STAFF_ROLES:
            log_info(f"Promoting user {user.id} from {user.role} to {ROLE_FACULTY}")
            user.role = ROLE_FACULTY
        self._grant_roles(user, identity)

        if db.session.dirty or db.session.new:
            db.session.commit()
        return user

    def provision(self, identity: ClassifiedIdentifier, user: Optional[User],
                  clearance: Optional[ClearanceLookup] = None) -> Tuple[User, bool]:
        """
        Returns:
            (user, created)
        """
        if user is None:
            return self.create(identity, clearance), True
        return self.update(user, identity), False
