"""
Deferred profile enrichment

A login leaves a pending-enrichment marker next to the cached legacy session.
The first call here consumes the marker and copies name parts from the legacy
home page onto the user. Nothing is copied unless the user still carries the
"New User" placeholder; then only placeholder or empty parts are replaced.
"""

from typing import Dict, Optional

from gradportal.models import db, User, PLACEHOLDER_FIRST_NAME, PLACEHOLDER_LAST_NAME
from gradportal.services.cache_service import LegacySessionStore
from gradportal.services.legacy_portal import LegacyPortalClient
from gradportal.utils.exceptions import LegacyPortalError
from gradportal.utils.helpers import log_debug, log_info, log_warning

PLACEHOLDERS = {
    'first_name': PLACEHOLDER_FIRST_NAME,
    'middle_name': None,
    'last_name': PLACEHOLDER_LAST_NAME,
}


class ProfileEnricher:

    def __init__(self, legacy: LegacyPortalClient, store: LegacySessionStore):
        self.legacy = legacy
        self.store = store

    @staticmethod
    def _name_changes(user: User, parts: Dict[str, Optional[str]]) -> Dict[str, str]:
        if not user.has_placeholder_name and user.first_name != PLACEHOLDER_FIRST_NAME:
            return {}
        changes = {}
        for column, placeholder in PLACEHOLDERS.items():
            value = parts.get(column)
            current = getattr(user, column)
            if value and (not current or current == placeholder) and current != value:
                changes[column] = value
        return changes

    def process_pending(self, user: User) -> bool:
        """
        Consume the user's pending-enrichment marker

        Returns:
            True if the user row changed
        """
        marker = self.store.pull_pending_enrichment(user.id)
        if marker is None:
            log_debug(f"No pending enrichment for user {user.id}")
            return False
        legacy_session = self.store.get_session(user.id)
        if legacy_session is None:
            log_debug(f"Pending enrichment for user {user.id} dropped: legacy session expired")
            return False

        try:
            home = self.legacy.fetch_home_html(legacy_session)
        except LegacyPortalError as e:
            log_warning(f"Enrichment: home page fetch failed for user {user.id} ({e.kind})", e)
            return False

        parts = self.legacy.extract_student_name(home)
        if not parts:
            log_debug(f"Enrichment: no name on legacy home page for user {user.id}")
            return False

        changes = self._name_changes(user, parts)
        if not changes:
            return False
        for column, value in changes.items():
            setattr(user, column, value)
        db.session.commit()
        log_info(f"Enrichment updated {sorted(changes)} for user {user.id} (staff={marker.get('is_staff')})")
        return True
