"""
Clearance enrichment from the legacy clearance-by-keyword API

Two entry points:
    prefetch  - before a new student row exists, find their clearance record
    backfill  - after login, fill legacy fields still missing on a student

Both are best-effort. Failures come back as a ClearanceLookup outcome and are
logged; nothing here raises into the login flow.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from gradportal.models import db, User, ROLE_STUDENT
from gradportal.services.legacy_portal import LegacyPortalClient
from gradportal.utils.exceptions import LegacyParseError, LegacyPortalError
from gradportal.utils.helpers import log_info, log_warning

OUTCOME_MATCHED = 'matched'
OUTCOME_NO_MATCH = 'no_match'
OUTCOME_NETWORK_ERROR = 'network_error'
OUTCOME_PARSE_ERROR = 'parse_error'
OUTCOME_SKIPPED = 'skipped'
OUTCOME_SAVE_ERROR = 'save_error'


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _int(value: Any) -> Optional[int]:
    try:
        return int(value) if value not in (None, '') else None
    except (TypeError, ValueError):
        return None


def _decimal(value: Any) -> Optional[Decimal]:
    if value in (None, ''):
        return None
    try:
        return Decimal(str(value).replace(',', ''))
    except InvalidOperation:
        return None


@dataclass
class ClearanceRecord:
    """One row of the legacy clearance API"""
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    middlename: Optional[str] = None
    account_id: Optional[int] = None
    student_number: Optional[str] = None
    degree_code: Optional[str] = None
    degree_program_id: Optional[int] = None
    year_level: Optional[str] = None
    balance: Optional[Decimal] = None
    statuscode: Optional[int] = None

    @classmethod
    def from_legacy(cls, row: Dict[str, Any]) -> 'ClearanceRecord':
        return cls(
            firstname=_text(row.get('firstname')),
            lastname=_text(row.get('lastname')),
            middlename=_text(row.get('middlename')),
            account_id=_int(row.get('account_id')),
            student_number=_text(row.get('student_number')),
            degree_code=_text(row.get('degree_code')),
            degree_program_id=_int(row.get('degree_program_id')),
            year_level=_text(row.get('year_level')),
            balance=_decimal(row.get('balance')),
            statuscode=_int(row.get('statuscode')),
        )

    def profile_fields(self) -> Dict[str, Any]:
        """Optional User columns this record carries values for"""
        fields = {
            'student_number_legacy': self.student_number,
            'degree_code': self.degree_code,
            'degree_program_id': self.degree_program_id,
            'year_level': self.year_level,
            'balance': self.balance,
            'clearance_statuscode': self.statuscode,
        }
        return {key: value for key, value in fields.items() if value is not None}


@dataclass
class ClearanceLookup:
    outcome: str
    record: Optional[ClearanceRecord] = None
    detail: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.outcome == OUTCOME_MATCHED and self.record is not None


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and a.strip().lower() == b.strip().lower()


def match_by_student_number(records: List[ClearanceRecord], student_number: Optional[str]) -> Optional[ClearanceRecord]:
    """Record whose student number equals the login id, else the sole record"""
    if student_number:
        for record in records:
            if record.student_number == student_number:
                return record
    if len(records) == 1:
        return records[0]
    return None


def match_for_user(records: List[ClearanceRecord], user: User) -> Optional[ClearanceRecord]:
    """Match by student number, then first and last name (case-insensitive), then sole record"""
    if user.student_number:
        for record in records:
            if record.student_number == user.student_number:
                return record
    for record in records:
        if _same(record.firstname, user.first_name) and _same(record.lastname, user.last_name):
            return record
    if len(records) == 1:
        return records[0]
    return None


class ClearanceEnricher:
    """Looks up and applies clearance records for students"""

    def __init__(self, legacy: LegacyPortalClient):
        self.legacy = legacy

    def _search(self, legacy_session: Dict[str, Any], keyword: str) -> List[ClearanceRecord]:
        rows = self.legacy.fetch_clearance_by_keyword(legacy_session, keyword)
        return [ClearanceRecord.from_legacy(row) for row in rows]

    @staticmethod
    def _failed(error: LegacyPortalError) -> ClearanceLookup:
        if isinstance(error, LegacyParseError):
            return ClearanceLookup(OUTCOME_PARSE_ERROR, detail=str(error))
        return ClearanceLookup(OUTCOME_NETWORK_ERROR, detail=str(error))

    def prefetch(self, legacy_session: Dict[str, Any], student_number: str) -> ClearanceLookup:
        """
        Find the clearance record of a student who has no local row yet

        Args:
            legacy_session: Session returned by the legacy login
            student_number: Numeric id the student logged in with

        Returns:
            ClearanceLookup; MATCHED carries the record
        """
        try:
            home = self.legacy.fetch_home_html(legacy_session)
            name = self.legacy.extract_student_name(home)
            if not name or not name.get('last_name'):
                raise LegacyParseError('Student name not found on legacy home page')
            records = self._search(legacy_session, name['last_name'])
        except LegacyPortalError as e:
            lookup = self._failed(e)
            log_warning(f"Clearance prefetch for {student_number} failed ({lookup.outcome})", e)
            return lookup
        except (KeyError, AttributeError, TypeError) as e:
            log_warning(f"Clearance prefetch for {student_number} failed (parse_error)", e)
            return ClearanceLookup(OUTCOME_PARSE_ERROR, detail=str(e))

        record = match_by_student_number(records, student_number)
        if record is None:
            log_info(f"Clearance prefetch for {student_number}: no match among {len(records)} records")
            return ClearanceLookup(OUTCOME_NO_MATCH)
        return ClearanceLookup(OUTCOME_MATCHED, record)

    @staticmethod
    def needs_backfill(user: User) -> bool:
        if not user.has_role(ROLE_STUDENT):
            return False
        if user.legacy_account_id is not None and user.clearance_statuscode is not None:
            return False
        return not user.has_placeholder_name

    @staticmethod
    def apply(user: User, record: ClearanceRecord, include_name: bool = False) -> bool:
        """
        Copy record fields onto the user, writing only values that differ

        Returns:
            True if any column changed
        """
        changes: Dict[str, Any] = dict(record.profile_fields())
        if record.account_id is not None:
            changes['legacy_account_id'] = record.account_id
        if include_name:
            if record.firstname:
                changes['first_name'] = record.firstname
            if record.lastname:
                changes['last_name'] = record.lastname
            if record.middlename:
                changes['middle_name'] = record.middlename
        if not user.student_number and record.student_number:
            changes['student_number'] = record.student_number

        changed = False
        for column, value in changes.items():
            if getattr(user, column) != value:
                setattr(user, column, value)
                changed = True
        if changed:
            user.legacy_data_synced_at = datetime.utcnow()
        return changed

    def backfill(self, user: User, legacy_session: Dict[str, Any]) -> ClearanceLookup:
        """Fill missing legacy fields on a logged-in student. Never raises."""
        if not self.needs_backfill(user):
            return ClearanceLookup(OUTCOME_SKIPPED)
        try:
            records = self._search(legacy_session, user.last_name)
        except LegacyPortalError as e:
            lookup = self._failed(e)
            log_warning(f"Clearance backfill for user {user.id} failed ({lookup.outcome})", e)
            return lookup

        record = match_for_user(records, user)
        if record is None:
            log_info(f"Clearance backfill for user {user.id}: no match among {len(records)} records")
            return ClearanceLookup(OUTCOME_NO_MATCH)

        try:
            if self.apply(user, record):
                db.session.commit()
                log_info(f"Clearance backfill updated user {user.id} (legacy account {record.account_id})")
        except Exception as e:
            db.session.rollback()
            log_warning(f"Clearance backfill for user {user.id} could not be saved", e)
            return ClearanceLookup(OUTCOME_SAVE_ERROR, record, detail=str(e))
        return ClearanceLookup(OUTCOME_MATCHED, record)
