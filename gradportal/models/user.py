"""
User models for the GradPortal application
"""

from datetime import datetime
from typing import List
from werkzeug.security import generate_password_hash, check_password_hash
from gradportal.models.database import db

ROLE_STUDENT = 'Student'
ROLE_FACULTY = 'Faculty'
ROLE_COORDINATOR = 'Coordinator'
ROLE_DEAN = 'Dean'
ROLE_CHAIR = 'Chair'
ROLE_SUPER_ADMIN = 'Super Admin'

# Roles that already count as staff; a staff login never demotes them to Faculty
STAFF_ROLES = (ROLE_COORDINATOR, ROLE_FACULTY, ROLE_DEAN, ROLE_CHAIR)

PLACEHOLDER_FIRST_NAME = 'New'
PLACEHOLDER_LAST_NAME = 'User'


class User(db.Model):
    """Local user record reconciled against the legacy portal"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    first_name = db.Column(db.String(100), nullable=False, default=PLACEHOLDER_FIRST_NAME)
    middle_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=False, default=PLACEHOLDER_LAST_NAME)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(50), nullable=False, default=ROLE_STUDENT)

    student_number = db.Column(db.String(50), nullable=True, index=True)
    school_id = db.Column(db.String(50), nullable=True, index=True)

    # Data copied from the legacy clearance API
    student_number_legacy = db.Column(db.String(50), nullable=True)
    legacy_account_id = db.Column(db.Integer, nullable=True)
    degree_code = db.Column(db.String(50), nullable=True)
    degree_program_id = db.Column(db.Integer, nullable=True)
    year_level = db.Column(db.String(20), nullable=True)
    balance = db.Column(db.Numeric(12, 2), nullable=True)
    clearance_statuscode = db.Column(db.Integer, nullable=True)
    legacy_data_synced_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    roles = db.relationship('UserRole', backref='user', lazy='selectin',
                            cascade='all, delete-orphan')

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password"""
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        """Get full name"""
        middle_initial = f"{self.middle_name[0].upper()}. " if self.middle_name else ''
        return f"{self.first_name} {middle_initial}{self.last_name}"

    @property
    def role_names(self) -> List[str]:
        return sorted(r.role for r in self.roles)

    @property
    def has_placeholder_name(self) -> bool:
        return not self.last_name or self.last_name == PLACEHOLDER_LAST_NAME

    def has_role(self, role: str) -> bool:
        return any(r.role == role for r in self.roles)

    def add_role(self, role: str) -> bool:
        """
        Grant a role additively

        Returns:
            True if the role was newly granted
        """
        if self.has_role(role):
            return False
        self.roles.append(UserRole(role=role))
        return True

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'middle_name': self.middle_name,
            'last_name': self.last_name,
            'role': self.role,
            'roles': self.role_names,
            'student_number': self.student_number,
            'school_id': self.school_id,
            'legacy_account_id': self.legacy_account_id,
            'degree_code': self.degree_code,
            'degree_program_id': self.degree_program_id,
            'year_level': self.year_level,
            'balance': float(self.balance) if self.balance is not None else None,
            'clearance_statuscode': self.clearance_statuscode,
            'legacy_data_synced_at': self.legacy_data_synced_at.isoformat() if self.legacy_data_synced_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class UserRole(db.Model):
    """Role held by a user; a user may hold several"""
    __tablename__ = 'user_roles'
    __table_args__ = (db.UniqueConstraint('user_id', 'role', name='uq_user_roles_user_role'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    role = db.Column(db.String(50), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
