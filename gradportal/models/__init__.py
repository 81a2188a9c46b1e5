"""
Database models initialization
"""

from gradportal.models.database import db, init_db
from gradportal.models.user import (
    User, UserRole, ROLE_STUDENT, ROLE_FACULTY, ROLE_COORDINATOR, ROLE_DEAN,
    ROLE_CHAIR, ROLE_SUPER_ADMIN, STAFF_ROLES, PLACEHOLDER_FIRST_NAME, PLACEHOLDER_LAST_NAME
)

# Export all models
__all__ = [
    'db', 'init_db', 'User', 'UserRole', 'ROLE_STUDENT', 'ROLE_FACULTY', 'ROLE_COORDINATOR',
    'ROLE_DEAN', 'ROLE_CHAIR', 'ROLE_SUPER_ADMIN', 'STAFF_ROLES',
    'PLACEHOLDER_FIRST_NAME', 'PLACEHOLDER_LAST_NAME'
]
