"""
Custom exceptions for the GradPortal application
"""

from typing import Optional


class GradPortalException(Exception):
    """Base exception for GradPortal application"""
    pass

class ValidationError(GradPortalException):
    """Validation error"""

    def __init__(self, message: str, field: str = 'identifier'):
        super().__init__(message)
        self.field = field

class AuthenticationError(GradPortalException):
    """Authentication error"""

    def __init__(self, message: str, field: str = 'identifier'):
        super().__init__(message)
        self.field = field

class RateLimitError(AuthenticationError):
    """Too many failed login attempts for one throttle key"""

    def __init__(self, seconds: int, field: str = 'identifier'):
        self.seconds = seconds
        super().__init__(f"Too many attempts. Try again in {self.minutes} minutes.", field)

    @property
    def minutes(self) -> int:
        # ceil(seconds / 60) without floats
        return -(-self.seconds // 60)

class DatabaseError(GradPortalException):
    """Database error"""
    pass

class LegacyPortalError(GradPortalException):
    """Legacy portal call failed"""
    kind = 'legacy'

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

class LegacyNetworkError(LegacyPortalError):
    """Legacy portal unreachable or answered with an HTTP error"""
    kind = 'network'

class LegacyParseError(LegacyPortalError):
    """Legacy portal answered with something we could not understand"""
    kind = 'parse'

class LegacyAuthError(LegacyPortalError):
    """Legacy portal rejected the credentials"""
    kind = 'auth'
