"""
Utilities package initialization
"""

from gradportal.utils.exceptions import (
    GradPortalException, ValidationError, AuthenticationError, RateLimitError,
    DatabaseError, LegacyPortalError, LegacyNetworkError, LegacyParseError, LegacyAuthError
)
from gradportal.utils.validators import (
    validate_required, validate_string_length, validate_login_form, parse_bool
)
from gradportal.utils.helpers import (
    setup_logging, log_error, log_warning, log_info, log_debug,
    get_role_dashboard, create_response, error_response
)

__all__ = [
    'GradPortalException', 'ValidationError', 'AuthenticationError', 'RateLimitError',
    'DatabaseError', 'LegacyPortalError', 'LegacyNetworkError', 'LegacyParseError', 'LegacyAuthError',
    'validate_required', 'validate_string_length', 'validate_login_form', 'parse_bool',
    'setup_logging', 'log_error', 'log_warning', 'log_info', 'log_debug',
    'get_role_dashboard', 'create_response', 'error_response'
]
