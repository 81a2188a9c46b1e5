"""
Helper utilities
"""

import logging
from typing import Optional, Dict, Any
from flask import current_app


def setup_logging() -> None:
    """Setup application logging"""
    if not current_app.debug:
        # Production logging
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s %(levelname)s %(name)s %(message)s'
        )
    else:
        # Development logging
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s %(levelname)s %(name)s %(message)s'
        )


def log_error(message: str, exception: Optional[Exception] = None) -> None:
    """
    Log error message

    Args:
        message: Error message
        exception: Exception object
    """
    if exception:
        current_app.logger.error(f"{message}: {str(exception)}")
    else:
        current_app.logger.error(message)


def log_warning(message: str, exception: Optional[Exception] = None) -> None:
    """Log warning message, appending the exception text when given"""
    if exception:
        current_app.logger.warning(f"{message}: {str(exception)}")
    else:
        current_app.logger.warning(message)


def log_info(message: str) -> None:
    """
    Log info message

    Args:
        message: Info message
    """
    current_app.logger.info(message)


def log_debug(message: str) -> None:
    current_app.logger.debug(message)


def get_role_dashboard(role: str) -> str:
    """
    Get dashboard URL based on primary role

    Args:
        role: Role name

    Returns:
        Dashboard URL
    """
    dashboard_map = {
        'Student': '/student/dashboard',
        'Faculty': '/adviser/dashboard',
        'Coordinator': '/coordinator/dashboard',
        'Dean': '/dean/dashboard',
        'Chair': '/chair/dashboard',
        'Super Admin': '/superadmin/dashboard',
    }
    return dashboard_map.get(role, '/dashboard')


def create_response(success: bool, message: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create standardized API response

    Args:
        success: Whether operation was successful
        message: Response message
        data: Optional data to include

    Returns:
        Standardized response dictionary
    """
    response = {
        'ok': success,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return response


def error_response(message: str, field: str = 'identifier') -> Dict[str, Any]:
    """Failure response with the message keyed by form field"""
    return create_response(False, message, {'errors': {field: [message]}})
