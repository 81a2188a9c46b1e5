"""
Services package initialization
"""

from gradportal.services.auth_service import AuthService, LoginContext
from gradportal.services.cache_service import TTLCache, LegacySessionStore
from gradportal.services.legacy_portal import LegacyPortalClient

__all__ = ['AuthService', 'LoginContext', 'TTLCache', 'LegacySessionStore', 'LegacyPortalClient']
