"""
Routes package initialization
"""

from gradportal.routes.auth_routes import auth_bp

__all__ = ['auth_bp']
