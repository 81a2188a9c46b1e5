"""
Authentication routes
"""

from flask import Blueprint, request, jsonify
from gradportal.services import AuthService
from gradportal.utils import (
    ValidationError, AuthenticationError, RateLimitError, log_error,
    create_response, error_response, get_role_dashboard, parse_bool
)

auth_bp = Blueprint('auth', __name__)


def _login_form():
    """Accept both form posts and JSON bodies"""
    if request.is_json:
        body = request.get_json(silent=True)
        return body if isinstance(body, dict) else {}
    return request.form


@auth_bp.route('/login', methods=['POST'])
def login():
    """Handle user login"""
    try:
        form = _login_form()
        ctx = AuthService.authenticate_user(
            form.get('identifier'),
            form.get('password'),
            request.remote_addr or '',
            remember=parse_bool(form.get('remember')),
        )
        return jsonify(create_response(True, "Login successful", {
            'user': ctx.user.to_dict(),
            'first_login': ctx.created,
            'redirect': get_role_dashboard(ctx.user.role),
        }))

    except ValidationError as e:
        return jsonify(error_response(str(e), e.field)), 400
    except RateLimitError as e:
        response = jsonify(error_response(str(e), e.field))
        response.headers['Retry-After'] = str(e.seconds)
        return response, 429
    except AuthenticationError as e:
        return jsonify(error_response(str(e), e.field)), 401
    except Exception as e:
        log_error("Login error", e)
        return jsonify(create_response(False, "Login failed. Please try again.")), 500


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Handle user logout"""
    AuthService.logout_user()
    return jsonify(create_response(True, "Logged out successfully"))


@auth_bp.route('/current-user', methods=['GET'])
def get_current_user():
    """Get current logged-in user"""
    try:
        user = AuthService.get_current_user()
        if user:
            return jsonify(create_response(True, "User found", user.to_dict()))
        else:
            return jsonify(create_response(False, "No user logged in")), 401
    except Exception as e:
        log_error("Get current user error", e)
        return jsonify(create_response(False, "Failed to get user info")), 500


@auth_bp.route('/profile/refresh', methods=['POST'])
def refresh_profile():
    """Apply deferred legacy enrichment after a first login"""
    try:
        user = AuthService.require_auth()
        changed = AuthService.refresh_profile(user)
        return jsonify(create_response(True, "Profile refreshed" if changed else "Profile up to date", {
            'updated': changed,
            'user': user.to_dict(),
        }))
    except AuthenticationError:
        return jsonify(create_response(False, "Authentication required")), 401
    except Exception as e:
        log_error("Profile refresh error", e)
        return jsonify(create_response(False, "Failed to refresh profile")), 500
