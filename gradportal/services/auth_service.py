"""
Authentication service

Login reconciles an identifier typed into the portal with a local user:

    rate-limit check -> super-admin short-circuit -> classify -> resolve user
    -> legacy authentication -> (new student: clearance prefetch)
    -> provision user + roles -> local session login
    -> cache legacy session + enrichment marker -> clearance backfill
    -> clear rate limiter

Only lockouts and credential failures surface to the caller; enrichment and
cache problems are logged and the login still succeeds.
"""

import hmac
from dataclasses import dataclass
from typing import Optional, Dict, Any
from flask import current_app, session
from sqlalchemy.exc import IntegrityError
from gradportal.models import db, User, ROLE_SUPER_ADMIN
from gradportal.services.cache_service import LegacySessionStore
from gradportal.services.clearance import ClearanceEnricher, ClearanceLookup
from gradportal.services.identifier import ClassifiedIdentifier, classify_identifier
from gradportal.services.legacy_portal import get_legacy_client
from gradportal.services.profile_enricher import ProfileEnricher
from gradportal.services.provisioner import UserProvisioner
from gradportal.services.rate_limiter import RateLimiter, throttle_key
from gradportal.services.user_resolver import UserResolver
from gradportal.utils.exceptions import AuthenticationError, LegacyPortalError
from gradportal.utils.helpers import log_info, log_warning
from gradportal.utils.validators import validate_login_form

LEGACY_AUTH_FAILED = 'Legacy authentication failed.'
INVALID_CREDENTIALS = 'Invalid credentials.'
INVALID_SUPER_ADMIN = 'Invalid Super Admin credentials.'


@dataclass
class LoginContext:
    """State carried through one login attempt"""
    identity: ClassifiedIdentifier
    throttle_key: str
    remember: bool = False
    user: Optional[User] = None
    created: bool = False
    legacy_session: Optional[Dict[str, Any]] = None
    clearance: Optional[ClearanceLookup] = None
    backfill: Optional[ClearanceLookup] = None


class AuthService:
    """Authentication service class"""

    @staticmethod
    def authenticate_user(identifier: str, password: str, ip: str, remember: bool = False) -> LoginContext:
        """
        Authenticate a user against the legacy portal and log them in locally

        Args:
            identifier: Student number, "name_number" local part, email or username
            password: Legacy portal password
            ip: Client address, part of the throttle key
            remember: Keep the session beyond the browser session

        Returns:
            LoginContext with the logged-in user

        Raises:
            ValidationError: malformed form input
            RateLimitError: too many failed attempts
            AuthenticationError: credentials rejected
        """
        if isinstance(identifier, str):
            identifier = identifier.strip()
        validate_login_form(identifier, password)

        limiter = RateLimiter.from_app()
        ctx = LoginContext(
            identity=classify_identifier(identifier, current_app.config['INSTITUTION_DOMAIN']),
            throttle_key=throttle_key(ip, identifier),
            remember=remember,
        )
        limiter.ensure_not_limited(ctx.throttle_key)

        if ctx.identity.is_super_admin:
            ctx.user = AuthService._super_admin_login(ctx, password, limiter)
            AuthService._login_session(ctx.user, remember, first_login=False)
            limiter.clear(ctx.throttle_key)
            log_info(f"Super admin login for user {ctx.user.id}")
            return ctx

        domain = current_app.config['INSTITUTION_DOMAIN']
        if ctx.identity.is_staff and not ctx.identity.email.endswith(f"@{domain}"):
            limiter.hit(ctx.throttle_key)
            raise AuthenticationError(INVALID_CREDENTIALS)

        resolver = UserResolver(domain=domain)
        ctx.user = resolver.resolve(ctx.identity)

        AuthService._legacy_authenticate(ctx, password, limiter)

        legacy = get_legacy_client()
        enricher = ClearanceEnricher(legacy)
        if ctx.user is None and ctx.identity.is_student:
            ctx.clearance = enricher.prefetch(ctx.legacy_session, ctx.identity.numeric_id)

        ctx.user, ctx.created = UserProvisioner(resolver).provision(ctx.identity, ctx.user, ctx.clearance)
        AuthService._login_session(ctx.user, remember, first_login=ctx.created)

        if ctx.legacy_session:
            store = LegacySessionStore.from_app()
            store.store_session(ctx.user.id, ctx.legacy_session)
            store.mark_pending_enrichment(ctx.user.id, ctx.identity.is_staff)
            ctx.backfill = enricher.backfill(ctx.user, ctx.legacy_session)

        limiter.clear(ctx.throttle_key)
        log_info(f"Legacy login success for user {ctx.user.id} via '{ctx.identity.raw}' ({ctx.identity.kind})")
        return ctx

    @staticmethod
    def _legacy_authenticate(ctx: LoginContext, password: str, limiter: RateLimiter) -> None:
        """Validate credentials with the legacy portal; every failure looks the same to the user"""
        legacy = get_legacy_client()
        try:
            if ctx.identity.is_student:
                ctx.legacy_session = legacy.login(ctx.identity.numeric_id, password)
            else:
                ctx.legacy_session = legacy.login_coordinator(ctx.identity.raw, password)
        except LegacyPortalError as e:
            limiter.hit(ctx.throttle_key)
            log_warning(f"Legacy remote auth failed for '{ctx.identity.raw}' ({e.kind})", e)
            raise AuthenticationError(LEGACY_AUTH_FAILED) from e

    @staticmethod
    def _super_admin_login(ctx: LoginContext, password: str, limiter: RateLimiter) -> User:
        email = current_app.config['SUPER_ADMIN_EMAIL']
        user = User.query.filter_by(email=email).first()

        if user is not None:
            if user.check_password(password):
                return user
        else:
            configured = current_app.config.get('SUPER_ADMIN_PASSWORD')
            if configured and hmac.compare_digest(password.encode(), configured.encode()):
                return AuthService._create_super_admin(email, password)

        limiter.hit(ctx.throttle_key)
        log_warning(f"Invalid super admin login attempt from key '{ctx.throttle_key}'")
        raise AuthenticationError(INVALID_SUPER_ADMIN)

    @staticmethod
    def _create_super_admin(email: str, password: str) -> User:
        user = User(email=email, role=ROLE_SUPER_ADMIN, first_name='Super', last_name='Admin')
        user.set_password(password)
        user.add_role(ROLE_SUPER_ADMIN)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            # Another request bootstrapped the row first
            db.session.rollback()
            return User.query.filter_by(email=email).one()
        log_info(f"Bootstrapped super admin account {email}")
        return user

    @staticmethod
    def _login_session(user: User, remember: bool, first_login: bool) -> None:
        session.clear()
        session['user_id'] = user.id
        session['user_email'] = user.email
        session['user_role'] = user.role
        if first_login:
            session['first_login'] = True
        session.permanent = bool(remember)

    @staticmethod
    def logout_user() -> bool:
        """Logout current user"""
        session.clear()
        return True

    @staticmethod
    def get_current_user() -> Optional[User]:
        """Get current logged-in user"""
        user_id = session.get('user_id')
        if user_id is None:
            return None
        return db.session.get(User, user_id)

    @staticmethod
    def require_auth() -> User:
        """Require authentication - raise exception if not authenticated"""
        user = AuthService.get_current_user()
        if not user:
            raise AuthenticationError("Authentication required")
        return user

    @staticmethod
    def refresh_profile(user: User) -> bool:
        """Run deferred enrichment for the user and clear the first-login flag"""
        enricher = ProfileEnricher(get_legacy_client(), LegacySessionStore.from_app())
        changed = enricher.process_pending(user)
        session.pop('first_login', None)
        return changed
