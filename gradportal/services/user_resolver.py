"""
Local user lookup for a classified login identifier
"""

from typing import List, Optional, Sequence
from sqlalchemy import or_
from gradportal.models import User
from gradportal.services.identifier import ClassifiedIdentifier
from gradportal.utils.helpers import log_debug


def _escape_like(value: str) -> str:
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


class ResolutionStrategy:
    """One way of finding an existing user for an identifier"""
    name = 'strategy'

    def try_resolve(self, identity: ClassifiedIdentifier, domain: str) -> Optional[User]:
        raise NotImplementedError


class NumericIdStrategy(ResolutionStrategy):
    """Student number, school id, '{id}@domain' or '..._{id}@domain'"""
    name = 'numeric_id'

    def try_resolve(self, identity: ClassifiedIdentifier, domain: str) -> Optional[User]:
        numeric_id = identity.numeric_id
        if not numeric_id:
            return None
        embedded = f"%{_escape_like('_' + numeric_id + '@' + domain)}"
        return User.query.filter(or_(
            User.student_number == numeric_id,
            User.school_id == numeric_id,
            User.email == f"{numeric_id}@{domain}",
            User.email.like(embedded, escape='\\'),
        )).order_by(User.id).first()


class NormalizedEmailStrategy(ResolutionStrategy):
    name = 'normalized_email'

    def try_resolve(self, identity: ClassifiedIdentifier, domain: str) -> Optional[User]:
        return User.query.filter_by(email=identity.email).first()


class EmbeddedSchoolIdStrategy(ResolutionStrategy):
    """'firstname_schoolid@domain' → look up by school id"""
    name = 'embedded_school_id'

    def try_resolve(self, identity: ClassifiedIdentifier, domain: str) -> Optional[User]:
        email = identity.email
        if '_' not in email or not email.endswith(f"@{domain}"):
            return None
        local_part = email.split('@', 1)[0]
        segments = local_part.split('_')
        if len(segments) < 2 or not segments[1]:
            return None
        return User.query.filter_by(school_id=segments[1]).order_by(User.id).first()


DEFAULT_STRATEGIES = (NumericIdStrategy(), NormalizedEmailStrategy(), EmbeddedSchoolIdStrategy())


class UserResolver:
    """Runs strategies in order and returns the first hit"""

    def __init__(self, strategies: Optional[Sequence[ResolutionStrategy]] = None,
                 domain: str = 'uic.edu.ph'):
        self.strategies: List[ResolutionStrategy] = list(DEFAULT_STRATEGIES if strategies is None else strategies)
        self.domain = domain

    def resolve(self, identity: ClassifiedIdentifier) -> Optional[User]:
        for strategy in self.strategies:
            user = strategy.try_resolve(identity, self.domain)
            if user is not None:
                log_debug(f"Resolver {strategy.name}: hit user {user.id} for '{identity.raw}'")
                return user
            log_debug(f"Resolver {strategy.name}: miss for '{identity.raw}'")
        return None
