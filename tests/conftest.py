"""Shared test fixtures.

Provides:
  - a Flask app on in-memory SQLite with a fake clock behind the cache
  - FakeLegacyPortal, an in-process stand-in for the legacy portal client
  - helpers for building requests.Response objects
"""

import json
from typing import Any, Dict, List, Optional

import pytest
import requests

from gradportal import create_app
from gradportal.models import db
from gradportal.services.cache_service import TTLCache
from gradportal.services.legacy_portal import LegacyPortalClient
from gradportal.utils.exceptions import LegacyAuthError, LegacyNetworkError

HOME_HTML = '<div><span class="white-text name medium-text">CRUZ, ANA MARIE Santos</span></div>'


class FakeClock:
    """Manually advanced time source"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLegacyPortal:
    """Records calls and answers from preset accounts, pages and clearance rows."""

    extract_student_name = staticmethod(LegacyPortalClient.extract_student_name)

    def __init__(self):
        self.students: Dict[str, str] = {}
        self.staff: Dict[str, str] = {}
        self.home_html: Optional[str] = HOME_HTML
        self.clearance_rows: List[Dict[str, Any]] = []
        self.clearance_error: Optional[Exception] = None
        self.calls: List[tuple] = []

    @staticmethod
    def _session(username: str) -> Dict[str, Any]:
        return {
            'cookies': {'CFID': '100', 'CFTOKEN': username},
            'cookie_header': f'CFID=100; CFTOKEN={username}',
            'raw': {'result_id': 1},
        }

    def login(self, student_id: str, password: str) -> Dict[str, Any]:
        self.calls.append(('login', student_id))
        if self.students.get(student_id) != password:
            raise LegacyAuthError('Legacy authentication failed.')
        return self._session(student_id)

    def login_coordinator(self, identifier: str, password: str) -> Dict[str, Any]:
        self.calls.append(('login_coordinator', identifier))
        if self.staff.get(identifier) != password:
            raise LegacyAuthError('Legacy authentication failed.')
        return self._session(identifier)

    def fetch_home_html(self, session: Dict[str, Any]) -> str:
        self.calls.append(('fetch_home_html',))
        if self.home_html is None:
            raise LegacyNetworkError('Fetch home failed after redirects')
        return self.home_html

    def fetch_clearance_by_keyword(self, session: Dict[str, Any], keyword: str) -> List[Dict[str, Any]]:
        self.calls.append(('fetch_clearance_by_keyword', keyword))
        if self.clearance_error is not None:
            raise self.clearance_error
        return [dict(row) for row in self.clearance_rows]

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


def make_response(status: int = 200, body: Any = None, headers: Optional[Dict[str, str]] = None,
                  cookies: Optional[Dict[str, str]] = None) -> requests.Response:
    """Build a requests.Response without a network round trip"""
    response = requests.Response()
    response.status_code = status
    if body is None:
        content = b''
    elif isinstance(body, (dict, list)):
        content = json.dumps(body).encode()
    else:
        content = str(body).encode()
    response._content = content
    response.encoding = 'utf-8'
    response.headers.update(headers or {})
    response.cookies = requests.cookies.cookiejar_from_dict(cookies or {})
    return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def legacy():
    return FakeLegacyPortal()


@pytest.fixture
def app(clock, legacy):
    app = create_app('testing')
    app.extensions['gradportal_cache'] = TTLCache(clock=clock)
    app.extensions['legacy_portal'] = legacy
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def cache(app):
    return app.extensions['gradportal_cache']
