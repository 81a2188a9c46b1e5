"""
Legacy student-portal client

The legacy portal is a cookie-session web application. A "legacy session" is
the plain dict returned by login(): {'cookies', 'cookie_header', 'raw'}. It is
JSON-serialisable so it can be cached and handed to later requests.
"""

import html
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import requests
from flask import current_app

from gradportal.utils.exceptions import LegacyAuthError, LegacyNetworkError, LegacyParseError
from gradportal.utils.helpers import log_warning

REDIRECT_STATUSES = (301, 302, 303, 307, 308)
MAX_HOME_REDIRECTS = 5

STUDENT_NAME_RE = re.compile(r'<span class="white-text name medium-text">([^<]+)</span>')


def build_cookie_header(cookies: Dict[str, str]) -> str:
    return '; '.join(f"{name}={value}" for name, value in cookies.items())


def merge_set_cookies(cookies: Dict[str, str], response: requests.Response) -> Dict[str, str]:
    """Return ``cookies`` updated with any cookies the response sets"""
    merged = dict(cookies)
    merged.update(requests.utils.dict_from_cookiejar(response.cookies))
    return merged


class LegacyPortalClient:
    """HTTP client for the legacy student-information portal"""

    def __init__(self, base_url: str, login_path: str, coordinator_login_path: str,
                 clearance_path: str, timeout: int = 20, user_agent: str = 'GradPortal',
                 http: Any = requests):
        self.base_url = base_url.rstrip('/')
        self.login_path = login_path
        self.coordinator_login_path = coordinator_login_path
        self.clearance_path = clearance_path
        self.timeout = timeout
        self.user_agent = user_agent
        # No shared cookie jar: every request carries the session's own Cookie header
        self.http = http

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'LegacyPortalClient':
        return cls(
            base_url=config['LEGACY_BASE_URL'],
            login_path=config['LEGACY_LOGIN_PATH'],
            coordinator_login_path=config['LEGACY_COORDINATOR_LOGIN_PATH'],
            clearance_path=config['LEGACY_CLEARANCE_PATH'],
            timeout=config['LEGACY_TIMEOUT'],
            user_agent=config['LEGACY_USER_AGENT'],
        )

    def _get(self, path: str, cookies: Optional[Dict[str, str]] = None,
             params: Optional[Dict[str, Any]] = None, accept: str = 'text/html,application/xhtml+xml',
             referer: Optional[str] = None) -> requests.Response:
        headers = {
            'User-Agent': self.user_agent,
            'Accept': accept,
        }
        if cookies:
            headers['Cookie'] = build_cookie_header(cookies)
        if referer:
            headers['Referer'] = referer
        try:
            return self.http.get(
                self.base_url + path,
                params=params,
                headers=headers,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.RequestException as e:
            raise LegacyNetworkError(f"Legacy request to {path} failed: {e}") from e

    def _authenticate(self, path: str, username: str, password: str) -> Dict[str, Any]:
        # Prefetch the login page for the baseline CFID/CFTOKEN cookies
        try:
            prefetch = self._get('/index.cfm?fa=login.login_show')
            base_cookies = requests.utils.dict_from_cookiejar(prefetch.cookies)
        except LegacyNetworkError:
            base_cookies = {}

        response = self._get(
            path,
            cookies=base_cookies,
            params={'username': username, 'password': password},
            accept='application/json, text/plain, */*',
            referer=self.base_url + '/index.cfm?fa=login.login_show',
        )
        if response.status_code != 200:
            raise LegacyNetworkError(f"Legacy login HTTP error: {response.status_code}", response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise LegacyParseError('Unexpected legacy login response.') from e
        if not isinstance(payload, dict) or 'result_id' not in payload:
            raise LegacyParseError('Unexpected legacy login response.')
        try:
            result_id = int(payload['result_id'])
        except (TypeError, ValueError) as e:
            raise LegacyParseError('Unexpected legacy login result_id.') from e
        if result_id != 1:
            raise LegacyAuthError('Legacy authentication failed.')

        cookies = merge_set_cookies(base_cookies, response)
        return {
            'cookies': cookies,
            'cookie_header': build_cookie_header(cookies),
            'raw': payload,
        }

    def login(self, student_id: str, password: str) -> Dict[str, Any]:
        """
        Authenticate a student by numeric id

        Returns:
            Legacy session dict

        Raises:
            LegacyNetworkError, LegacyParseError, LegacyAuthError
        """
        return self._authenticate(self.login_path, student_id, password)

    def login_coordinator(self, identifier: str, password: str) -> Dict[str, Any]:
        """Authenticate an employee (coordinator, faculty, dean...) by username or email"""
        return self._authenticate(self.coordinator_login_path, identifier, password)

    def fetch_home_html(self, session: Dict[str, Any]) -> str:
        """
        Fetch the portal home page, following same-host redirects by hand

        Raises:
            LegacyNetworkError: on HTTP failure or too many redirects
        """
        cookies = dict(session.get('cookies') or {})
        path = '/index.cfm?fa=home.index'
        for _ in range(MAX_HOME_REDIRECTS):
            response = self._get(path, cookies=cookies)
            if response.status_code == 200:
                return response.text
            if response.status_code not in REDIRECT_STATUSES:
                break
            location = response.headers.get('Location')
            if not location:
                break
            cookies = merge_set_cookies(cookies, response)
            if location.startswith('http'):
                if not location.startswith(self.base_url):
                    # External redirect, usually back to a login page
                    break
                parts = urlsplit(location)
                location = parts.path + (f"?{parts.query}" if parts.query else '')
            path = location
        raise LegacyNetworkError('Fetch home failed after redirects')

    @staticmethod
    def extract_student_name(page: str) -> Optional[Dict[str, Optional[str]]]:
        """
        Parse "LASTNAME, FIRST NAMES Middle" from the home page header

        Returns:
            Dict with first_name, middle_name, last_name or None when absent
        """
        match = STUDENT_NAME_RE.search(page or '')
        if not match:
            return None
        raw = html.unescape(match.group(1)).strip()
        if ',' not in raw:
            return None
        last, rest = (part.strip() for part in raw.split(',', 1))
        if not last:
            return None
        tokens = rest.split()
        middle = None
        if len(tokens) > 1:
            middle = tokens.pop()
        first = ' '.join(tokens)
        return {
            'first_name': first.title(),
            'middle_name': middle.title() if middle else None,
            'last_name': last.upper(),
        }

    def fetch_clearance_by_keyword(self, session: Dict[str, Any], keyword: str) -> List[Dict[str, Any]]:
        """
        Search the clearance API by keyword (usually a last name)

        Returns:
            Raw clearance rows

        Raises:
            LegacyNetworkError, LegacyParseError
        """
        response = self._get(
            self.clearance_path,
            cookies=session.get('cookies') or {},
            params={'keyword': keyword},
            accept='application/json, text/plain, */*',
        )
        if response.status_code != 200:
            raise LegacyNetworkError(f"Clearance lookup HTTP error: {response.status_code}", response.status_code)
        try:
            payload = response.json()
        except ValueError as e:
            raise LegacyParseError('Clearance lookup returned non-JSON body') from e
        if isinstance(payload, dict):
            payload = payload.get('data', payload.get('records'))
        if not isinstance(payload, list):
            raise LegacyParseError('Clearance lookup returned unexpected shape')
        rows = [row for row in payload if isinstance(row, dict)]
        if len(rows) != len(payload):
            log_warning(f"Clearance lookup for '{keyword}' skipped {len(payload) - len(rows)} malformed rows")
        return rows


def get_legacy_client() -> LegacyPortalClient:
    """Client bound to the current application"""
    return current_app.extensions['legacy_portal']
