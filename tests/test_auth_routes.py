"""End-to-end tests for the login / identity reconciliation flow."""

import pytest

from gradportal.models import db, User, ROLE_FACULTY, ROLE_STUDENT, ROLE_SUPER_ADMIN
from gradportal.utils.exceptions import LegacyNetworkError

ANA = {
    'firstname': 'Ana', 'lastname': 'Cruz', 'account_id': 42, 'student_number': '220001234',
    'degree_code': 'MAED', 'statuscode': 7900, 'balance': 0,
}


def login(client, identifier, password='pw', **extra):
    return client.post('/api/auth/login', data={'identifier': identifier, 'password': password, **extra})


def add_user(role=ROLE_STUDENT, roles=(ROLE_STUDENT,), **fields):
    user = User(role=role, **fields)
    user.set_password('local-password')
    for name in roles:
        user.add_role(name)
    db.session.add(user)
    db.session.commit()
    return user


class TestNewStudent:

    def test_created_from_clearance_record(self, client, legacy, cache):
        legacy.students['220001234'] = 'pw'
        legacy.clearance_rows = [ANA]

        response = login(client, '220001234')

        assert response.status_code == 200
        body = response.get_json()
        assert body['ok'] is True
        assert body['data']['first_login'] is True
        assert body['data']['redirect'] == '/student/dashboard'

        user = User.query.one()
        assert user.first_name == 'Ana'
        assert user.last_name == 'Cruz'
        assert user.legacy_account_id == 42
        assert user.email == '220001234@uic.edu.ph'
        assert user.student_number == '220001234'
        assert user.school_id == '220001234'
        assert user.role == ROLE_STUDENT
        assert user.has_role(ROLE_STUDENT)
        assert user.legacy_data_synced_at is not None
        assert not user.check_password('pw')

        with client.session_transaction() as sess:
            assert sess['user_id'] == user.id
            assert sess['first_login'] is True

        assert cache.get(f'legacy_session_{user.id}')['cookies']['CFTOKEN'] == '220001234'
        assert cache.get(f'pending_enrichment_{user.id}')['is_staff'] is False
        # The prefetch already filled the legacy fields, so no second clearance lookup
        assert legacy.call_names().count('fetch_clearance_by_keyword') == 1

    def test_placeholder_name_when_clearance_unavailable(self, client, legacy):
        legacy.students['220001234'] = 'pw'
        legacy.clearance_error = LegacyNetworkError('clearance API down')

        response = login(client, '220001234')

        assert response.status_code == 200
        user = User.query.one()
        assert (user.first_name, user.last_name) == ('New', 'User')
        assert user.legacy_account_id is None
        assert user.legacy_data_synced_at is None

    def test_embedded_id_login_uses_numeric_id_for_legacy(self, client, legacy):
        legacy.students['230000001047'] = 'pw'

        response = login(client, 'gdiapana_230000001047')

        assert response.status_code == 200
        assert ('login', '230000001047') in legacy.calls
        user = User.query.one()
        assert user.email == 'gdiapana_230000001047@uic.edu.ph'
        assert user.student_number == '230000001047'


class TestExistingUsers:

    def test_faculty_relogin_keeps_role(self, client, legacy):
        user = add_user(role=ROLE_FACULTY, roles=(ROLE_FACULTY,), email='jreyes@uic.edu.ph',
                        first_name='Jo', last_name='Reyes')
        legacy.staff['jreyes'] = 'pw'

        for _ in range(2):
            assert login(client, 'jreyes').status_code == 200

        assert User.query.count() == 1
        assert user.role == ROLE_FACULTY
        assert user.role_names == [ROLE_FACULTY]
        assert ('login_coordinator', 'jreyes') in legacy.calls

    def test_coordinator_is_not_demoted(self, client, legacy):
        user = add_user(role='Coordinator', roles=('Coordinator',), email='coord@uic.edu.ph',
                        first_name='Lea', last_name='Santos')
        legacy.staff['coord@uic.edu.ph'] = 'pw'

        assert login(client, 'coord@uic.edu.ph').status_code == 200
        assert user.role == 'Coordinator'
        assert user.role_names == ['Coordinator', ROLE_FACULTY]

    def test_student_logging_in_as_staff_gains_faculty(self, client, legacy):
        user = add_user(email='ana@uic.edu.ph', first_name='Ana', last_name='Cruz',
                        legacy_account_id=42, clearance_statuscode=7900)
        legacy.staff['ana@uic.edu.ph'] = 'pw'

        assert login(client, 'ana@uic.edu.ph').status_code == 200
        assert user.role == ROLE_FACULTY
        assert user.role_names == [ROLE_FACULTY, ROLE_STUDENT]

    def test_existing_user_gets_numeric_ids_backfilled(self, client, legacy):
        user = add_user(email='gdiapana_230000001047@uic.edu.ph', first_name='Gina', last_name='Diapana',
                        legacy_account_id=7, clearance_statuscode=3300)
        legacy.students['230000001047'] = 'pw'

        response = login(client, '230000001047')

        assert response.status_code == 200
        assert response.get_json()['data']['first_login'] is False
        assert User.query.count() == 1
        assert user.student_number == '230000001047'
        assert user.school_id == '230000001047'
        with client.session_transaction() as sess:
            assert 'first_login' not in sess

    def test_populated_ids_are_not_overwritten(self, client, legacy):
        user = add_user(email='220001234@uic.edu.ph', student_number='220001234', school_id='SCH-1',
                        first_name='Ana', last_name='Cruz', legacy_account_id=42, clearance_statuscode=7900)
        legacy.students['220001234'] = 'pw'

        assert login(client, '220001234').status_code == 200
        assert user.school_id == 'SCH-1'

    def test_existing_student_clearance_backfill(self, client, legacy, cache):
        user = add_user(email='220001234@uic.edu.ph', student_number='220001234',
                        first_name='Ana', last_name='Cruz')
        legacy.students['220001234'] = 'pw'
        legacy.clearance_rows = [ANA]

        assert login(client, '220001234').status_code == 200

        assert ('fetch_clearance_by_keyword', 'Cruz') in legacy.calls
        assert 'fetch_home_html' not in legacy.call_names()
        assert user.legacy_account_id == 42
        assert user.clearance_statuscode == 7900
        assert cache.has(f'legacy_session_{user.id}')

    def test_backfill_failure_does_not_fail_login(self, client, legacy):
        add_user(email='220001234@uic.edu.ph', student_number='220001234',
                 first_name='Ana', last_name='Cruz')
        legacy.students['220001234'] = 'pw'
        legacy.clearance_error = LegacyNetworkError('timeout')

        assert login(client, '220001234').status_code == 200


class TestFailures:

    def test_legacy_rejection(self, client, legacy):
        legacy.students['220001234'] = 'right'

        response = login(client, '220001234', password='wrong')

        assert response.status_code == 401
        body = response.get_json()
        assert body['ok'] is False
        assert body['message'] == 'Legacy authentication failed.'
        assert body['data']['errors'] == {'identifier': ['Legacy authentication failed.']}
        assert User.query.count() == 0

    def test_lockout_after_five_failures(self, client, legacy):
        for _ in range(5):
            assert login(client, '220001234', password='wrong').status_code == 401

        response = login(client, '220001234', password='wrong')

        assert response.status_code == 429
        assert response.get_json()['message'] == 'Too many attempts. Try again in 1 minutes.'
        assert response.headers['Retry-After'] == '60'
        assert legacy.call_names().count('login') == 5

    def test_lockout_expires(self, client, legacy, clock):
        legacy.students['220001234'] = 'pw'
        for _ in range(5):
            login(client, '220001234', password='wrong')
        assert login(client, '220001234').status_code == 429

        clock.advance(61)
        assert login(client, '220001234').status_code == 200

    def test_success_clears_attempts(self, client, legacy, cache):
        legacy.students['220001234'] = 'pw'
        for _ in range(4):
            login(client, '220001234', password='wrong')
        assert login(client, '220001234').status_code == 200
        assert cache.get('login_attempts:127.0.0.1|220001234') is None

    def test_padded_identifier_shares_lockout(self, client, legacy, cache):
        for _ in range(5):
            login(client, '220001234', password='wrong')

        for padded in (' 220001234', '220001234  ', '\t220001234 '):
            assert login(client, padded, password='wrong').status_code == 429

        assert legacy.call_names().count('login') == 5
        assert cache.get('login_attempts:127.0.0.1|220001234') == 5

    def test_non_object_json_body_is_a_validation_error(self, client, legacy):
        response = client.post('/api/auth/login', json=[1])
        assert response.status_code == 400
        assert 'identifier' in response.get_json()['data']['errors']
        assert legacy.calls == []

    def test_foreign_email_rejected_without_legacy_call(self, client, legacy):
        response = login(client, 'someone@gmail.com')
        assert response.status_code == 401
        assert response.get_json()['message'] == 'Invalid credentials.'
        assert legacy.calls == []

    @pytest.mark.parametrize("data,field", [
        ({'password': 'pw'}, 'identifier'),
        ({'identifier': '   ', 'password': 'pw'}, 'identifier'),
        ({'identifier': 'x' * 101, 'password': 'pw'}, 'identifier'),
        ({'identifier': '220001234'}, 'password'),
    ])
    def test_validation_errors(self, client, legacy, data, field):
        response = client.post('/api/auth/login', data=data)
        assert response.status_code == 400
        assert field in response.get_json()['data']['errors']
        assert legacy.calls == []


class TestSuperAdmin:

    def test_wrong_password_never_creates_row(self, client, cache):
        for _ in range(3):
            response = login(client, 'superadmin', password='nope')
            assert response.status_code == 401
            assert response.get_json()['message'] == 'Invalid Super Admin credentials.'

        assert User.query.filter_by(email='superadmin@uic.edu.ph').count() == 0
        assert cache.get('login_attempts:127.0.0.1|superadmin') == 3

    def test_single_row_across_logins(self, client, legacy):
        assert login(client, 'superadmin@uic.edu.ph', password='super-secret').status_code == 200
        assert login(client, 'superadmin@uic.edu.ph', password='nope').status_code == 401
        assert login(client, 'superadmin', password='super-secret').status_code == 200

        admins = User.query.filter_by(email='superadmin@uic.edu.ph').all()
        assert len(admins) == 1
        assert admins[0].role == ROLE_SUPER_ADMIN
        assert admins[0].has_role(ROLE_SUPER_ADMIN)
        assert legacy.calls == []

    def test_success_clears_limiter(self, client, cache):
        login(client, 'superadmin', password='nope')
        assert login(client, 'superadmin', password='super-secret').status_code == 200
        assert cache.get('login_attempts:127.0.0.1|superadmin') is None


class TestSessionEndpoints:

    def test_current_user_and_logout(self, client, legacy):
        assert client.get('/api/auth/current-user').status_code == 401

        legacy.students['220001234'] = 'pw'
        legacy.clearance_rows = [ANA]
        login(client, '220001234', remember='on')

        response = client.get('/api/auth/current-user')
        assert response.status_code == 200
        assert response.get_json()['data']['legacy_account_id'] == 42

        assert client.post('/api/auth/logout').status_code == 200
        assert client.get('/api/auth/current-user').status_code == 401

    def test_json_login(self, client, legacy):
        legacy.students['220001234'] = 'pw'
        response = client.post('/api/auth/login', json={'identifier': '220001234', 'password': 'pw',
                                                        'remember': True})
        assert response.status_code == 200

    def test_profile_refresh_fills_placeholder_name(self, client, legacy, cache):
        legacy.students['220001234'] = 'pw'
        legacy.clearance_error = LegacyNetworkError('clearance API down')
        login(client, '220001234')
        user = User.query.one()
        assert user.last_name == 'User'

        response = client.post('/api/auth/profile/refresh')

        assert response.status_code == 200
        assert response.get_json()['data']['updated'] is True
        assert (user.first_name, user.middle_name, user.last_name) == ('Ana Marie', 'Santos', 'CRUZ')
        assert not cache.has(f'pending_enrichment_{user.id}')
        with client.session_transaction() as sess:
            assert 'first_login' not in sess

        again = client.post('/api/auth/profile/refresh')
        assert again.get_json()['data']['updated'] is False

    def test_profile_refresh_keeps_real_names(self, client, legacy):
        user = add_user(email='220001234@uic.edu.ph', student_number='220001234', first_name='Anita',
                        last_name='Cruz', legacy_account_id=42, clearance_statuscode=7900)
        legacy.students['220001234'] = 'pw'
        login(client, '220001234')

        response = client.post('/api/auth/profile/refresh')

        assert response.get_json()['data']['updated'] is False
        assert user.first_name == 'Anita'

    def test_profile_refresh_requires_login(self, client):
        assert client.post('/api/auth/profile/refresh').status_code == 401
