"""Tests for registration, login and token handling."""

import pytest
from fastapi import Request
from sqlalchemy import select

from glo_cloud.models.database import Activity, User
from glo_cloud.services.auth import auth_service
from glo_cloud.utils.network import get_client_ip


async def test_register_creates_inactive_employee(async_client, db_session):
    response = await async_client.post(
        '/api/auth/register',
        data={'name': 'Carol', 'email': '  Carol@Acme.IO ', 'password': 'hunter22'},
    )
    assert response.status_code == 201
    assert 'approval' in response.json()['message']

    user = (await db_session.execute(select(User).filter(User.email == 'carol@acme.io'))).scalar_one()
    assert user.role == 'EMPLOYEE'
    assert user.is_active is False
    assert user.is_external is False
    assert user.password_hash != 'hunter22'

    activity = (await db_session.execute(select(Activity))).scalar_one()
    assert activity.action == 'USER_INVITE'


async def test_register_validation(async_client, employee):
    missing = await async_client.post('/api/auth/register', data={'name': 'X', 'email': 'x@acme.io'})
    assert missing.status_code == 400

    short = await async_client.post(
        '/api/auth/register', data={'name': 'X', 'email': 'x@acme.io', 'password': '123'},
    )
    assert short.status_code == 400
    assert 'at least 6' in short.json()['detail']

    bad_email = await async_client.post(
        '/api/auth/register', data={'name': 'X', 'email': 'not-an-email', 'password': 'hunter22'},
    )
    assert bad_email.status_code == 400
    assert bad_email.json()['detail'] == 'Please enter a valid email address'

    duplicate = await async_client.post(
        '/api/auth/register', data={'name': 'Again', 'email': 'alice@acme.io', 'password': 'hunter22'},
    )
    assert duplicate.status_code == 400
    assert duplicate.json()['detail'] == 'User with this email already exists'


async def test_register_with_auto_approve(async_client, auth_headers_for, admin_user, db_session):
    settings_row = await async_client.get('/api/admin/settings', headers=auth_headers_for(admin_user))
    payload = {**settings_row.json()['settings'], 'auto_approve_users': True}
    await async_client.put('/api/admin/settings', json=payload, headers=auth_headers_for(admin_user))

    await async_client.post(
        '/api/auth/register', data={'name': 'Dan', 'email': 'dan@acme.io', 'password': 'hunter22'},
    )
    user = (await db_session.execute(select(User).filter(User.email == 'dan@acme.io'))).scalar_one()
    assert user.is_active is True


async def test_login_returns_token(async_client, employee, user_password):
    response = await async_client.post(
        '/api/auth/login', data={'email': 'ALICE@acme.io', 'password': user_password},
    )
    assert response.status_code == 200
    body = response.json()
    assert body['token_type'] == 'bearer'
    assert body['user']['email'] == 'alice@acme.io'

    profile = await async_client.get(
        '/api/profile', headers={'Authorization': f"Bearer {body['access_token']}"},
    )
    assert profile.status_code == 200
    assert profile.json()['user']['employee_id'] == 'E100'


async def test_login_failures(async_client, employee, inactive_user, user_password):
    wrong = await async_client.post('/api/auth/login', data={'email': 'alice@acme.io', 'password': 'nope'})
    assert wrong.status_code == 401

    unknown = await async_client.post('/api/auth/login', data={'email': 'ghost@acme.io', 'password': user_password})
    assert unknown.status_code == 401

    inactive = await async_client.post('/api/auth/login', data={'email': 'pending@acme.io', 'password': user_password})
    assert inactive.status_code == 403


async def test_logout_logs_activity(async_client, auth_headers_for, employee, db_session):
    response = await async_client.post(
        '/api/auth/logout', headers={**auth_headers_for(employee), 'X-Forwarded-For': '10.0.0.7, 10.0.0.1'},
    )
    assert response.status_code == 200

    activity = (await db_session.execute(select(Activity))).scalar_one()
    assert activity.action == 'LOGOUT'
    assert activity.ip_address == '10.0.0.7'


async def test_bad_and_deactivated_tokens(async_client, auth_headers_for, inactive_user):
    garbage = await async_client.get('/api/profile', headers={'Authorization': 'Bearer not-a-jwt'})
    assert garbage.status_code == 401

    deactivated = await async_client.get('/api/profile', headers=auth_headers_for(inactive_user))
    assert deactivated.status_code == 403


def test_password_hashing_roundtrip():
    hashed = auth_service.get_password_hash('hunter22')
    assert auth_service.verify_password('hunter22', hashed)
    assert not auth_service.verify_password('hunter23', hashed)
    assert not auth_service.verify_password('hunter22', 'not-a-hash')


class TestClientIp:
    """Client address resolution used for activity rows."""

    @staticmethod
    def _request(headers, client=('192.0.2.1', 5000)):
        return Request({
            'type': 'http',
            'method': 'GET',
            'path': '/',
            'headers': [(k.lower().encode(), v.encode()) for k, v in headers.items()],
            'client': client,
        })

    @pytest.mark.parametrize('headers, expected', [
        ({'X-Forwarded-For': '10.0.0.7, 10.0.0.1', 'X-Real-IP': '10.0.0.2'}, '10.0.0.7'),
        ({'X-Real-IP': '10.0.0.2', 'CF-Connecting-IP': '10.0.0.3', 'X-Client-IP': '10.0.0.4'}, '10.0.0.2'),
        ({'CF-Connecting-IP': '10.0.0.3', 'X-Client-IP': '10.0.0.4'}, '10.0.0.3'),
        ({'X-Client-IP': ' 10.0.0.4 '}, '10.0.0.4'),
        ({'X-Forwarded-For': ' , 10.0.0.1', 'X-Client-IP': '10.0.0.4'}, '10.0.0.4'),
        ({}, '192.0.2.1'),
    ])
    def test_header_precedence(self, headers, expected):
        assert get_client_ip(self._request(headers)) == expected

    def test_unknown_without_peer(self):
        assert get_client_ip(self._request({}, client=None)) == 'unknown'
