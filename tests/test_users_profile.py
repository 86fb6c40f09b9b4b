"""Tests for profile updates and user administration."""

import os

from sqlalchemy import select

from glo_cloud.models.database import Activity, File, User


class TestProfile:
    """Self-service profile edits."""

    async def test_update_profile_fields(self, async_client, auth_headers_for, employee, db_session):
        response = await async_client.put(
            '/api/profile',
            json={
                'name': 'Alice Smith',
                'email': 'alice@acme.io',
                'department': 'Finance',
                'title': '  ',
                'employee_id': 'E200',
            },
            headers=auth_headers_for(employee),
        )
        assert response.status_code == 200
        user = response.json()['user']
        assert user['name'] == 'Alice Smith'
        assert user['department'] == 'Finance'
        assert user['title'] is None
        assert user['employee_id'] == 'E200'

        activity = (await db_session.execute(select(Activity))).scalar_one()
        assert activity.action == 'PROFILE_UPDATE'
        assert 'department' in activity.details

    async def test_name_and_email_required(self, async_client, auth_headers_for, employee):
        response = await async_client.put(
            '/api/profile', json={'name': '', 'email': 'alice@acme.io'}, headers=auth_headers_for(employee),
        )
        assert response.status_code == 400

        response = await async_client.put(
            '/api/profile', json={'name': 'Alice', 'email': 'nope'}, headers=auth_headers_for(employee),
        )
        assert response.status_code == 400

    async def test_unique_email_and_employee_id(self, async_client, auth_headers_for, employee, other_user):
        taken_email = await async_client.put(
            '/api/profile', json={'name': 'Bob', 'email': 'alice@acme.io'}, headers=auth_headers_for(other_user),
        )
        assert taken_email.status_code == 400

        taken_id = await async_client.put(
            '/api/profile',
            json={'name': 'Bob', 'email': 'bob@acme.io', 'employee_id': 'E100'},
            headers=auth_headers_for(other_user),
        )
        assert taken_id.status_code == 400

    async def test_password_change(self, async_client, auth_headers_for, employee, user_password, db_session):
        headers = auth_headers_for(employee)
        base = {'name': 'Alice', 'email': 'alice@acme.io', 'employee_id': 'E100'}

        no_current = await async_client.put('/api/profile', json={**base, 'new_password': 'newpass1'}, headers=headers)
        assert no_current.status_code == 400

        wrong_current = await async_client.put(
            '/api/profile', json={**base, 'current_password': 'bad', 'new_password': 'newpass1'}, headers=headers,
        )
        assert wrong_current.status_code == 400

        too_short = await async_client.put(
            '/api/profile', json={**base, 'current_password': user_password, 'new_password': '123'}, headers=headers,
        )
        assert too_short.status_code == 400

        changed = await async_client.put(
            '/api/profile', json={**base, 'current_password': user_password, 'new_password': 'newpass1'},
            headers=headers,
        )
        assert changed.status_code == 200
        assert changed.json()['password_changed'] is True

        login = await async_client.post('/api/auth/login', data={'email': 'alice@acme.io', 'password': 'newpass1'})
        assert login.status_code == 200

        actions = (await db_session.execute(select(Activity.action))).scalars().all()
        assert 'PASSWORD_CHANGE' in actions

    async def test_employee_id_must_be_a_single_path_segment(self, async_client, auth_headers_for, employee,
                                                             other_user, upload_file, db_session):
        headers = auth_headers_for(employee)
        escape = f'x/../../emp_{other_user.id}_{str(other_user.id)[:8]}/week-1/..'
        for bad_id in (escape, '..', 'E.100', 'E\\100', 'E 100'):
            response = await async_client.put(
                '/api/profile', json={'name': 'Alice', 'email': 'alice@acme.io', 'employee_id': bad_id},
                headers=headers,
            )
            assert response.status_code == 400, bad_id

        ok = await async_client.put(
            '/api/profile', json={'name': 'Alice', 'email': 'alice@acme.io', 'employee_id': 'E_100-a'},
            headers=headers,
        )
        assert ok.status_code == 200

        await upload_file(employee, 'a.txt', b'a')
        stored = (await db_session.execute(select(File.path))).scalar_one()
        assert stored.startswith(f'uploads/emp_E_100-a_{str(employee.id)[:8]}/week-')


class TestUserAdministration:
    """Listing, approving and removing users."""

    async def test_admin_sees_everyone(self, async_client, auth_headers_for, admin_user, employee, inactive_user):
        response = await async_client.get('/api/users', headers=auth_headers_for(admin_user))
        emails = {u['email'] for u in response.json()['users']}
        assert emails == {'admin@acme.io', 'alice@acme.io', 'pending@acme.io'}
        assert 'is_active' in response.json()['users'][0]

    async def test_employee_sees_share_targets(self, async_client, auth_headers_for, employee, other_user,
                                               inactive_user):
        response = await async_client.get('/api/users', headers=auth_headers_for(employee))
        assert response.json()['users'] == [
            {'id': str(other_user.id), 'email': 'bob@acme.io', 'name': 'Bob'},
        ]

    async def test_admin_activates_user(self, async_client, auth_headers_for, admin_user, inactive_user):
        response = await async_client.patch(
            f'/api/users/{inactive_user.id}', json={'is_active': True}, headers=auth_headers_for(admin_user),
        )
        assert response.status_code == 200
        assert response.json()['user']['is_active'] is True

        missing = await async_client.patch(
            '/api/users/00000000-0000-0000-0000-000000000000', json={'is_active': True},
            headers=auth_headers_for(admin_user),
        )
        assert missing.status_code == 404

    async def test_only_super_admin_grants_super_admin(self, async_client, auth_headers_for, admin_user,
                                                       super_admin, employee):
        by_admin = await async_client.patch(
            f'/api/users/{employee.id}', json={'role': 'SUPER_ADMIN'}, headers=auth_headers_for(admin_user),
        )
        assert by_admin.status_code == 403

        touch_super = await async_client.patch(
            f'/api/users/{super_admin.id}', json={'is_active': False}, headers=auth_headers_for(admin_user),
        )
        assert touch_super.status_code == 403

        by_super = await async_client.patch(
            f'/api/users/{employee.id}', json={'role': 'ADMIN'}, headers=auth_headers_for(super_admin),
        )
        assert by_super.status_code == 200
        assert by_super.json()['user']['role'] == 'ADMIN'

    async def test_employee_cannot_administer(self, async_client, auth_headers_for, employee, other_user):
        response = await async_client.patch(
            f'/api/users/{other_user.id}', json={'is_active': False}, headers=auth_headers_for(employee),
        )
        assert response.status_code == 403

    async def test_delete_user_removes_files(self, async_client, auth_headers_for, super_admin, admin_user,
                                             employee, upload_file, storage_dirs, db_session):
        await upload_file(employee, 'mine.txt', b'mine')
        path = (await db_session.execute(select(File.path))).scalar_one()

        by_admin = await async_client.delete(f'/api/users/{employee.id}', headers=auth_headers_for(admin_user))
        assert by_admin.status_code == 403

        self_delete = await async_client.delete(f'/api/users/{super_admin.id}', headers=auth_headers_for(super_admin))
        assert self_delete.status_code == 400

        response = await async_client.delete(f'/api/users/{employee.id}', headers=auth_headers_for(super_admin))
        assert response.status_code == 200
        assert response.json()['files_removed'] == 1

        assert (await db_session.execute(select(File))).scalars().all() == []
        remaining = (await db_session.execute(select(User.email))).scalars().all()
        assert 'alice@acme.io' not in remaining
        assert not os.path.exists(storage_dirs / path)
