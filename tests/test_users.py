"""Tests for the /users endpoints."""

import uuid

API = '/api/v1'
PASSWORD = 'Secret123'
# 100 bytes, past the 72-byte bcrypt limit
LONG_PASSWORD = 'Aa1' + 'x' * 97


class TestCreateUser:
    """Test POST /users."""

    def test_create_is_public(self, client) -> None:
        response = client.post(f'{API}/users', json={
            'login': 'alice',
            'email': 'alice@example.com',
            'password': PASSWORD,
        })
        assert response.status_code == 201
        assert response.headers['Location'].startswith('/api/v1/users/')
        assert response.get_data() == b''

    def test_create_duplicate_email(self, client, make_user) -> None:
        make_user()
        response = client.post(f'{API}/users', json={
            'login': 'alice2',
            'email': 'alice@example.com',
            'password': PASSWORD,
        })
        assert response.status_code == 409

    def test_unknown_keys_are_ignored(self, client) -> None:
        response = client.post(f'{API}/users', json={
            'login': 'alice',
            'email': 'alice@example.com',
            'password': PASSWORD,
            'is_admin': True,
        })
        assert response.status_code == 201

    def test_missing_login(self, client) -> None:
        response = client.post(f'{API}/users', json={
            'email': 'alice@example.com',
            'password': PASSWORD,
        })
        assert response.status_code == 400
        assert 'Login is required' in response.get_data(as_text=True)

    def test_password_over_72_bytes_rejected(self, client) -> None:
        response = client.post(f'{API}/users', json={
            'login': 'alice',
            'email': 'alice@example.com',
            'password': LONG_PASSWORD,
        })
        assert response.status_code == 400
        assert 'password too long' in response.get_data(as_text=True)

    def test_multibyte_password_counted_in_bytes(self, client) -> None:
        # 30 CJK characters encode to 90 bytes
        response = client.post(f'{API}/users', json={
            'login': 'alice',
            'email': 'alice@example.com',
            'password': 'Aa1' + '密' * 30,
        })
        assert response.status_code == 400
        assert 'password too long' in response.get_data(as_text=True)

    def test_email_over_255_characters_rejected(self, client) -> None:
        domain = '.'.join(['b' * 60] * 4) + '.com'
        response = client.post(f'{API}/users', json={
            'login': 'alice',
            'email': 'a' * 20 + '@' + domain,
            'password': PASSWORD,
        })
        assert response.status_code == 400
        assert 'Longer than maximum length 255' in response.get_data(as_text=True)


class TestReadUsers:
    """Test GET /users and GET /users/{id}."""

    def test_get_user(self, client, user_id) -> None:
        response = client.get(f'{API}/users/{user_id}')
        assert response.status_code == 200

        body = response.get_json()
        assert body['id'] == user_id
        assert body['login'] == 'alice'
        assert body['image_id'] is None
        assert 'password' not in body

    def test_created_at_is_utc(self, client, user_id) -> None:
        body = client.get(f'{API}/users/{user_id}').get_json()
        assert body['created_at'].endswith('+00:00')

    def test_created_at_is_utc_in_memory(self, mem_app) -> None:
        client = mem_app.test_client()
        response = client.post(f'{API}/users', json={
            'login': 'alice', 'email': 'alice@example.com', 'password': PASSWORD
        })
        client.post(f'{API}/auth/login', json={'email': 'alice@example.com', 'password': PASSWORD})
        body = client.get(response.headers['Location']).get_json()
        assert body['created_at'].endswith('+00:00')

    def test_read_endpoints_disable_caching(self, client, user_id) -> None:
        response = client.get(f'{API}/users/{user_id}')
        assert response.headers['Cache-Control'] == 'no-store, no-cache, must-revalidate'
        assert response.headers['Pragma'] == 'no-cache'

    def test_get_user_bad_id(self, client, user_id) -> None:
        assert client.get(f'{API}/users/not-a-uuid').status_code == 400

    def test_get_user_missing(self, client, user_id) -> None:
        response = client.get(f'{API}/users/{uuid.uuid4()}')
        assert response.status_code == 404
        assert response.get_data(as_text=True) == 'entities not found'

    def test_list_users(self, client, make_user, user_id) -> None:
        make_user(email='bob@example.com', login='bob')
        response = client.get(f'{API}/users')
        assert response.status_code == 200
        assert sorted(u['login'] for u in response.get_json()) == ['alice', 'bob']

    def test_filter_by_email(self, client, user_id) -> None:
        response = client.get(f'{API}/users?email=alice@example.com')
        assert [u['id'] for u in response.get_json()] == [user_id]

    def test_filter_by_unknown_email_is_empty_list(self, client, user_id) -> None:
        response = client.get(f'{API}/users?email=nobody@example.com')
        assert response.status_code == 200
        assert response.get_json() == []

    def test_filter_by_several_emails(self, client, user_id) -> None:
        response = client.get(f'{API}/users?email=a@example.com&email=b@example.com')
        assert response.status_code == 400

    def test_filter_by_login(self, client, make_user, user_id) -> None:
        make_user(email='bob@example.com', login='bob')
        response = client.get(f'{API}/users?login=bob')
        assert [u['email'] for u in response.get_json()] == ['bob@example.com']
        assert client.get(f'{API}/users?login=carol').get_json() == []


class TestUpdateUser:
    """Test PATCH /users/{id}."""

    def test_update_login(self, client, user_id) -> None:
        response = client.patch(f'{API}/users/{user_id}', json={'login': 'alice2'})
        assert response.status_code == 200
        assert response.get_json()['login'] == 'alice2'
        assert response.get_json()['email'] == 'alice@example.com'

    def test_patch_keeps_omitted_fields(self, client, user_id) -> None:
        image_id = str(uuid.uuid4())
        client.patch(f'{API}/users/{user_id}', json={'image_id': image_id})

        response = client.patch(f'{API}/users/{user_id}', json={'login': 'alice2'})
        assert response.status_code == 200

        body = client.get(f'{API}/users/{user_id}').get_json()
        assert body['login'] == 'alice2'
        assert body['image_id'] == image_id
        assert body['email'] == 'alice@example.com'

    def test_set_and_clear_image(self, client, user_id) -> None:
        image_id = str(uuid.uuid4())
        response = client.patch(f'{API}/users/{user_id}', json={'image_id': image_id})
        assert response.get_json()['image_id'] == image_id

        response = client.patch(f'{API}/users/{user_id}', json={'image_id': None})
        assert response.get_json()['image_id'] is None
        assert client.get(f'{API}/users/{user_id}').get_json()['image_id'] is None

    def test_new_password_is_hashed(self, client, user_id, login) -> None:
        response = client.patch(f'{API}/users/{user_id}', json={'password': 'Changed456'})
        assert response.status_code == 200

        assert login(password=PASSWORD).status_code == 401
        assert login(password='Changed456').status_code == 200

    def test_weak_password_rejected(self, client, user_id) -> None:
        response = client.patch(f'{API}/users/{user_id}', json={'password': 'short'})
        assert response.status_code == 400

    def test_long_password_rejected(self, client, user_id, login) -> None:
        response = client.patch(f'{API}/users/{user_id}', json={'password': LONG_PASSWORD})
        assert response.status_code == 400
        assert login().status_code == 200

    def test_long_email_rejected(self, client, user_id) -> None:
        response = client.patch(f'{API}/users/{user_id}', json={'email': 'a' * 250 + '@example.com'})
        assert response.status_code == 400

    def test_email_taken_by_another_user(self, client, make_user, user_id) -> None:
        make_user(email='bob@example.com', login='bob')
        response = client.patch(f'{API}/users/{user_id}', json={'email': 'bob@example.com'})
        assert response.status_code == 409

    def test_keeping_own_email_is_allowed(self, client, user_id) -> None:
        response = client.patch(f'{API}/users/{user_id}', json={'email': 'alice@example.com'})
        assert response.status_code == 200

    def test_null_login_rejected(self, client, user_id) -> None:
        response = client.patch(f'{API}/users/{user_id}', json={'login': None})
        assert response.status_code == 400

    def test_body_must_be_json_object(self, client, user_id) -> None:
        response = client.patch(f'{API}/users/{user_id}', data='login=alice2')
        assert response.status_code == 400

    def test_update_missing_user(self, client, user_id) -> None:
        response = client.patch(f'{API}/users/{uuid.uuid4()}', json={'login': 'x'})
        assert response.status_code == 404


class TestDeleteUser:
    """Test DELETE /users/{id}."""

    def test_delete_user(self, client, make_user, user_id) -> None:
        bob_id = make_user(email='bob@example.com', login='bob')
        assert client.delete(f'{API}/users/{bob_id}').status_code == 204
        assert client.get(f'{API}/users/{bob_id}').status_code == 404

    def test_delete_user_removes_their_tasks(self, client, make_user, user_id) -> None:
        bob_id = make_user(email='bob@example.com', login='bob')
        client.post(f'{API}/tasks', json={'title': 't', 'id_user': bob_id})

        assert client.delete(f'{API}/users/{bob_id}').status_code == 204
        assert client.get(f'{API}/tasks').get_json() == []

    def test_delete_missing_user(self, client, user_id) -> None:
        assert client.delete(f'{API}/users/{uuid.uuid4()}').status_code == 404

    def test_delete_requires_session(self, app, make_user) -> None:
        target = make_user()
        assert app.test_client().delete(f'{API}/users/{target}').status_code == 401


class TestIdParsing:

    def test_nil_uuid_rejected(self, client, user_id) -> None:
        response = client.get(f'{API}/users/00000000-0000-0000-0000-000000000000')
        assert response.status_code == 400
