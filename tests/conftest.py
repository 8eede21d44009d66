"""Pytest configuration and shared fixtures."""

import pytest

from app import create_app
from config import TestingConfig
from memory import make_memory_repositories
from models import db

API = '/api/v1'
PASSWORD = 'Secret123'


@pytest.fixture
def app():
    """App backed by an in-memory SQLite database."""
    app = create_app(TestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def mem_repositories():
    return make_memory_repositories()


@pytest.fixture
def mem_app(mem_repositories):
    """App backed by the in-memory repositories."""
    return create_app(TestingConfig, repositories=mem_repositories)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(client):
    """Create a user through the public endpoint and return its id as a string."""
    def _make_user(email='alice@example.com', login='alice', password=PASSWORD):
        response = client.post(f'{API}/users', json={
            'login': login,
            'email': email,
            'password': password,
        })
        assert response.status_code == 201, response.get_data(as_text=True)
        return response.headers['Location'].rsplit('/', 1)[-1]
    return _make_user


@pytest.fixture
def login(client):
    def _login(email='alice@example.com', password=PASSWORD):
        return client.post(f'{API}/auth/login', json={'email': email, 'password': password})
    return _login


@pytest.fixture
def user_id(make_user, login):
    """Create the default user and log the shared client in."""
    user_id = make_user()
    response = login()
    assert response.status_code == 200
    return user_id
