"""Tests for the /todos endpoints."""

import uuid

import pytest

API = '/api/v1'


def location_id(response):
    return response.headers['Location'].rsplit('/', 1)[-1]


@pytest.fixture
def task_id(client, user_id):
    response = client.post(f'{API}/tasks', json={'title': 'groceries', 'id_user': user_id})
    return location_id(response)


@pytest.fixture
def make_todo(client, task_id):
    def _make_todo(text='buy milk', **extra):
        body = {'text': text, 'id_task': task_id}
        body.update(extra)
        response = client.post(f'{API}/todos', json=body)
        assert response.status_code == 201, response.get_data(as_text=True)
        return location_id(response)
    return _make_todo


class TestCreateTodo:
    """Test POST /todos."""

    def test_create_todo_defaults(self, client, task_id, make_todo) -> None:
        todo_id = make_todo()
        body = client.get(f'{API}/todos/{todo_id}').get_json()
        assert body == {
            'id': todo_id,
            'title': None,
            'text': 'buy milk',
            'complete': False,
            'id_task': task_id,
        }

    def test_unknown_task(self, client, user_id) -> None:
        missing = uuid.uuid4()
        response = client.post(f'{API}/todos', json={'text': 'x', 'id_task': str(missing)})
        assert response.status_code == 400
        assert response.get_data(as_text=True) == f"task[{missing}] doesn't exist: entities not found"
        assert client.get(f'{API}/todos').get_json() == []

    def test_missing_text(self, client, task_id) -> None:
        response = client.post(f'{API}/todos', json={'id_task': task_id})
        assert response.status_code == 400


class TestListTodos:
    """Test GET /todos."""

    def test_list_all(self, client, make_todo) -> None:
        make_todo('a')
        make_todo('b')
        assert len(client.get(f'{API}/todos').get_json()) == 2

    def test_filter_by_task(self, client, task_id, make_todo) -> None:
        make_todo()
        response = client.get(f'{API}/todos?id_task={task_id}')
        assert [t['text'] for t in response.get_json()] == ['buy milk']

    def test_filter_without_match_is_empty_list(self, client, user_id) -> None:
        response = client.get(f'{API}/todos?id_task={uuid.uuid4()}')
        assert response.status_code == 200
        assert response.get_json() == []

    def test_filter_bad_uuid(self, client, user_id) -> None:
        assert client.get(f'{API}/todos?id_task=nope').status_code == 400


class TestUpdateTodo:
    """Test PATCH /todos/{id}."""

    def test_complete_todo(self, client, make_todo) -> None:
        todo_id = make_todo(title='shopping')
        response = client.patch(f'{API}/todos/{todo_id}', json={'complete': True})
        assert response.status_code == 200
        assert response.get_json()['complete'] is True
        assert response.get_json()['title'] == 'shopping'

    def test_clear_title(self, client, make_todo) -> None:
        todo_id = make_todo(title='shopping')
        response = client.patch(f'{API}/todos/{todo_id}', json={'title': None})
        assert response.get_json()['title'] is None

    def test_move_to_unknown_task(self, client, task_id, make_todo) -> None:
        todo_id = make_todo()
        missing = uuid.uuid4()
        response = client.patch(f'{API}/todos/{todo_id}', json={'id_task': str(missing)})
        assert response.status_code == 400
        assert client.get(f'{API}/todos/{todo_id}').get_json()['id_task'] == task_id

    def test_move_to_other_task(self, client, user_id, make_todo) -> None:
        todo_id = make_todo()
        other = location_id(client.post(f'{API}/tasks', json={'title': 'other', 'id_user': user_id}))
        response = client.patch(f'{API}/todos/{todo_id}', json={'id_task': other})
        assert response.get_json()['id_task'] == other


class TestDeleteTodo:

    def test_delete_todo(self, client, make_todo) -> None:
        todo_id = make_todo()
        assert client.delete(f'{API}/todos/{todo_id}').status_code == 204
        assert client.get(f'{API}/todos/{todo_id}').status_code == 404

    def test_delete_missing_todo(self, client, user_id) -> None:
        assert client.delete(f'{API}/todos/{uuid.uuid4()}').status_code == 404
