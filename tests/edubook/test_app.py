import anyio
import anyio.to_thread
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from starlette.websockets import WebSocketDisconnect

from edubook.auth.dependencies import get_store
from edubook.core import config
from edubook.main import app
from edubook.routes import message_routes
from edubook.services.messaging import MessagingService


@pytest.fixture
def client(store, hub, document_db, monkeypatch: pytest.MonkeyPatch):
    app.dependency_overrides[get_store] = lambda: store
    monkeypatch.setattr('edubook.store.documents.listener_hub', hub)
    monkeypatch.setattr('edubook.routes.message_routes.SessionLocal', lambda: document_db)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _sign_up(client: TestClient, email: str, role: str, **extra) -> dict:
    response = client.post(
        '/auth/register',
        json={'email': email, 'password': 'secret123', 'name': email.split('@')[0].title(), 'role': role, **extra},
    )
    assert response.status_code == 201, response.text

    login = client.post('/auth/login', json={'email': email, 'password': 'secret123'})
    assert login.status_code == 200, login.text
    return {
        'id': response.json()['account']['id'],
        'headers': {'Authorization': f"Bearer {login.json()['access_token']}"},
    }


def test_root(client: TestClient) -> None:
    assert client.get('/').json() == {'status': 'edubook API running'}


def test_booking_flow(client: TestClient) -> None:
    teacher = _sign_up(client, 'tina@school.edu', 'teacher', department='Science', subjects=['Biology'])
    student = _sign_up(client, 'sam@school.edu', 'student')
    slot = {'day': 'Monday', 'start_time': '09:00', 'end_time': '10:00'}

    added = client.post(f"/availability/teachers/{teacher['id']}/slots", json=slot, headers=teacher['headers'])
    assert added.status_code == 201
    assert added.json()['availability'] == {'Monday': [slot]}

    teachers = client.get('/availability/teachers', params={'query': 'bio'}, headers=student['headers'])
    assert [item['id'] for item in teachers.json()] == [teacher['id']]

    created = client.post(
        '/appointments',
        json={'teacher_id': teacher['id'], 'day': 'Monday', 'slot': slot, 'date': '2099-01-05'},
        headers=student['headers'],
    )
    assert created.status_code == 201, created.text
    appointment = created.json()
    assert appointment['status'] == 'pending'
    assert appointment['date'] == '2099-01-05'

    approved = client.patch(
        f"/appointments/{appointment['id']}/status", json={'status': 'approved'}, headers=teacher['headers'],
    )
    assert approved.json()['status'] == 'approved'

    mine = client.get('/appointments/mine', headers=student['headers']).json()
    assert [item['id'] for item in mine['upcoming']] == [appointment['id']]


def test_domain_errors_render_message_and_code(client: TestClient) -> None:
    teacher = _sign_up(client, 'tina@school.edu', 'teacher', department='Science')
    path = f"/availability/teachers/{teacher['id']}/slots"
    client.post(path, json={'day': 'Monday', 'start_time': '09:00', 'end_time': '10:00'}, headers=teacher['headers'])

    response = client.post(
        path, json={'day': 'Monday', 'start_time': '09:30', 'end_time': '11:00'}, headers=teacher['headers'],
    )

    assert response.status_code == 409
    assert response.json()['detail']['message'] == 'Time slot overlaps with existing slot'
    assert response.json()['detail']['code'] == 'OverlapError'


def test_auth_errors_carry_bearer_challenge(client: TestClient) -> None:
    response = client.post('/auth/login', json={'email': 'ghost@school.edu', 'password': 'secret123'})

    assert response.status_code == 401
    assert response.headers['www-authenticate'] == 'Bearer'
    assert response.json()['detail']['code'] == 'auth/user-not-found'


def test_revoked_token_is_rejected(client: TestClient) -> None:
    student = _sign_up(client, 'sam@school.edu', 'student')

    assert client.post('/auth/logout', headers=student['headers']).status_code == 204

    response = client.get('/auth/me', headers=student['headers'])
    assert response.status_code == 401
    assert response.json()['detail']['code'] == 'auth/invalid-token'


def test_conversation_stream_rejects_bad_token(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as exception_info:
        with client.websocket_connect('/messages/ws/someone?token=garbage'):
            pass

    assert exception_info.value.code == 1008


def _token(account: dict) -> str:
    return account['headers']['Authorization'].removeprefix('Bearer ')


def test_conversation_stream_sends_current_then_new_messages(client: TestClient) -> None:
    teacher = _sign_up(client, 'tina@school.edu', 'teacher', department='Science')
    student = _sign_up(client, 'sam@school.edu', 'student')

    with client.websocket_connect(f"/messages/ws/{teacher['id']}?token={_token(student)}") as websocket:
        assert websocket.receive_json() == {'type': 'snapshot', 'messages': []}

        sent = client.post(
            '/messages', json={'receiver_id': student['id'], 'content': 'Hello Sam'}, headers=teacher['headers'],
        )
        assert sent.status_code == 201

        update = websocket.receive_json()

    assert update['type'] == 'snapshot'
    assert [message['content'] for message in update['messages']] == ['Hello Sam']
    assert update['messages'][0]['sender_id'] == teacher['id']


def test_conversation_stream_closes_session_when_store_fails(
    client: TestClient, document_db, monkeypatch: pytest.MonkeyPatch,
) -> None:
    student = _sign_up(client, 'sam@school.edu', 'student')
    closed = []

    def fail(self, user_id, peer_id):
        raise OperationalError('SELECT documents', {}, Exception('database is locked'))

    monkeypatch.setattr(MessagingService, 'subscribe_conversation', fail)
    monkeypatch.setattr(document_db, 'close', lambda: closed.append(True))

    with client.websocket_connect(f'/messages/ws/someone?token={_token(student)}') as websocket:
        with pytest.raises(WebSocketDisconnect) as exception_info:
            websocket.receive_json()

    assert exception_info.value.code == 1011
    assert closed == [True]


def test_stream_waits_use_their_own_thread_limiter(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(message_routes, '_stream_limiter', None)

    async def limiters():
        return message_routes.get_stream_limiter(), anyio.to_thread.current_default_thread_limiter()

    stream_limiter, default_limiter = anyio.run(limiters)

    assert stream_limiter is not default_limiter
    assert stream_limiter.total_tokens == config.LIVE_STREAM_LIMIT
