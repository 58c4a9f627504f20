import logging

import anyio
import anyio.to_thread
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from edubook.auth.dependencies import get_current_actor, get_store
from edubook.auth.identity import IdentityProvider
from edubook.core import config
from edubook.core.errors import DATABASE_UNAVAILABLE, AuthError, StoreUnavailableError
from edubook.database import SessionLocal
from edubook.models.account import Actor
from edubook.models.message import Message
from edubook.routes.auth_routes import AccountResponse
from edubook.services.messaging import MessagingService
from edubook.store.documents import DocumentStore
from edubook.store.live import Subscription, SubscriptionClosed

router = APIRouter(tags=['messages'])

logger = logging.getLogger(__name__)

_stream_limiter: anyio.CapacityLimiter | None = None


class SendMessageRequest(BaseModel):
    receiver_id: str
    content: str


@router.get('/contacts', response_model=list[AccountResponse])
def list_contacts(
    query: str = Query(default=''),
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        return MessagingService(store).contacts(actor, query)
    except SQLAlchemyError as exc:
        logger.exception('Failed to load contacts for %s.', actor.id)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.post('', response_model=Message, status_code=status.HTTP_201_CREATED)
def send_message(
    data: SendMessageRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        return MessagingService(store).send(actor, data.receiver_id, data.content)
    except SQLAlchemyError as exc:
        store.db.rollback()
        logger.exception('Failed to send a message from %s.', actor.id)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.get('/{peer_id}', response_model=list[Message])
def get_conversation(
    peer_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        return MessagingService(store).conversation(actor.id, peer_id)
    except SQLAlchemyError as exc:
        logger.exception('Failed to load the conversation between %s and %s.', actor.id, peer_id)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


def get_stream_limiter() -> anyio.CapacityLimiter:
    """Worker threads for live stream waits, kept apart from the route thread pool."""
    global _stream_limiter
    if _stream_limiter is None:
        _stream_limiter = anyio.CapacityLimiter(config.LIVE_STREAM_LIMIT)
    return _stream_limiter


async def _send_snapshots(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        try:
            messages = await anyio.to_thread.run_sync(
                subscription.next_snapshot,
                config.LIVE_POLL_SECONDS,
                limiter=get_stream_limiter(),
            )
        except TimeoutError:
            payload = {'type': 'ping'}
        except SubscriptionClosed:
            return
        else:
            payload = {
                'type': 'snapshot',
                'messages': [message.model_dump(mode='json') for message in messages],
            }

        try:
            await websocket.send_json(payload)
        except WebSocketDisconnect:
            return


async def _unsubscribe_on_disconnect(websocket: WebSocket, subscription: Subscription) -> None:
    # Unsubscribing wakes the sender blocked in next_snapshot.
    try:
        while (await websocket.receive())['type'] != 'websocket.disconnect':
            pass
    finally:
        subscription.unsubscribe()


@router.websocket('/ws/{peer_id}')
async def conversation_stream(websocket: WebSocket, peer_id: str, token: str = Query(...)):
    db = SessionLocal()
    store = DocumentStore(db)
    subscription = None
    try:
        try:
            identity = await run_in_threadpool(IdentityProvider(store).resolve, token)
        except AuthError:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await websocket.accept()
        subscription = await run_in_threadpool(
            MessagingService(store).subscribe_conversation, identity.uid, peer_id,
        )

        async with anyio.create_task_group() as task_group:
            task_group.start_soon(_unsubscribe_on_disconnect, websocket, subscription)
            await _send_snapshots(websocket, subscription)
            task_group.cancel_scope.cancel()

        logger.info('Conversation stream closed for %s and %s', identity.uid, peer_id)
    except SQLAlchemyError:
        logger.exception('Conversation stream with %s failed.', peer_id)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    finally:
        if subscription is not None:
            subscription.unsubscribe()
        db.close()
