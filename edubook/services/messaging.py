"""Direct messages between teachers and students."""

import logging

from edubook.core.clock import now_timestamp
from edubook.core.errors import FormValidationError, NotFoundError, PermissionDeniedError
from edubook.models.account import Actor, parse_account
from edubook.models.message import Message
from edubook.services.directory import filter_profiles
from edubook.store.collections import MESSAGES, USERS
from edubook.store.documents import DocumentStore
from edubook.store.live import Subscription

logger = logging.getLogger(__name__)

MESSAGING_ROLES = ('teacher', 'student')
CONTACT_ROLE = {'teacher': 'student', 'student': 'teacher'}


def _between(documents: list[dict], user_id: str, peer_id: str) -> list[Message]:
    messages = [Message.model_validate(document) for document in documents]
    return [message for message in messages if message.is_between(user_id, peer_id)]


class MessagingService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def _ensure_participant(self, actor: Actor) -> None:
        if actor.role not in MESSAGING_ROLES:
            raise PermissionDeniedError('Only teachers and students can use messaging.')

    def send(self, actor: Actor, receiver_id: str, content: str) -> Message:
        self._ensure_participant(actor)

        content = (content or '').strip()
        if not content:
            raise FormValidationError('Message cannot be empty.')

        if self.store.get(USERS, receiver_id) is None:
            raise NotFoundError('Recipient not found.', details={'receiver_id': receiver_id})

        document = {
            'sender_id': actor.id,
            'sender_name': actor.name or actor.email,
            'receiver_id': receiver_id,
            'content': content,
            'timestamp': now_timestamp(),
            'participants': [actor.id, receiver_id],
        }
        message_id = self.store.add(MESSAGES, document)
        logger.info('Message %s sent from %s to %s', message_id, actor.id, receiver_id)
        return Message.model_validate({**document, 'id': message_id})

    def conversation(self, user_id: str, peer_id: str) -> list[Message]:
        documents = self.store.query(MESSAGES, array_contains=('participants', user_id), order_by='timestamp')
        return _between(documents, user_id, peer_id)

    def subscribe_conversation(self, user_id: str, peer_id: str) -> Subscription:
        return self.store.add_live_listener(
            MESSAGES,
            array_contains=('participants', user_id),
            order_by='timestamp',
            transform=lambda documents: _between(documents, user_id, peer_id),
            match=lambda document: {document.get('sender_id'), document.get('receiver_id')} == {user_id, peer_id},
        )

    def contacts(self, actor: Actor, query: str = '') -> list:
        self._ensure_participant(actor)
        documents = self.store.query(USERS, {'role': CONTACT_ROLE[actor.role]})
        return filter_profiles([parse_account(document) for document in documents], query)
