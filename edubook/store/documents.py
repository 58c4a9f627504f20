"""
Document store adapter.

Collections of JSON documents kept in the ``documents`` table. Equality
filters run in SQL against the JSON body; array membership and ordering run in
process. Writes commit immediately and wake the live listeners whose filters
match the document before or after the write.
"""

import logging
import uuid
from typing import Any, Callable

from sqlalchemy.orm import Session

from edubook.core.errors import NotFoundError
from edubook.models.document import Document
from edubook.store.live import ListenerHub, Subscription, listener_hub

logger = logging.getLogger(__name__)


def _matches(
    document: dict[str, Any],
    filters: dict[str, Any] | None,
    array_contains: tuple[str, Any] | None,
) -> bool:
    for field, expected in (filters or {}).items():
        if document.get(field) != expected:
            return False
    if array_contains is not None:
        field, member = array_contains
        values = document.get(field)
        if not isinstance(values, list) or member not in values:
            return False
    return True


def _json_equals(field: str, value: Any):
    element = Document.data[field]
    if isinstance(value, bool):
        return element.as_boolean() == value
    if isinstance(value, int):
        return element.as_integer() == value
    if isinstance(value, float):
        return element.as_float() == value
    if isinstance(value, str):
        return element.as_string() == value
    return None


def _sort_key(field: str):
    def key(document: dict[str, Any]):
        value = document.get(field)
        return (value is None, '' if value is None else value)
    return key


class DocumentStore:
    def __init__(self, db: Session, hub: ListenerHub | None = None) -> None:
        self.db = db
        self.hub = hub or listener_hub

    def _row(self, collection: str, doc_id: str) -> Document | None:
        return self.db.query(Document).filter(
            Document.collection == collection,
            Document.doc_id == doc_id,
        ).first()

    @staticmethod
    def _to_dict(row: Document) -> dict[str, Any]:
        return {**(row.data or {}), 'id': row.doc_id}

    def _commit(self, collection: str, before: dict[str, Any] | None, after: dict[str, Any]) -> None:
        self.db.commit()
        self.hub.notify(collection, self, changed=(before, after))

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        row = self._row(collection, doc_id)
        return self._to_dict(row) if row else None

    def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        array_contains: tuple[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict[str, Any]]:
        statement = self.db.query(Document).filter(Document.collection == collection)
        for field, expected in (filters or {}).items():
            clause = _json_equals(field, expected)
            if clause is not None:
                statement = statement.filter(clause)

        rows = statement.order_by(Document.seq.asc()).all()

        # SQL narrows the rows; the exact comparison still decides.
        documents = [self._to_dict(row) for row in rows]
        documents = [document for document in documents if _matches(document, filters, array_contains)]
        if order_by:
            documents.sort(key=_sort_key(order_by))
        return documents

    def put(self, collection: str, doc_id: str, document: dict[str, Any]) -> dict[str, Any]:
        data = {key: value for key, value in document.items() if key != 'id'}
        row = self._row(collection, doc_id)
        if row is None:
            before = None
            row = Document(collection=collection, doc_id=doc_id, data=data)
            self.db.add(row)
        else:
            before = self._to_dict(row)
            row.data = data
        after = {**data, 'id': doc_id}
        self._commit(collection, before, after)
        return after

    def add(self, collection: str, document: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self.put(collection, doc_id, document)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        row = self._row(collection, doc_id)
        if row is None:
            raise NotFoundError(f'{collection}/{doc_id} does not exist.', details={'collection': collection})

        before = self._to_dict(row)
        merged = {**(row.data or {}), **{key: value for key, value in fields.items() if key != 'id'}}
        row.data = merged
        after = {**merged, 'id': doc_id}
        self._commit(collection, before, after)
        return after

    def add_live_listener(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        array_contains: tuple[str, Any] | None = None,
        order_by: str | None = None,
        transform: Callable[[list[dict[str, Any]]], Any] | None = None,
        match: Callable[[dict[str, Any]], bool] | None = None,
    ) -> Subscription:
        """Subscribe to a query over ``collection``.

        A write refreshes the subscription only when the written document
        satisfies ``filters``, ``array_contains`` and ``match`` before or after
        the write.
        """
        def snapshot(source: "DocumentStore") -> Any:
            documents = source.query(collection, filters, array_contains, order_by)
            return transform(documents) if transform else documents

        def affected(document: dict[str, Any]) -> bool:
            return _matches(document, filters, array_contains) and (match is None or match(document))

        logger.debug('Live listener added on %s filters=%s', collection, filters)
        return self.hub.subscribe(collection, snapshot, self, match_fn=affected)
