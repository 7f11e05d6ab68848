from __future__ import annotations
import copy
import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..errors import AdapterError
from ..query import FindParams, apply, coerce_params
from .base import Document, ParamsLike, check_fulltext_fields, set_fields


class MemoryAdapter:
    """Dict-backed document store used offline and in tests.

    Documents are deep-copied on the way in and out so callers never hold a
    reference into the store.
    """

    def __init__(self, collection: str = "posts") -> None:
        self.collection = collection
        self._docs: Dict[str, Document] = {}
        self.indexes: List[Dict[str, Any]] = []
        self.connected = False

    def _require_connected(self) -> None:
        if not self.connected:
            raise AdapterError("Adapter is not connected")

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def count(self, params: ParamsLike = None) -> int:
        self._require_connected()
        p = coerce_params(params)
        p = p.model_copy(update={"limit": None, "offset": 0, "sort": []})
        return len(apply(self._docs.values(), p))

    async def insert(self, doc: Mapping[str, Any]) -> Document:
        self._require_connected()
        stored = copy.deepcopy(dict(doc))
        doc_id = str(stored["_id"]) if stored.get("_id") is not None else uuid.uuid4().hex
        if doc_id in self._docs:
            raise AdapterError(f"Document {doc_id} already exists", status_code=409)
        stored["_id"] = doc_id
        self._docs[doc_id] = stored
        return copy.deepcopy(stored)

    async def insert_many(self, docs: Sequence[Mapping[str, Any]]) -> List[Document]:
        return [await self.insert(d) for d in docs]

    async def find(self, params: ParamsLike = None) -> List[Document]:
        self._require_connected()
        return [copy.deepcopy(dict(d)) for d in apply(self._docs.values(), coerce_params(params))]

    async def find_one(self, query: Mapping[str, Any]) -> Optional[Document]:
        found = await self.find(FindParams(query=dict(query), limit=1))
        return found[0] if found else None

    async def find_by_id(self, doc_id: str) -> Optional[Document]:
        self._require_connected()
        doc = self._docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find_by_ids(self, ids: Sequence[str]) -> List[Document]:
        self._require_connected()
        return [copy.deepcopy(self._docs[i]) for i in ids if i in self._docs]

    async def update_by_id(self, doc_id: str, update: Mapping[str, Any]) -> Optional[Document]:
        self._require_connected()
        fields = set_fields(update)
        doc = self._docs.get(doc_id)
        if doc is None:
            return None
        fields.pop("_id", None)
        doc.update(copy.deepcopy(fields))
        return copy.deepcopy(doc)

    async def update_many(self, query: Mapping[str, Any], update: Mapping[str, Any]) -> int:
        self._require_connected()
        fields = set_fields(update)
        fields.pop("_id", None)
        hits = apply(self._docs.values(), FindParams(query=dict(query)))
        for doc in hits:
            doc.update(copy.deepcopy(fields))
        return len(hits)

    async def remove_many(self, query: Mapping[str, Any]) -> int:
        self._require_connected()
        hits = apply(self._docs.values(), FindParams(query=dict(query)))
        for doc in hits:
            del self._docs[doc["_id"]]
        return len(hits)

    async def remove_by_id(self, doc_id: str) -> Optional[Document]:
        self._require_connected()
        return self._docs.pop(doc_id, None)

    async def clear(self) -> int:
        self._require_connected()
        n = len(self._docs)
        self._docs.clear()
        return n

    async def create_fulltext_index(self, fields: Sequence[str]) -> Dict[str, Any]:
        self._require_connected()
        field = check_fulltext_fields(fields)
        index = {"type": "fulltext", "fields": [field], "id": f"{self.collection}/{len(self.indexes) + 1}"}
        self.indexes.append(index)
        return dict(index)
