from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Union

from ..errors import AdapterError, QueryError
from ..query import FindParams


Document = Dict[str, Any]
ParamsLike = Union[FindParams, Mapping[str, Any], None]


class DocumentAdapter(Protocol):
    """Asynchronous CRUD surface a document store adapter provides."""

    async def connect(self) -> None:
        ...

    async def disconnect(self) -> None:
        ...

    async def count(self, params: ParamsLike = None) -> int:
        ...

    async def insert(self, doc: Mapping[str, Any]) -> Document:
        ...

    async def insert_many(self, docs: Sequence[Mapping[str, Any]]) -> List[Document]:
        ...

    async def find(self, params: ParamsLike = None) -> List[Document]:
        ...

    async def find_one(self, query: Mapping[str, Any]) -> Optional[Document]:
        ...

    async def find_by_id(self, doc_id: str) -> Optional[Document]:
        ...

    async def find_by_ids(self, ids: Sequence[str]) -> List[Document]:
        ...

    async def update_by_id(self, doc_id: str, update: Mapping[str, Any]) -> Optional[Document]:
        ...

    async def update_many(self, query: Mapping[str, Any], update: Mapping[str, Any]) -> int:
        ...

    async def remove_many(self, query: Mapping[str, Any]) -> int:
        ...

    async def remove_by_id(self, doc_id: str) -> Optional[Document]:
        ...

    async def clear(self) -> int:
        ...

    async def create_fulltext_index(self, fields: Sequence[str]) -> Dict[str, Any]:
        ...


def set_fields(update: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the fields an update document assigns.

    ``{"$set": {...}}`` and a plain field mapping are both accepted; any other
    ``$`` operator is rejected.
    """
    if not update:
        return {}
    ops = [k for k in update if k.startswith("$")]
    if not ops:
        return dict(update)
    unknown = [k for k in ops if k != "$set"]
    if unknown or len(ops) != len(update):
        raise QueryError(f"Unsupported update operators: {sorted(set(update) - {'$set'})}")
    return dict(update["$set"])


def check_fulltext_fields(fields: Sequence[str]) -> str:
    # The hosted service only builds fulltext indexes on a single attribute.
    if len(fields) != 1:
        raise AdapterError(f"Fulltext index supports exactly one field, got {list(fields)}")
    return fields[0]
