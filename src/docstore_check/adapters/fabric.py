"""Adapter for a hosted document store exposing the C8 REST API.

The service authenticates with ``POST /_open/auth`` and then serves every
request under ``/_fabric/<fabric>/_api`` (optionally prefixed by
``/_tenant/<tenant>``). Documents are addressed by ``_key``; the adapter
exposes that key as ``_id`` so callers see the same shape the memory adapter
returns.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

import httpx

from ..config import Settings
from ..errors import AdapterError
from ..http_client import HttpClient
from ..query import FindParams, coerce_params, to_c8ql, to_c8ql_remove, to_c8ql_update
from ..util import api_base, build_origin, mask_secret
from .base import Document, ParamsLike, check_fulltext_fields, set_fields

log = logging.getLogger("docstore.fabric")

_BATCH_SIZE = 1000


def _from_remote(doc: Mapping[str, Any]) -> Document:
    d = dict(doc)
    key = d.pop("_key", None)
    d.pop("_rev", None)
    if key is not None:
        d["_id"] = key
    return d


def _to_remote(doc: Mapping[str, Any]) -> Dict[str, Any]:
    d = dict(doc)
    if "_id" in d:
        d["_key"] = str(d.pop("_id"))
    return d


class FabricAdapter:
    """Document adapter backed by the hosted service's REST API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings
        self.collection = settings.collection
        self.origin = build_origin(settings.url)
        self.base = api_base(settings.url, settings.tenant, settings.fabric)
        self._transport = transport
        self._http: Optional[HttpClient] = None

    # ------- helpers -------

    @property
    def http(self) -> HttpClient:
        if self._http is None:
            raise AdapterError("Adapter is not connected")
        return self._http

    def _doc_url(self, key: Optional[str] = None) -> str:
        url = f"{self.base}/document/{quote(self.collection, safe='')}"
        if key is not None:
            url = f"{url}/{quote(str(key), safe='')}"
        return url

    def _coll_url(self, suffix: str = "") -> str:
        url = f"{self.base}/collection/{quote(self.collection, safe='')}"
        return f"{url}/{suffix}" if suffix else url

    @staticmethod
    def _json(resp: httpx.Response, what: str) -> Any:
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
            detail = body.get("errorMessage") if isinstance(body, dict) else body
            raise AdapterError(f"{what} failed: HTTP {resp.status_code} {detail}", status_code=resp.status_code, body=body)
        try:
            return resp.json()
        except ValueError:
            raise AdapterError(f"{what} returned a non-JSON response", status_code=resp.status_code, body=resp.text)

    async def _cursor(self, query: str, bind_vars: Dict[str, Any]) -> List[Any]:
        log.debug("C8QL %s %s", " ".join(query.split()), bind_vars)
        resp = await self.http.post_json(
            f"{self.base}/cursor",
            {"query": query, "bindVars": bind_vars, "batchSize": _BATCH_SIZE},
        )
        data = self._json(resp, "cursor")
        out = list(data.get("result") or [])
        while data.get("hasMore"):
            resp = await self.http.put_json(f"{self.base}/cursor/{data['id']}")
            data = self._json(resp, "cursor next")
            out.extend(data.get("result") or [])
        return out

    async def _ensure_collection(self) -> None:
        resp = await self.http.get(self._coll_url())
        if resp.status_code == 404:
            log.info("Creating collection %s", self.collection)
            resp = await self.http.post_json(f"{self.base}/collection", {"name": self.collection})
        self._json(resp, "collection")

    # ------- lifecycle -------

    async def connect(self) -> None:
        if not self.settings.email or not self.settings.password:
            raise AdapterError("email and password are required for the hosted store")
        self._http = HttpClient(self.settings, self._transport)
        try:
            resp = await self._http.post_json(
                f"{self.origin}/_open/auth",
                {"email": self.settings.email, "password": self.settings.password},
            )
            token = self._json(resp, "login").get("jwt")
            if not token:
                raise AdapterError("login response carried no token", status_code=resp.status_code)
            self._http.set_bearer(token)
            log.info("Logged in to %s as %s (token %s)", self.origin, self.settings.email, mask_secret(token))
            await self._ensure_collection()
        except Exception:
            await self._http.close()
            self._http = None
            raise

    async def disconnect(self) -> None:
        if self._http is not None:
            await self._http.close()
            self._http = None

    # ------- CRUD -------

    async def count(self, params: ParamsLike = None) -> int:
        p = coerce_params(params)
        if not p.query and not p.search:
            data = self._json(await self.http.get(self._coll_url("count")), "count")
            return int(data.get("count", 0))
        query, binds = to_c8ql(self.collection, p, count=True)
        result = await self._cursor(query, binds)
        return int(result[0]) if result else 0

    async def insert(self, doc: Mapping[str, Any]) -> Document:
        resp = await self.http.post_json(self._doc_url(), _to_remote(doc), params={"returnNew": "true"})
        return _from_remote(self._json(resp, "insert")["new"])

    async def insert_many(self, docs: Sequence[Mapping[str, Any]]) -> List[Document]:
        resp = await self.http.post_json(
            self._doc_url(), [_to_remote(d) for d in docs], params={"returnNew": "true"}
        )
        items = self._json(resp, "insert many")
        failed = [i for i in items if i.get("error")]
        if failed:
            raise AdapterError(f"insert many rejected {len(failed)} documents", body=failed)
        return [_from_remote(i["new"]) for i in items]

    async def find(self, params: ParamsLike = None) -> List[Document]:
        query, binds = to_c8ql(self.collection, coerce_params(params))
        return [_from_remote(d) for d in await self._cursor(query, binds)]

    async def find_one(self, query: Mapping[str, Any]) -> Optional[Document]:
        found = await self.find(FindParams(query=dict(query), limit=1))
        return found[0] if found else None

    async def find_by_id(self, doc_id: str) -> Optional[Document]:
        resp = await self.http.get(self._doc_url(doc_id))
        if resp.status_code == 404:
            return None
        return _from_remote(self._json(resp, "find by id"))

    async def find_by_ids(self, ids: Sequence[str]) -> List[Document]:
        found = await self.find(FindParams(query={"_id": {"$in": [str(i) for i in ids]}}))
        by_id = {d["_id"]: d for d in found}
        return [by_id[str(i)] for i in ids if str(i) in by_id]

    async def update_by_id(self, doc_id: str, update: Mapping[str, Any]) -> Optional[Document]:
        fields = set_fields(update)
        fields.pop("_id", None)
        resp = await self.http.patch_json(self._doc_url(doc_id), fields, params={"returnNew": "true"})
        if resp.status_code == 404:
            return None
        return _from_remote(self._json(resp, "update")["new"])

    async def update_many(self, query: Mapping[str, Any], update: Mapping[str, Any]) -> int:
        fields = set_fields(update)
        fields.pop("_id", None)
        text, binds = to_c8ql_update(self.collection, query, fields)
        result = await self._cursor(text, binds)
        return int(result[0]) if result else 0

    async def remove_many(self, query: Mapping[str, Any]) -> int:
        text, binds = to_c8ql_remove(self.collection, query)
        result = await self._cursor(text, binds)
        return int(result[0]) if result else 0

    async def remove_by_id(self, doc_id: str) -> Optional[Document]:
        resp = await self.http.delete(self._doc_url(doc_id), params={"returnOld": "true"})
        if resp.status_code == 404:
            return None
        return _from_remote(self._json(resp, "remove")["old"])

    async def clear(self) -> int:
        n = await self.count()
        self._json(await self.http.put_json(self._coll_url("truncate")), "truncate")
        return n

    async def create_fulltext_index(self, fields: Sequence[str]) -> Dict[str, Any]:
        field = check_fulltext_fields(fields)
        resp = await self.http.post_json(
            f"{self.base}/index/fulltext",
            {"type": "fulltext", "fields": [field], "minLength": 3},
            params={"collection": self.collection},
        )
        return self._json(resp, "create fulltext index")
