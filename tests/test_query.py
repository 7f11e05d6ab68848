"""Tests for find parameters, in-memory matching and C8QL rendering."""

from __future__ import annotations

import pytest

from docstore_check.errors import QueryError
from docstore_check.query import (
    FindParams,
    apply,
    coerce_params,
    matches,
    to_c8ql,
    to_c8ql_remove,
    to_c8ql_update,
)

DOCS = [
    {"_id": "a", "title": "Hello", "content": "Post content", "votes": 3, "meta": {"lang": "en"}},
    {"_id": "b", "title": "Second", "content": "Second post content", "votes": 8},
    {"_id": "c", "title": "Last", "content": "Last document", "votes": 1, "status": False},
]


class TestParams:
    def test_defaults(self) -> None:
        p = coerce_params(None)
        assert p.query == {}
        assert p.limit is None
        assert p.offset == 0
        assert p.sort == []

    def test_sort_string_split(self) -> None:
        assert FindParams(sort="votes,-title").sort == ["votes", "-title"]
        assert FindParams(sort="votes -title").sort == ["votes", "-title"]

    def test_alias_search_fields(self) -> None:
        p = coerce_params({"search": "x", "searchFields": ["title"]})
        assert p.search_fields == ["title"]

    def test_negative_limit_rejected(self) -> None:
        with pytest.raises(QueryError):
            coerce_params({"limit": -1})

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(QueryError):
            coerce_params({"page": 2})


class TestMatches:
    def test_equality(self) -> None:
        assert matches(DOCS[0], {"title": "Hello"})
        assert not matches(DOCS[0], {"title": "Other"})

    def test_operators(self) -> None:
        assert matches(DOCS[1], {"votes": {"$gt": 2, "$lte": 8}})
        assert not matches(DOCS[2], {"votes": {"$gt": 2}})
        assert matches(DOCS[2], {"title": {"$in": ["Last", "First"]}})
        assert matches(DOCS[2], {"title": {"$nin": ["Hello"]}})
        assert matches(DOCS[0], {"votes": {"$ne": 1}})

    def test_missing_field_never_compares(self) -> None:
        assert not matches(DOCS[0], {"status": {"$lt": 5}})
        assert matches(DOCS[0], {"status": None})

    def test_dotted_path(self) -> None:
        assert matches(DOCS[0], {"meta.lang": "en"})
        assert not matches(DOCS[1], {"meta.lang": "en"})

    def test_unknown_operator(self) -> None:
        with pytest.raises(QueryError):
            matches(DOCS[0], {"votes": {"$regex": "x"}})

    def test_in_requires_list(self) -> None:
        with pytest.raises(QueryError):
            matches(DOCS[0], {"votes": {"$in": 3}})


class TestApply:
    def test_sort_offset_limit(self) -> None:
        out = apply(DOCS, FindParams(sort=["votes", "-title"], offset=1, limit=1))
        assert [d["_id"] for d in out] == ["a"]

    def test_descending(self) -> None:
        out = apply(DOCS, FindParams(sort=["-votes"]))
        assert [d["_id"] for d in out] == ["b", "a", "c"]

    def test_missing_sort_field_first(self) -> None:
        out = apply(DOCS, FindParams(sort=["status"]))
        assert out[-1]["_id"] == "c"

    def test_sort_mixed_types(self) -> None:
        docs = [
            {"_id": "s", "votes": "many"},
            {"_id": "i", "votes": 3},
            {"_id": "n"},
            {"_id": "t", "votes": True},
            {"_id": "l", "votes": [1, "x"]},
            {"_id": "f", "votes": 1.5},
        ]
        out = apply(docs, FindParams(sort=["votes"]))
        assert [d["_id"] for d in out] == ["n", "t", "f", "i", "s", "l"]
        out = apply(docs, FindParams(sort=["-votes"]))
        assert [d["_id"] for d in out] == ["l", "s", "i", "f", "t", "n"]

    def test_search_all_string_fields(self) -> None:
        out = apply(DOCS, FindParams(search="CONTENT"))
        assert [d["_id"] for d in out] == ["a", "b"]

    def test_search_restricted_fields(self) -> None:
        out = apply(DOCS, FindParams(search="content", search_fields=["title"]))
        assert out == []


class TestC8QL:
    def test_plain_find(self) -> None:
        q, binds = to_c8ql("posts", FindParams())
        assert q == "FOR d IN @@coll\nRETURN d"
        assert binds == {"@coll": "posts"}

    def test_filter_sort_limit(self) -> None:
        q, binds = to_c8ql(
            "posts",
            FindParams(query={"votes": {"$gt": 2}, "_id": "k1"}, sort=["-votes"], limit=5, offset=2),
        )
        assert "FILTER d.@f0 > @v1" in q
        assert "FILTER d.@f2 == @v3" in q
        assert "SORT d.@f4 DESC" in q
        assert "LIMIT @v5, @v6" in q
        assert q.endswith("RETURN d")
        assert binds["f0"] == "votes"
        assert binds["v1"] == 2
        assert binds["f2"] == "_key"
        assert binds["v5"] == 2
        assert binds["v6"] == 5

    def test_offset_without_limit(self) -> None:
        _, binds = to_c8ql("posts", FindParams(offset=3))
        assert binds["v0"] == 3
        assert binds["v1"] > 10**9

    def test_count(self) -> None:
        q, _ = to_c8ql("posts", FindParams(query={"votes": {"$gt": 2}}, sort=["votes"]), count=True)
        assert "SORT" not in q
        assert q.endswith("COLLECT WITH COUNT INTO n\nRETURN n")

    def test_search_escapes_like(self) -> None:
        q, binds = to_c8ql("posts", FindParams(search="50%_off", search_fields=["title"]))
        assert "LIKE(d.@f1, @v0, true)" in q
        assert binds["v0"] == "%50\\%\\_off%"

    def test_search_without_fields(self) -> None:
        q, _ = to_c8ql("posts", FindParams(search="content"))
        assert "VALUES(d)" in q

    def test_update(self) -> None:
        q, binds = to_c8ql_update("posts", {"votes": {"$lt": 5}}, {"status": False})
        assert "UPDATE d WITH @v2 IN @@coll" in q
        assert binds["v2"] == {"status": False}

    def test_remove(self) -> None:
        q, _ = to_c8ql_remove("posts", {"votes": {"$lt": 5}})
        assert "REMOVE d IN @@coll" in q
        assert q.endswith("RETURN n")
