# tests/base/query/test_query_options.py

import pytest

from async_mongo_query.base.options import QueryOptions, normalize_sort
from async_mongo_query.base.query import QueryBuilder


@pytest.mark.parametrize("method, value", [("limit", 25), ("skip", 10)])
def test_limit_and_skip_are_stored(qb: QueryBuilder, method, value):
    getattr(qb, method)(value)
    assert getattr(qb.options, method) == value


@pytest.mark.parametrize("method, value", [("limit", -5), ("skip", -1), ("limit", 2.5)])
def test_limit_and_skip_are_not_validated(qb: QueryBuilder, method, value):
    getattr(qb, method)(value)
    assert getattr(qb.options, method) == value


def test_unset_options_default_to_none_and_empty():
    options = QueryOptions()
    assert options.limit is None and options.skip is None
    assert options.sort == {} and options.projection == {}
    assert options.session is None and options.populated_fields == []


def test_paginate_derives_skip_and_limit(qb: QueryBuilder):
    qb.paginate(3, 20)
    assert qb.options.page == 3 and qb.options.page_size == 20
    assert qb.options.skip == 40 and qb.options.limit == 20


def test_first_page_has_zero_skip(qb: QueryBuilder):
    qb.paginate(1, 10)
    assert qb.options.skip == 0 and qb.options.limit == 10


def test_limit_after_paginate_keeps_derived_skip(qb: QueryBuilder):
    qb.paginate(2, 15).limit(5)
    assert qb.options.limit == 5
    assert qb.options.skip == 15


def test_paginate_overwrites_earlier_limit_and_skip(qb: QueryBuilder):
    qb.limit(100).skip(7).paginate(2, 10)
    assert qb.options.limit == 10 and qb.options.skip == 10


@pytest.mark.parametrize(
    "page, page_size, message",
    [
        (0, 10, r"page must be an integer >= 1, got 0"),
        (1, 0, r"page_size must be an integer >= 1, got 0"),
        (-2, 5, r"page must be an integer >= 1, got -2"),
        (1.5, 5, r"page must be an integer >= 1, got 1.5"),
        (True, 5, r"page must be an integer >= 1, got True"),
    ],
)
def test_paginate_rejects_invalid_page_state(qb: QueryBuilder, page, page_size, message):
    with pytest.raises(ValueError, match=message):
        qb.paginate(page, page_size)
    assert qb.options.skip is None and qb.options.limit is None


def test_sort_by_replaces_wholesale(qb: QueryBuilder):
    qb.sort_by({"age": -1, "name": 1}).sort_by({"created": 1})
    assert qb.options.sort == {"created": 1}


def test_sort_by_accepts_pymongo_pairs(qb: QueryBuilder):
    qb.sort_by([("age", -1), ("name", 1)])
    assert list(qb.options.sort.items()) == [("age", -1), ("name", 1)]


@pytest.mark.parametrize(
    "sort, expected",
    [
        ({"age": "desc", "name": "asc"}, {"age": -1, "name": 1}),
        ([("age", "Descending"), ("name", "ASCENDING")], {"age": -1, "name": 1}),
        ({"score": {"$meta": "textScore"}}, {"score": {"$meta": "textScore"}}),
    ],
)
def test_normalize_sort_resolves_string_directions(sort, expected):
    assert normalize_sort(sort) == expected


@pytest.mark.parametrize("bad", ["age", 5, [("age",)], [("age", 1, 2)]])
def test_normalize_sort_rejects_bad_shapes(bad):
    with pytest.raises(TypeError):
        normalize_sort(bad)


def test_select_replaces_projection(qb: QueryBuilder):
    qb.select({"name": 1, "age": 1}).select({"password": 0})
    assert qb.options.projection == {"password": 0}


def test_select_requires_mapping(qb: QueryBuilder):
    with pytest.raises(TypeError, match="select requires a mapping"):
        qb.select(["name"])


def test_populate_appends_in_order_and_skips_duplicates(qb: QueryBuilder):
    qb.populate("author", "tags").populate("editor", "author")
    assert qb.populated_fields == ["author", "tags", "editor"]


def test_set_session_is_stored_by_reference(qb: QueryBuilder):
    session = object()
    qb.set_session(session)
    assert qb.options.session is session


def test_to_find_options_leaves_out_unset_entries():
    options = QueryOptions()
    assert options.to_find_options() == {"session": None}
    assert options.to_find_options(include_session=False) == {}


def test_to_find_options_carries_everything_set():
    session = object()
    options = QueryOptions(
        limit=5, skip=10, sort={"age": -1}, projection={"name": 1}, session=session
    )
    native = options.to_find_options()
    assert native == {
        "limit": 5,
        "skip": 10,
        "sort": {"age": -1},
        "projection": {"name": 1},
        "session": session,
    }


def test_diagnostics_exclude_session_and_are_copies():
    options = QueryOptions(sort={"age": -1}, session=object())
    diagnostics = options.diagnostics()
    assert diagnostics == {"sort": {"age": -1}}
    diagnostics["sort"]["age"] = 1
    assert options.sort == {"age": -1}


def test_repr_hides_session():
    options = QueryOptions(limit=3, session=object())
    assert repr(options) == "QueryOptions(limit=3, session=<bound>)"


def test_build_snapshots_all_parts(qb: QueryBuilder):
    qb.by_field("age", "greater_than", 18).sort_by({"age": 1}).paginate(2, 5)
    qb.populate("author").aggregate({"$match": {"x": 1}})
    assert qb.build() == {
        "filter": {"age": {"$gt": 18}},
        "options": {"limit": 5, "skip": 5, "sort": {"age": 1}},
        "populate": ["author"],
        "pipeline": [{"$match": {"x": 1}}],
    }
