"""
Docstore Query - Logical Combinator Tests

$and / $or / $not, alone, nested, and mixed with field predicates.
A node matches only when its field predicates AND its combinators all hold.
"""

import pytest

from docstore.kernel.errors import InvalidQueryError
from docstore.kernel.query import filter_documents, matches


@pytest.fixture
def users():
    return [
        {"_id": "u1", "name": "Alice", "age": 25, "role": "admin", "active": True},
        {"_id": "u2", "name": "Bob", "age": 30, "role": "user", "active": False},
        {"_id": "u3", "name": "Carol", "age": 35, "role": "user", "active": True},
        {"_id": "u4", "name": "Dave", "age": 28, "role": "guest"},
    ]


QUERY_A = {"age": {"$gte": 28}}
QUERY_B = {"role": "user"}


class TestAnd:
    def test_all_must_match(self, users):
        result = filter_documents(users, {"$and": [QUERY_A, QUERY_B]})
        assert [u["name"] for u in result] == ["Bob", "Carol"]

    def test_empty_and_matches_everything(self, users):
        assert filter_documents(users, {"$and": []}) == users

    def test_requires_list(self, users):
        with pytest.raises(InvalidQueryError):
            matches(users[0], {"$and": QUERY_A})


class TestOr:
    def test_any_may_match(self, users):
        result = filter_documents(users, {"$or": [{"role": "admin"}, {"age": {"$gt": 32}}]})
        assert [u["name"] for u in result] == ["Alice", "Carol"]

    def test_empty_or_matches_nothing(self, users):
        assert filter_documents(users, {"$or": []}) == []


class TestNot:
    def test_negates(self, users):
        result = filter_documents(users, {"$not": {"role": "user"}})
        assert [u["name"] for u in result] == ["Alice", "Dave"]

    def test_requires_single_query(self, users):
        with pytest.raises(InvalidQueryError):
            matches(users[0], {"$not": [{"role": "user"}]})


class TestMixedNodes:
    def test_fields_and_combinators_are_conjoined(self, users):
        """Field predicates still apply when a combinator is present."""
        query = {"active": True, "$or": [{"role": "user"}, {"role": "guest"}]}
        result = filter_documents(users, query)
        assert [u["name"] for u in result] == ["Carol"]

    def test_all_combinators_must_hold(self, users):
        query = {
            "$and": [{"age": {"$gte": 25}}],
            "$or": [{"role": "user"}, {"role": "admin"}],
            "$not": {"name": "Bob"},
        }
        result = filter_documents(users, query)
        assert [u["name"] for u in result] == ["Alice", "Carol"]

    def test_nested_tree(self, users):
        query = {"$or": [{"$and": [{"role": "user"}, {"active": True}]}, {"role": "guest"}]}
        result = filter_documents(users, query)
        assert [u["name"] for u in result] == ["Carol", "Dave"]

    def test_unknown_combinator(self, users):
        with pytest.raises(InvalidQueryError):
            matches(users[0], {"$nor": [{"role": "user"}]})


class TestCompositionLaws:
    """Combinators agree with boolean logic on every document."""

    def test_and_is_conjunction(self, users):
        for u in users:
            assert matches(u, {"$and": [QUERY_A, QUERY_B]}) == (matches(u, QUERY_A) and matches(u, QUERY_B))

    def test_or_is_disjunction(self, users):
        for u in users:
            assert matches(u, {"$or": [QUERY_A, QUERY_B]}) == (matches(u, QUERY_A) or matches(u, QUERY_B))

    def test_not_is_negation(self, users):
        for u in users:
            assert matches(u, {"$not": QUERY_A}) == (not matches(u, QUERY_A))

    def test_de_morgan(self, users):
        for u in users:
            left = matches(u, {"$not": {"$or": [QUERY_A, QUERY_B]}})
            right = matches(u, {"$and": [{"$not": QUERY_A}, {"$not": QUERY_B}]})
            assert left == right


class TestEmptyQuery:
    def test_none_returns_input_unchanged(self, users):
        assert filter_documents(users, None) is users

    def test_empty_dict_returns_input_unchanged(self, users):
        assert filter_documents(users, {}) is users

    def test_empty_query_matches_single_document(self, users):
        assert matches(users[0], {})
