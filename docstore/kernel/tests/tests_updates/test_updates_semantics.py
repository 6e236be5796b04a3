"""
Docstore Updates - Engine Semantics Tests

Purity, fixed operator order, identifier immutability and malformed input.
"""

import copy

import pytest

from docstore.kernel.errors import InvalidUpdateError
from docstore.kernel.updates import apply_update


@pytest.fixture
def doc():
    return {"_id": "d1", "count": 1, "tags": ["a", "b"], "meta": {"owner": "me"}}


class TestPurity:
    """apply_update never touches its inputs and never aliases them."""

    @pytest.mark.parametrize(
        "update",
        [
            {"count": 5},
            {"$set": {"meta.owner": "you"}},
            {"$unset": {"meta.owner": 1}},
            {"$inc": {"count": 2}},
            {"$push": {"tags": "c"}},
            {"$pull": {"tags": "a"}},
            {"$addToSet": {"tags": "z"}},
        ],
    )
    def test_input_unchanged(self, doc, update):
        before = copy.deepcopy(doc)
        apply_update(doc, update)
        assert doc == before

    def test_result_does_not_share_nested_values(self, doc):
        result = apply_update(doc, {"$set": {"count": 2}})
        result["meta"]["owner"] = "other"
        result["tags"].append("x")
        assert doc["meta"]["owner"] == "me"
        assert doc["tags"] == ["a", "b"]

    def test_operand_is_copied(self, doc):
        payload = {"deep": [1]}
        result = apply_update(doc, {"$set": {"blob": payload}, "$push": {"tags": payload}})
        payload["deep"].append(2)
        assert result["blob"] == {"deep": [1]}
        assert result["tags"][-1] == {"deep": [1]}

    def test_direct_value_is_copied(self, doc):
        payload = ["x"]
        result = apply_update(doc, {"list": payload})
        payload.append("y")
        assert result["list"] == ["x"]


class TestOperatorOrder:
    """$set, $unset, $inc, $push, $pull, $addToSet, whatever the key order."""

    def test_inc_after_set(self, doc):
        a = apply_update(doc, {"$inc": {"count": 1}, "$set": {"count": 10}})
        b = apply_update(doc, {"$set": {"count": 10}, "$inc": {"count": 1}})
        assert a["count"] == b["count"] == 11

    def test_unset_after_set(self, doc):
        result = apply_update(doc, {"$unset": {"flag": 1}, "$set": {"flag": True}})
        assert "flag" not in result

    def test_push_then_pull(self, doc):
        result = apply_update(doc, {"$pull": {"tags": "c"}, "$push": {"tags": "c"}})
        assert result["tags"] == ["a", "b"]

    def test_pull_then_add_to_set(self, doc):
        result = apply_update(doc, {"$addToSet": {"tags": "a"}, "$pull": {"tags": "a"}})
        assert result["tags"] == ["b", "a"]

    def test_set_creates_array_for_push(self, doc):
        result = apply_update(doc, {"$push": {"log": "x"}, "$set": {"log": []}})
        assert result["log"] == ["x"]

    def test_combined(self, doc):
        result = apply_update(
            doc,
            {"$push": {"tags": "c"}, "$inc": {"count": 4}, "$set": {"meta.owner": "team"}},
        )
        assert result == {"_id": "d1", "count": 5, "tags": ["a", "b", "c"], "meta": {"owner": "team"}}


class TestSequentialUpdates:
    def test_pull_then_add_to_set_does_not_duplicate(self, doc):
        """["a","b"] pull "a" then addToSet "b" leaves ["b"]."""
        pulled = apply_update(doc, {"$pull": {"tags": "a"}})
        result = apply_update(pulled, {"$addToSet": {"tags": "b"}})
        assert result["tags"] == ["b"]


class TestIdentifier:
    def test_set_to_new_value(self, doc):
        with pytest.raises(InvalidUpdateError):
            apply_update(doc, {"$set": {"_id": "other"}})

    def test_direct_change(self, doc):
        with pytest.raises(InvalidUpdateError):
            apply_update(doc, {"_id": "other"})

    def test_unset(self, doc):
        with pytest.raises(InvalidUpdateError):
            apply_update(doc, {"$unset": {"_id": 1}})

    def test_same_value_allowed(self, doc):
        assert apply_update(doc, {"$set": {"_id": "d1"}})["_id"] == "d1"

    def test_document_without_id(self):
        assert apply_update({"n": 1}, {"$inc": {"n": 1}}) == {"n": 2}


class TestMalformedUpdates:
    def test_not_a_dict(self, doc):
        with pytest.raises(InvalidUpdateError):
            apply_update(doc, [("$set", {"a": 1})])

    def test_unknown_operator(self, doc):
        with pytest.raises(InvalidUpdateError):
            apply_update(doc, {"$rename": {"count": "total"}})

    def test_mixed_operator_and_plain_keys(self, doc):
        with pytest.raises(InvalidUpdateError):
            apply_update(doc, {"$set": {"a": 1}, "b": 2})

    def test_operand_must_be_dict(self, doc):
        with pytest.raises(InvalidUpdateError):
            apply_update(doc, {"$inc": 1})

    def test_empty_field_name(self, doc):
        with pytest.raises(InvalidUpdateError):
            apply_update(doc, {"$set": {"": 1}})

    def test_empty_operand_is_noop(self, doc):
        assert apply_update(doc, {"$set": {}}) == doc
