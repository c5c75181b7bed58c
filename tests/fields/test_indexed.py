import pytest
from pymongo import ASCENDING, DESCENDING

from learnmongo.fields.indexed import Indexed, IndexSpec, field_index_spec


class TestIndexSpec:
    def test_single_field(self):
        spec = IndexSpec(fields="id", unique=True, name="customer_by_id")
        assert spec.keys == [("id", ASCENDING)]
        assert spec.key_field == "id"
        assert spec.to_pymongo() == ([("id", 1)], {"name": "customer_by_id", "unique": True})

    def test_default_name_matches_server(self):
        spec = IndexSpec(fields=[("balance", DESCENDING)])
        assert spec.index_name == "balance_-1"
        assert spec.to_pymongo()[1] == {"name": "balance_-1"}

    def test_field_then_id_backs_queries(self):
        spec = IndexSpec(fields=[("id", ASCENDING), ("_id", ASCENDING)], name="customer_id_filter")
        assert spec.key_field == "id"

    def test_compound_cannot_back_queries(self):
        spec = IndexSpec(fields=[("a", 1), ("b", 1)])
        with pytest.raises(ValueError):
            spec.key_field

    def test_sparse(self):
        assert IndexSpec(fields="tag", sparse=True).to_pymongo()[1]["sparse"] is True


class TestIndexedField:
    def test_marks_field(self):
        field = Indexed(unique=True, name="by_email")
        spec = field_index_spec("email", field.json_schema_extra)
        assert spec == IndexSpec(fields="email", unique=True, name="by_email")

    def test_plain_extra_is_ignored(self):
        assert field_index_spec("email", None) is None
        assert field_index_spec("email", {"example": "x"}) is None

    def test_default_kept(self):
        assert Indexed(default="x").default == "x"
