import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError
from pymongo.results import UpdateResult

from learnmongo import Document, DocumentNotFound, Indexed
from learnmongo.ledger.models import Customer, Transaction


class Note(Document):
    title: str
    body: str = ""


class Tag(Document):
    label: str = Indexed(unique=True)

    class Settings:
        collection = "note_tags"


class TestSettings:
    def test_auto_pluralize(self):
        assert Note._collection_name == "notes"

    def test_settings_override(self):
        assert Tag._collection_name == "note_tags"
        assert Customer._collection_name == "customers"

    def test_index_specs_from_fields_and_settings(self):
        assert set(Customer.index_specs()) == {"customer_by_id", "customer_id_filter"}
        assert set(Transaction.index_specs()) == {"transactions_by_uuid"}
        assert set(Tag.index_specs()) == {"label_1"}

    def test_customer_indexes_are_unique(self):
        specs = Customer.index_specs()
        assert specs["customer_by_id"].unique is True
        keys, options = specs["customer_id_filter"].to_pymongo()
        assert keys == [("id", 1), ("_id", 1)]
        assert options == {"name": "customer_id_filter", "unique": True}

    def test_aliases_used_in_storage(self):
        record = Transaction(uuid="u1", source_customer=1, dest_customer=2, amount=5)
        assert record._to_mongo() == {
            "uuid": "u1",
            "sourceCust": 1,
            "destCust": 2,
            "amount": 5,
        }

    async def test_update_sets_aliased_keys(self, monkeypatch):
        calls = []

        class FakeCollection:
            async def update_one(self, filter, update, session=None):
                calls.append(update)
                return UpdateResult({"n": 1, "nModified": 1}, acknowledged=True)

        monkeypatch.setattr(
            Transaction, "get_collection", classmethod(lambda cls: FakeCollection())
        )
        record = Transaction(
            uuid="u1", source_customer=1, dest_customer=2, amount=5, ref=ObjectId()
        )
        await record.update(source_customer=3, amount=7)

        assert calls == [{"$set": {"sourceCust": 3, "amount": 7}}]
        assert record.source_customer == 3
        assert record.amount == 7

    def test_to_data_drops_ref(self):
        customer = Customer(id=3, balance=30, ref=ObjectId())
        assert customer.to_data() == {"id": 3, "balance": 30}


class TestCreateAndGet:
    async def test_create_assigns_ref(self, mongo_connection):
        note = await Note.create(title="first")
        assert isinstance(note.ref, ObjectId)

    async def test_get_round_trip(self, mongo_connection):
        note = await Note.create(title="hello", body="world")
        fetched = await Note.get(note.ref)
        assert fetched.title == "hello"
        assert fetched.body == "world"
        assert fetched.ref == note.ref

    async def test_get_with_string_ref(self, mongo_connection):
        note = await Note.create(title="by string")
        fetched = await Note.get(str(note.ref))
        assert fetched.title == "by string"

    async def test_get_not_found_raises(self, mongo_connection):
        with pytest.raises(DocumentNotFound):
            await Note.get(ObjectId())

    async def test_insert_many_keeps_order(self, mongo_connection):
        notes = await Note.insert_many(Note(title=f"n{i}") for i in range(5))
        assert all(note.ref is not None for note in notes)
        fetched = await Note.get_many([note.ref for note in reversed(notes)])
        assert [note.title for note in fetched] == ["n4", "n3", "n2", "n1", "n0"]

    async def test_insert_many_empty(self, mongo_connection):
        assert await Note.insert_many([]) == []

    async def test_get_many_missing_raises(self, mongo_connection):
        note = await Note.create(title="only")
        with pytest.raises(DocumentNotFound):
            await Note.get_many([note.ref, ObjectId()])

    async def test_find_and_find_one(self, mongo_connection):
        await Note.create(title="a", body="x")
        await Note.create(title="b", body="x")
        assert len(await Note.find(body="x")) == 2
        assert (await Note.find_one({"title": "b"})).title == "b"
        assert await Note.find_one(title="zzz") is None


class TestUpdateAndDelete:
    async def test_save_writes_dirty_fields(self, mongo_connection):
        customer = await Customer.create(id=0, balance=100)
        customer.balance = 200
        assert customer.dirty_fields == {"balance"}
        await customer.save()
        assert not customer.is_dirty
        assert (await Customer.get(customer.ref)).balance == 200

    async def test_save_without_changes_is_noop(self, mongo_connection):
        customer = await Customer.create(id=1, balance=100)
        await customer.save()
        assert (await Customer.get(customer.ref)).balance == 100

    async def test_update_validates_values(self, mongo_connection):
        customer = await Customer.create(id=2, balance=100)
        with pytest.raises(ValueError, match="Invalid update values"):
            await customer.update(balance="lots")
        with pytest.raises(ValueError, match="Unknown field"):
            await customer.update(nickname="bob")

    async def test_update_writes_and_applies(self, mongo_connection):
        customer = await Customer.create(id=3, balance=100)
        await customer.update(balance=55)
        assert customer.balance == 55
        assert (await Customer.get(customer.ref)).balance == 55

    async def test_update_aliased_field_uses_storage_key(self, mongo_connection):
        record = await Transaction.create(
            uuid="u-alias", source_customer=1, dest_customer=2, amount=5
        )
        await record.update(source_customer=3)
        assert record.source_customer == 3

        raw = await Transaction.get_collection().find_one({"_id": record.ref})
        assert raw["sourceCust"] == 3
        assert "source_customer" not in raw
        assert (await Transaction.get(record.ref)).source_customer == 3

    async def test_update_deleted_document_raises(self, mongo_connection):
        customer = await Customer.create(id=4, balance=100)
        await customer.delete()
        with pytest.raises(DocumentNotFound):
            await customer.update(balance=1)

    async def test_delete_and_reload(self, mongo_connection):
        customer = await Customer.create(id=5, balance=100)
        await customer.delete()
        with pytest.raises(DocumentNotFound):
            await customer.reload()


class TestSchema:
    async def test_create_collection_twice_is_detected(self, mongo_connection):
        assert await Note.ensure_collection() is True
        assert await Note.ensure_collection() is False

    async def test_ensure_indexes(self, mongo_connection):
        names = await Customer.ensure_indexes()
        assert sorted(names) == ["customer_by_id", "customer_id_filter"]
        info = await Customer.get_collection().index_information()
        assert info["customer_by_id"]["unique"] is True
        assert info["customer_id_filter"]["key"] == [("id", 1), ("_id", 1)]

    async def test_unique_index_enforced(self, mongo_connection):
        await Customer.ensure_index("customer_by_id")
        await Customer.create(id=7, balance=1)
        with pytest.raises(DuplicateKeyError):
            await Customer.create(id=7, balance=2)

    async def test_ensure_unknown_index(self, mongo_connection):
        with pytest.raises(KeyError):
            await Customer.ensure_index("missing")
