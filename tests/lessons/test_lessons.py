import logging

import pytest

from learnmongo.admin.provisioning import database_exists, delete_database
from learnmongo.config import LessonSettings
from learnmongo.core.connection import get_database
from learnmongo.lessons import lesson1, lesson2, lesson3, lesson4
from learnmongo.utils.exceptions import NotConnected


@pytest.fixture
def settings_for(mongo_endpoint):
    def make(database: str, **overrides) -> LessonSettings:
        return LessonSettings(endpoint=mongo_endpoint, database=database, **overrides)

    return make


@pytest.fixture
async def lesson_database(admin_client):
    names = []

    def make(name):
        names.append(name)
        return name

    yield make
    for name in names:
        await delete_database(admin_client, name)


class TestLessons:
    async def test_lesson1_leaves_no_database(
        self, settings_for, admin_client, lesson_database, caplog
    ):
        name = lesson_database("learnmongo_lesson1")
        with caplog.at_level(logging.INFO, logger="learnmongo"):
            await lesson1.main(settings_for(name))
        assert not await database_exists(admin_client, name)
        assert any("Created database" in r.message for r in caplog.records)

    async def test_lesson2_crud(self, settings_for, admin_client, lesson_database, caplog):
        name = lesson_database("learnmongo_lesson2")
        with caplog.at_level(logging.INFO, logger="learnmongo"):
            await lesson2.main(settings_for(name))
        assert await admin_client[name]["customers"].count_documents({}) == 0
        assert any("Update customer 0" in r.message for r in caplog.records)
        with pytest.raises(NotConnected):
            get_database()

    async def test_lesson3_pages_through_customers(
        self, settings_for, admin_client, lesson_database, caplog
    ):
        name = lesson_database("learnmongo_lesson3")
        with caplog.at_level(logging.INFO, logger="learnmongo"):
            await lesson3.main(settings_for(name))
        assert await admin_client[name]["customers"].count_documents({}) == 20
        assert sum(1 for r in caplog.records if r.message.startswith("After:")) == 2
        assert any("Read 20 customers in 3 pages" in r.message for r in caplog.records)

    async def test_lesson4_keeps_total_balance(
        self, settings_for, replica_set, admin_client, lesson_database
    ):
        name = lesson_database("learnmongo_lesson4")
        summary = await lesson4.main(
            settings_for(name, num_customers=5, num_transfers=15, max_transfer_amount=30)
        )
        assert summary["balance_before"] == summary["balance_after"] == 500
        assert summary["transactions"] == summary.get("completed", 0)
        assert summary.get("completed", 0) + summary.get("insufficient_funds", 0) == 15
