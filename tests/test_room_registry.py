"""Unit tests for the in-memory room registry and its persistence sync."""

import unittest
from unittest.mock import patch

from roomchat.services.persistence import RoomPersistence
from roomchat.services.room_registry import RoomRegistry
from roomchat.services.storage import KeyValueStore, MemoryStore

from tests.test_persistence import make_room


class FlakyStore(MemoryStore):
    """Memory store whose writes can be switched off."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False

    async def set(self, key, value):
        if self.fail_writes:
            raise ConnectionError("write refused")
        await super().set(key, value)


class TestRegistryQueries(unittest.TestCase):

    def setUp(self):
        self.registry = RoomRegistry(RoomPersistence(MemoryStore()))

    def test_insert_front_orders_newest_first(self):
        self.registry.insert_front(make_room("old", 111111))
        self.registry.insert_front(make_room("new", 222222))
        self.assertEqual([r.id for r in self.registry.list_rooms()], ["new", "old"])

    def test_find_by_id(self):
        room = make_room("abc")
        self.registry.insert_front(room)
        self.assertIs(self.registry.find_by_id("abc"), room)
        self.assertIsNone(self.registry.find_by_id("xyz"))

    def test_find_by_code_accepts_numeric_strings(self):
        room = make_room("abc", 482913)
        self.registry.insert_front(room)
        self.assertIs(self.registry.find_by_code(482913), room)
        self.assertIs(self.registry.find_by_code("482913"), room)
        self.assertIs(self.registry.find_by_code(" 482913 "), room)
        self.assertIsNone(self.registry.find_by_code(482914))

    def test_find_by_code_prefers_newest_on_collision(self):
        self.registry.replace_all([make_room("newer", 555555), make_room("older", 555555)])
        self.assertEqual(self.registry.find_by_code(555555).id, "newer")

    def test_replace_all_keeps_order(self):
        self.registry.insert_front(make_room("gone"))
        self.registry.replace_all([make_room("x", 111111), make_room("y", 222222)])
        self.assertEqual([r.id for r in self.registry.list_rooms()], ["x", "y"])

    def test_new_room_code_skips_codes_in_use(self):
        self.registry.insert_front(make_room("abc", 111111))
        with patch(
            "roomchat.services.room_registry.generate_room_code",
            side_effect=[111111, 111111, 333333],
        ):
            self.assertEqual(self.registry.new_room_code(), 333333)

    def test_reserved_code_and_id_are_not_handed_out_again(self):
        pending = make_room("held", 444444)
        self.registry.reserve(pending)
        with patch(
            "roomchat.services.room_registry.generate_room_code",
            side_effect=[444444, 555555],
        ):
            self.assertEqual(self.registry.new_room_code(), 555555)
        with patch(
            "roomchat.services.room_registry.generate_id",
            side_effect=["held", "other"],
        ):
            self.assertEqual(self.registry.new_room_id(), "other")

        self.registry.release(pending)
        with patch("roomchat.services.room_registry.generate_room_code", return_value=444444):
            self.assertEqual(self.registry.new_room_code(), 444444)

    def test_new_room_id_skips_ids_in_use(self):
        self.registry.insert_front(make_room("taken"))
        with patch(
            "roomchat.services.room_registry.generate_id",
            side_effect=["taken", "fresh"],
        ):
            self.assertEqual(self.registry.new_room_id(), "fresh")


class TestRegistrySync(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.store = FlakyStore()
        self.persistence = RoomPersistence(self.store)
        self.registry = RoomRegistry(self.persistence)

    async def test_mark_changed_saves_full_snapshot(self):
        self.registry.insert_front(make_room("a", 111111))
        self.registry.mark_changed()
        self.registry.insert_front(make_room("b", 222222))
        self.registry.mark_changed()
        await self.registry.flush()

        self.assertFalse(self.registry.dirty)
        self.assertEqual(await self.persistence.load(), self.registry.list_rooms())

    async def test_later_save_includes_earlier_changes(self):
        self.registry.insert_front(make_room("a", 111111))
        first = self.registry.mark_changed()
        room = self.registry.find_by_id("a")
        room.users.append("bob")
        self.registry.mark_changed()
        await first
        await self.registry.flush()

        stored = await self.persistence.load()
        self.assertEqual(stored[0].users, ["alice", "bob"])

    async def test_load_restores_persisted_rooms(self):
        await self.persistence.save([make_room("x", 111111), make_room("y", 222222)])
        self.assertTrue(await self.registry.load())
        self.assertEqual([r.id for r in self.registry.list_rooms()], ["x", "y"])

    async def test_refresh_is_idempotent_once_saved(self):
        self.registry.insert_front(make_room("a", 111111))
        self.registry.mark_changed()
        await self.registry.flush()
        before = self.registry.list_rooms()

        self.assertTrue(await self.registry.refresh())
        self.assertTrue(await self.registry.refresh())
        self.assertEqual(self.registry.list_rooms(), before)

    async def test_refresh_never_rolls_back_pending_change(self):
        self.registry.insert_front(make_room("a", 111111))
        self.registry.mark_changed()

        await self.registry.refresh()
        self.assertEqual([r.id for r in self.registry.list_rooms()], ["a"])

        await self.registry.flush()
        self.assertEqual([r.id for r in await self.persistence.load()], ["a"])

    async def test_refresh_keeps_unsaved_changes(self):
        await self.persistence.save([make_room("stale", 999999)])
        self.store.fail_writes = True

        self.registry.insert_front(make_room("fresh", 111111))
        with self.assertLogs("roomchat.services.persistence", level="ERROR"):
            self.registry.mark_changed()
            await self.registry.flush()

        self.assertTrue(self.registry.dirty)
        self.assertFalse(await self.registry.refresh())
        self.assertEqual([r.id for r in self.registry.list_rooms()], ["fresh"])

        # A later successful save brings the store back in line.
        self.store.fail_writes = False
        self.registry.mark_changed()
        await self.registry.flush()
        self.assertFalse(self.registry.dirty)
        self.assertEqual([r.id for r in await self.persistence.load()], ["fresh"])

    async def test_empty_snapshot_never_wipes_rooms(self):
        self.registry.replace_all([make_room("a", 111111)])
        self.assertFalse(await self.registry.refresh())
        self.assertEqual(len(self.registry), 1)

    async def test_load_failure_starts_empty(self):
        class Unreadable(KeyValueStore):
            async def get(self, key):
                raise ConnectionError("down")

        registry = RoomRegistry(RoomPersistence(Unreadable()))
        with self.assertLogs("roomchat.services.persistence", level="ERROR"):
            await registry.load()
        self.assertEqual(registry.list_rooms(), [])


if __name__ == "__main__":
    unittest.main()
