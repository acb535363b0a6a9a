import os
import sqlite3
import tempfile
import unittest

from utils.storage import MemoryStorage, SqliteStorage


class SqliteStorageTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        # Point storage to a temporary file in a directory that doesn't exist yet
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "nested", "store.sqlite")
        self.storage = SqliteStorage(self.db_path)

    def tearDown(self):
        self.temp_dir.cleanup()

    async def test_set_get_overwrite_delete(self):
        self.assertIsNone(await self.storage.get("trustylads-cart"))

        await self.storage.set("trustylads-cart", '{"items": []}')
        await self.storage.set("trustylads-cart", '{"items": [1]}')
        self.assertEqual(await self.storage.get("trustylads-cart"), '{"items": [1]}')
        self.assertTrue(os.path.exists(self.db_path))

        await self.storage.delete("trustylads-cart")
        self.assertIsNone(await self.storage.get("trustylads-cart"))

    async def test_survives_reopen(self):
        await self.storage.set("trustylads-auth", "{}")
        reopened = SqliteStorage(self.db_path)
        self.assertEqual(await reopened.get("trustylads-auth"), "{}")

    async def test_connection_closed_when_init_fails(self):
        closed = []

        class BrokenStorage(SqliteStorage):
            async def _init_db(self, conn):
                close = conn.close

                async def tracked_close():
                    closed.append(True)
                    await close()

                conn.close = tracked_close
                raise sqlite3.OperationalError("disk I/O error")

        storage = BrokenStorage(self.db_path)
        with self.assertRaises(sqlite3.OperationalError):
            await storage.get("trustylads-cart")
        self.assertEqual(closed, [True])
        self.assertFalse(storage._initialized)


class MemoryStorageTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_roundtrip(self):
        storage = MemoryStorage({"a": "1"})
        self.assertEqual(await storage.get("a"), "1")
        await storage.delete("a")
        await storage.delete("missing")
        self.assertIsNone(await storage.get("a"))
