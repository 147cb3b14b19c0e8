import asyncio
import unittest

from application.points_ledger import PointsLedger
from application.record_store import RecordStore
from application.sync_poller import SyncPoller, watch_session, watch_users
from domain.models import Role, User
from infrastructure.db.kv_store_memory import InMemoryKeyValueMedium


class SyncPollerTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.medium = InMemoryKeyValueMedium()
        self.tab_a = RecordStore(self.medium, context_id="tab-a")
        self.tab_b = RecordStore(self.medium, context_id="tab-b")

    async def test_callback_runs_immediately(self):
        seen = []
        subscription = watch_users(self.tab_a, seen.append, interval=60)
        self.assertEqual(seen, [[]])
        subscription.cancel()

    async def test_callback_runs_on_every_interval(self):
        seen = []
        subscription = SyncPoller(self.tab_a, lambda: "tick", seen.append, 0.01).start()
        await asyncio.sleep(0.08)
        subscription.cancel()
        self.assertGreaterEqual(len(seen), 3)

    async def test_write_from_another_tab_triggers_refresh_before_the_next_tick(self):
        seen = []
        subscription = watch_session(self.tab_b, seen.append, interval=60)
        self.tab_b.put_all_users([User(id="u1", username="alice")])
        seen.clear()

        # Same key space, different context: tab_a logs in under the shared key.
        self.tab_a.put_session(User(id="u1", username="alice"))

        self.assertEqual(len(seen), 1)
        self.assertEqual(seen[0].username, "alice")
        subscription.cancel()

    async def test_own_write_updates_own_view_immediately(self):
        self.tab_a.put_all_users([User(id="u1", username="alice", points=100)])
        self.tab_a.put_session(User(id="u1", username="alice", points=100))
        balances = []
        subscription = watch_session(self.tab_a, lambda u: balances.append(u.points), interval=60)

        PointsLedger(self.tab_a).top_up("u1", 50)

        self.assertEqual(balances[0], 100)
        self.assertEqual(balances[-1], 150)
        subscription.cancel()

    async def test_admin_grant_reaches_user_view_in_other_context(self):
        self.tab_a.put_all_users(
            [
                User(id="a1", username="root", role=Role.ADMIN),
                User(id="u1", username="alice", points=10),
            ]
        )
        admin = RecordStore(self.medium, context_id="admin", scope="admin")
        admin.put_session(User(id="a1", username="root", role=Role.ADMIN))
        user_view = RecordStore(self.medium, context_id="user", scope="user")
        user_view.put_session(User(id="u1", username="alice", points=10))

        balances = []
        subscription = watch_session(user_view, lambda u: balances.append(u.points), interval=60)
        PointsLedger(admin).admin_grant("u1", 90)

        self.assertEqual(balances[-1], 100)
        subscription.cancel()

    async def test_cancel_stops_interval_and_notifications(self):
        seen = []
        subscription = SyncPoller(self.tab_b, lambda: "x", seen.append, 0.01).start()
        subscription.cancel()
        self.assertTrue(subscription.cancelled)
        count = len(seen)

        self.tab_a.put_session(User(id="u1", username="alice"))
        await asyncio.sleep(0.05)

        self.assertEqual(len(seen), count)
        subscription.cancel()

    async def test_failing_callback_does_not_stop_polling(self):
        calls = []

        def callback(value):
            calls.append(value)
            raise RuntimeError("render failed")

        subscription = SyncPoller(self.tab_a, lambda: 1, callback, 0.01).start()
        await asyncio.sleep(0.05)
        subscription.cancel()
        self.assertGreaterEqual(len(calls), 2)

    async def test_poller_cannot_be_started_twice(self):
        poller = SyncPoller(self.tab_a, lambda: 1, lambda _: None, 1)
        poller.start()
        with self.assertRaises(RuntimeError):
            poller.start()
        poller.stop()

    def test_interval_must_be_positive(self):
        with self.assertRaises(ValueError):
            SyncPoller(self.tab_a, lambda: 1, lambda _: None, 0)


if __name__ == "__main__":
    unittest.main()
