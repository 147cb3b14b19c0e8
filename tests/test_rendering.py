import asyncio
import unittest

from domain.models import CanonicalUser, Status, User
from infrastructure.db.kv_store_memory import InMemoryKeyValueMedium
from interfaces.discord.handlers import _AdminView, render_users_table
from interfaces.telegram.handlers import render_account


class RenderingTests(unittest.TestCase):
    def test_account_overview(self):
        text = render_account(User(id="u1", username="alice", points=300))
        self.assertIn("Username: alice", text)
        self.assertIn("Phone: -", text)
        self.assertIn("Status: active", text)
        self.assertIn("Points: 300", text)
        self.assertNotIn("Member since", text)

    def test_account_overview_shows_registration_date(self):
        user = User(id="u1", username="alice")
        identity = CanonicalUser(id="u1", username="alice", created_at="2024-05-01")
        self.assertIn("Member since: 2024-05-01", render_account(user, identity))

        stranger = CanonicalUser(id="u2", username="bob", created_at="2024-05-01")
        self.assertNotIn("Member since", render_account(user, stranger))

    def test_users_table(self):
        text = render_users_table(
            [
                User(id="u1", username="alice", phone="555", points=10),
                User(id="u2", username="bob", status=Status.DEACTIVATED),
            ]
        )
        self.assertIn("alice | 555 | 10 | active", text)
        self.assertIn("bob | - | 0 | deactivated", text)

    def test_empty_users_table(self):
        self.assertEqual(render_users_table([]), "No users registered yet.")


class AdminViewTaskTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.view = _AdminView(InMemoryKeyValueMedium(), authority=None, author_id=42)

    async def test_finished_sends_are_released(self):
        async def send():
            return "ok"

        async def failing_send():
            raise RuntimeError("channel gone")

        tasks = [self.view.spawn(send()), self.view.spawn(failing_send())]
        await asyncio.gather(*tasks, return_exceptions=True)
        await asyncio.sleep(0)

        self.assertEqual(self.view.tasks, set())

    async def test_stop_watching_cancels_pending_sends(self):
        task = self.view.spawn(asyncio.sleep(60))
        self.assertIn(task, self.view.tasks)

        self.view.stop_watching()
        await asyncio.gather(task, return_exceptions=True)

        self.assertTrue(task.cancelled())
        self.assertEqual(self.view.tasks, set())


if __name__ == "__main__":
    unittest.main()
