import json
import unittest

from application.record_store import ALL_USERS, SESSION, RecordStore
from domain.models import CanonicalUser, Role, Status, User
from infrastructure.db.kv_store_memory import InMemoryKeyValueMedium


class RecordStoreReadTests(unittest.TestCase):
    def setUp(self) -> None:
        self.medium = InMemoryKeyValueMedium()
        self.store = RecordStore(self.medium, context_id="tab-1")

    def test_empty_medium_reads_as_empty_defaults(self):
        self.assertIsNone(self.store.get_session())
        self.assertEqual(self.store.get_all_users(), [])
        self.assertIsNone(self.store.get_canonical())

    def test_malformed_json_reads_as_absent(self):
        self.medium.set_item("currentUser", "{not json", "other")
        self.medium.set_item("users", "[1, 2", "other")
        self.assertIsNone(self.store.get_session())
        self.assertEqual(self.store.get_all_users(), [])

    def test_wrong_container_types_read_as_absent(self):
        self.medium.set_item("currentUser", json.dumps([1, 2]), "other")
        self.medium.set_item("users", json.dumps({"id": "u1"}), "other")
        self.assertIsNone(self.store.get_session())
        self.assertEqual(self.store.get_all_users(), [])

    def test_invalid_entries_are_skipped(self):
        self.medium.set_item(
            "users",
            json.dumps(
                [
                    {"id": "u1", "username": "alice", "points": 10},
                    "garbage",
                    {"username": "no-id"},
                    {"id": "u2", "username": "bob", "points": -5},
                    {"id": "u3", "username": "carol", "role": "superuser"},
                ]
            ),
            "other",
        )
        users = self.store.get_all_users()
        self.assertEqual([u.id for u in users], ["u1"])

    def test_records_written_by_the_web_layout_are_understood(self):
        self.medium.set_item(
            "users",
            json.dumps(
                [
                    {
                        "id": "u1",
                        "username": "alice",
                        "role": "admin",
                        "phone": "555",
                        "referralCode": "FRIEND",
                        "points": 100.0,
                        "status": "deactivated",
                        "createdAt": "2024-01-01T00:00:00Z",
                    }
                ]
            ),
            "other",
        )
        user = self.store.find_user("u1")
        self.assertEqual(user.role, Role.ADMIN)
        self.assertEqual(user.status, Status.DEACTIVATED)
        self.assertEqual(user.points, 100)
        self.assertEqual(user.referral_code, "FRIEND")
        self.assertEqual(user.created_at, "2024-01-01T00:00:00Z")


class RecordStoreWriteTests(unittest.TestCase):
    def setUp(self) -> None:
        self.medium = InMemoryKeyValueMedium()
        self.store = RecordStore(self.medium, context_id="tab-1")

    def test_users_round_trip_with_camel_case_keys(self):
        user = User(id="u1", username="alice", phone="555", referral_code="REF", points=7)
        self.store.put_all_users([user])

        raw = json.loads(self.medium.get_item("users"))
        self.assertEqual(raw[0]["referralCode"], "REF")
        self.assertEqual(raw[0]["status"], "active")
        self.assertEqual(self.store.get_all_users(), [user])

    def test_session_is_derived_from_the_users_entry(self):
        self.store.put_all_users([User(id="u1", username="alice", points=300)])
        self.store.put_session(User(id="u1", username="alice", points=100))

        self.assertEqual(self.store.get_session().points, 300)
        self.assertEqual(self.store.get_stored_session().points, 100)

    def test_session_falls_back_to_stored_copy_without_users_entry(self):
        self.store.put_session(User(id="u9", username="zed", points=5))
        self.assertEqual(self.store.get_session().points, 5)

    def test_clear_session_leaves_users(self):
        user = User(id="u1", username="alice")
        self.store.put_all_users([user])
        self.store.put_session(user)

        self.store.clear_session()

        self.assertIsNone(self.store.get_session())
        self.assertEqual(self.store.get_all_users(), [user])

    def test_canonical_record_keeps_extra_fields(self):
        self.store.put_canonical(
            CanonicalUser(id="42", username="alice", phone="", extra={"tier": "gold"})
        )
        raw = json.loads(self.medium.get_item("wagerWaveUser"))
        self.assertEqual(raw["tier"], "gold")
        self.assertIsNone(raw["phone"])
        canonical = self.store.get_canonical()
        self.assertEqual(canonical.id, "42")
        self.assertEqual(canonical.extra, {"tier": "gold"})

    def test_scoped_sessions_are_independent_but_share_users(self):
        tab_a = RecordStore(self.medium, scope="chat-a")
        tab_b = RecordStore(self.medium, scope="chat-b")
        tab_a.put_all_users([User(id="u1", username="alice")])
        tab_a.put_session(User(id="u1", username="alice"))

        self.assertIsNone(tab_b.get_session())
        self.assertEqual(len(tab_b.get_all_users()), 1)
        self.assertIsNone(self.store.get_session())


class RecordStoreNotificationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.medium = InMemoryKeyValueMedium()
        self.tab_a = RecordStore(self.medium, context_id="tab-a")
        self.tab_b = RecordStore(self.medium, context_id="tab-b")

    def test_own_writes_notify_own_listeners_synchronously(self):
        seen = []
        self.tab_a.subscribe(seen.append)
        self.tab_a.put_all_users([User(id="u1", username="alice")])
        self.assertEqual(seen, [ALL_USERS])

    def test_writes_from_another_context_are_announced(self):
        seen = []
        self.tab_b.subscribe(seen.append)
        self.tab_a.put_session(User(id="u1", username="alice"))
        self.tab_a.clear_session()
        self.assertEqual(seen, [SESSION, SESSION])

    def test_unchanged_value_is_not_announced(self):
        users = [User(id="u1", username="alice")]
        self.tab_a.put_all_users(users)
        seen = []
        self.tab_b.subscribe(seen.append)
        self.tab_a.put_all_users(users)
        self.assertEqual(seen, [])

    def test_unsubscribe_stops_notifications(self):
        seen = []
        unsubscribe = self.tab_b.subscribe(seen.append)
        unsubscribe()
        self.tab_a.put_all_users([User(id="u1", username="alice")])
        self.assertEqual(seen, [])


if __name__ == "__main__":
    unittest.main()


class RecordStoreEntryUpdateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.medium = InMemoryKeyValueMedium()
        self.store = RecordStore(self.medium, context_id="tab-1")
        self.raw = [
            {"id": "u1", "username": "alice", "points": 10, "password": "pw", "theme": "dark"},
            {"id": "u2", "username": "bob", "role": "superuser"},
            "not a record",
        ]
        self.medium.set_item("users", json.dumps(self.raw), "seed")

    def stored(self):
        return json.loads(self.medium.get_item("users"))

    def test_unknown_keys_are_kept_on_the_model(self):
        alice = self.store.find_user("u1")
        self.assertEqual(alice.extra, {"password": "pw", "theme": "dark"})

    def test_update_touches_only_named_fields(self):
        updated = self.store.update_user("u1", points=25, status=Status.DEACTIVATED)

        self.assertEqual(updated.points, 25)
        self.assertEqual(
            self.stored(),
            [
                {"id": "u1", "username": "alice", "points": 25, "password": "pw",
                 "theme": "dark", "status": "deactivated"},
                self.raw[1],
                self.raw[2],
            ],
        )

    def test_update_of_unknown_id_writes_nothing(self):
        self.assertIsNone(self.store.update_user("u9", points=1))
        self.assertEqual(self.stored(), self.raw)

    def test_append_keeps_existing_entries(self):
        self.store.append_user(User(id="u3", username="carol"))

        stored = self.stored()
        self.assertEqual(stored[:3], self.raw)
        self.assertEqual(stored[3]["id"], "u3")

    def test_put_all_users_writes_extra_keys_back(self):
        alice = self.store.find_user("u1")
        self.store.put_all_users([alice])
        self.assertEqual(self.stored()[0]["password"], "pw")
