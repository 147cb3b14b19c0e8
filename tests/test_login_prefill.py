import unittest
from urllib.parse import quote

from domain.errors import FailureReason
from interfaces.web.credential_token import encode_token
from interfaces.web.login_prefill import (
    AUTOFILL_SUCCESS_MESSAGE,
    prefill_from_url,
    scrub_url,
)

BASE = "https://play.example.com/login"


class LoginPrefillTests(unittest.TestCase):
    def test_token_is_decoded(self):
        token = quote(encode_token("p@ss 123"), safe="")
        prefill = prefill_from_url(f"{BASE}?username=alice&token={token}")
        self.assertTrue(prefill.success)
        self.assertEqual(prefill.username, "alice")
        self.assertEqual(prefill.password, "p@ss 123")
        self.assertTrue(prefill.from_token)
        self.assertEqual(prefill.message, AUTOFILL_SUCCESS_MESSAGE)

    def test_token_is_preferred_over_legacy_password(self):
        token = quote(encode_token("secret"), safe="")
        prefill = prefill_from_url(f"{BASE}?username=alice&password=legacy&token={token}")
        self.assertEqual(prefill.password, "secret")

    def test_legacy_password_is_used_verbatim(self):
        prefill = prefill_from_url(f"{BASE}?username=bob&password=plain")
        self.assertTrue(prefill.success)
        self.assertEqual(prefill.password, "plain")
        self.assertFalse(prefill.from_token)

    def test_invalid_token_asks_for_manual_entry(self):
        prefill = prefill_from_url(f"{BASE}?username=alice&token=%21%21%21")
        self.assertFalse(prefill.success)
        self.assertIsNone(prefill.password)
        self.assertEqual(prefill.error, FailureReason.MALFORMED_TOKEN)
        self.assertEqual(prefill.username, "alice")

    def test_link_without_credentials_is_ignored(self):
        self.assertIsNone(prefill_from_url(BASE))
        self.assertIsNone(prefill_from_url(f"{BASE}?username=alice"))
        self.assertIsNone(prefill_from_url(f"{BASE}?token=abc"))

    def test_scrub_url_drops_query_and_fragment(self):
        self.assertEqual(
            scrub_url(f"{BASE}?username=alice&token=abc#top"),
            BASE,
        )


if __name__ == "__main__":
    unittest.main()
