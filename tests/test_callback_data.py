import unittest

from interfaces.telegram.callback_data import (
    encode_top_up_cancel,
    encode_top_up_choice,
    is_top_up_cancel,
    parse_top_up_choice,
)


class TopUpCallbackDataTests(unittest.TestCase):
    def test_choice_round_trip(self):
        data = encode_top_up_choice(500)
        self.assertEqual(data, "topup:500")
        self.assertEqual(parse_top_up_choice(data), 500)

    def test_invalid_choice_raises(self):
        for data in ("topup", "from:1:to:2:3", "topup:1:2", "topup:abc"):
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    parse_top_up_choice(data)

    def test_cancel(self):
        self.assertTrue(is_top_up_cancel(encode_top_up_cancel()))
        self.assertFalse(is_top_up_cancel(encode_top_up_choice(50)))


if __name__ == "__main__":
    unittest.main()
