from __future__ import annotations


def encode_top_up_choice(amount: int) -> str:
    """
    Encode a top-up menu button.

    Format: topup:{amount}
    """

    return f"topup:{amount}"


def parse_top_up_choice(data: str) -> int:
    parts = data.split(":")
    if len(parts) != 2 or parts[0] != "topup":
        raise ValueError(f"Invalid top-up callback data: {data}")

    return int(parts[1])


def encode_top_up_cancel() -> str:
    return "topup:cancel"


def is_top_up_cancel(data: str) -> bool:
    return data == encode_top_up_cancel()
