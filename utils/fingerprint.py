# utils/fingerprint.py
from typing import Optional, Union

# (user agent, language, screen width, screen height, timezone offset) - order matters
SIGNAL_FIELDS = ("user_agent", "language", "screen_width", "screen_height", "timezone_offset")

FINGERPRINT_WIDTH = 16


def _int32(n: int) -> int:
    n &= 0xFFFFFFFF
    return n - 0x100000000 if n & 0x80000000 else n


def _signal_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def rolling_hash(data: str) -> int:
    """h = h * 31 + unit over UTF-16 code units, wrapped to signed 32 bits each step."""
    h = 0
    raw = data.encode("utf-16-le")
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        h = _int32(_int32(h << 5) - h + unit)
    return h


def compute_fingerprint(
    user_agent: Optional[str],
    language: Optional[str],
    screen_width: Optional[Union[int, float]],
    screen_height: Optional[Union[int, float]],
    timezone_offset: Optional[Union[int, float]],
) -> str:
    """
    Best-effort dedup key for anonymous voters.

    Same signals -> same key. It collides for people sharing a browser profile
    and changes when any signal changes; it is NOT an identity.
    """
    data = "|".join(
        _signal_text(v) for v in (user_agent, language, screen_width, screen_height, timezone_offset)
    )
    return format(abs(rolling_hash(data)), "x").rjust(FINGERPRINT_WIDTH, "0")


def resolve_voter_identity(account_id: Optional[str], signals) -> str:
    """
    Standardize on a single "identity" string:
    - logged-in: account id
    - anonymous: fingerprint of the client signals
    `signals` is anything exposing the SIGNAL_FIELDS as attributes (or a dict).
    """
    if account_id:
        return str(account_id)
    if signals is None:
        raise ValueError("client signals are required for anonymous voters")
    if isinstance(signals, dict):
        values = [signals.get(f) for f in SIGNAL_FIELDS]
    else:
        values = [getattr(signals, f, None) for f in SIGNAL_FIELDS]
    return compute_fingerprint(*values)
