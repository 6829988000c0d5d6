from utils.fingerprint import compute_fingerprint, resolve_voter_identity, rolling_hash


def test_rolling_hash_matches_string_hash_code():
    assert rolling_hash("") == 0
    assert rolling_hash("a") == 97
    assert rolling_hash("ab") == 97 * 31 + 98
    assert rolling_hash("hello") == 99162322
    # wraps to signed 32 bits
    assert rolling_hash("Hello World") == -862545276


def test_rolling_hash_uses_utf16_code_units():
    # U+1F600 is the surrogate pair D83D DE00
    assert rolling_hash("\U0001F600") == 0xD83D * 31 + 0xDE00


def test_fingerprint_is_fixed_width_hex():
    fp = compute_fingerprint(None, None, None, None, None)
    # "||||" hashes to 3817216
    assert fp == "00000000003a3f00"

    fp = compute_fingerprint("Mozilla/5.0 (X11; Linux x86_64)", "pt-BR", 1920, 1080, 180)
    assert len(fp) == 16
    int(fp, 16)


def test_fingerprint_is_deterministic_and_signal_sensitive():
    a = compute_fingerprint("Mozilla/5.0", "pt-BR", 1920, 1080, 180)
    b = compute_fingerprint("Mozilla/5.0", "pt-BR", 1920, 1080, 180)
    c = compute_fingerprint("Mozilla/5.0", "pt-BR", 1920, 1080, 120)
    assert a == b
    assert a != c


def test_fingerprint_renders_whole_floats_like_ints():
    assert compute_fingerprint("ua", "en", 1920.0, 1080.0, -60.0) == compute_fingerprint("ua", "en", 1920, 1080, -60)


def test_account_id_wins_over_signals():
    assert resolve_voter_identity("acc-42", {"user_agent": "x"}) == "acc-42"


def test_anonymous_identity_from_dict_and_object():
    signals = {"user_agent": "ua", "language": "pt-BR", "screen_width": 390, "screen_height": 844, "timezone_offset": 180}

    class Obj:
        user_agent = "ua"
        language = "pt-BR"
        screen_width = 390
        screen_height = 844
        timezone_offset = 180

    assert resolve_voter_identity(None, signals) == resolve_voter_identity(None, Obj())
    assert resolve_voter_identity(None, signals) == compute_fingerprint("ua", "pt-BR", 390, 844, 180)


def test_anonymous_without_signals_is_rejected():
    import pytest

    with pytest.raises(ValueError):
        resolve_voter_identity(None, None)
