from __future__ import annotations

from darood.referral.codes import CODE_ALPHABET, generate_referral_code, normalize_code


def test_alphabet_is_base62() -> None:
    assert len(CODE_ALPHABET) == 62
    assert len(set(CODE_ALPHABET)) == 62


def test_generated_codes_use_alphabet_and_length() -> None:
    codes = {generate_referral_code() for _ in range(200)}

    assert all(len(code) == 8 for code in codes)
    assert all(ch in CODE_ALPHABET for code in codes for ch in code)
    # 62^8 possibilities; 200 draws should not collide
    assert len(codes) == 200
    assert len(generate_referral_code(12)) == 12


def test_normalize_code_trims_and_lowercases() -> None:
    assert normalize_code("  Xy9Zqw12 ") == "xy9zqw12"
