from __future__ import annotations

from photoguess.codes import (
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
    generate_room_code,
    normalize_room_code,
)


def test_alphabet_excludes_confusable_characters():
    for ch in '0O1I':
        assert ch not in ROOM_CODE_ALPHABET
    assert len(ROOM_CODE_ALPHABET) == 32


def test_generated_codes_use_alphabet():
    for _ in range(200):
        code = generate_room_code()
        assert len(code) == ROOM_CODE_LENGTH
        assert set(code) <= set(ROOM_CODE_ALPHABET)


def test_codes_vary():
    assert len({generate_room_code() for _ in range(50)}) > 1


def test_normalize_room_code():
    assert normalize_room_code('  a7k2m ') == 'A7K2M'
