import struct

import pytest

from memory_game.services.attestation import (
    AttestationInput,
    AttestationOutput,
    InvalidAttestationInput,
    attest,
    decode_public_values,
    encode_public_values,
    verify_output,
)
from memory_game.services.attestation.engine import U32_MAX, decode_input, encode_input


@pytest.mark.parametrize('moves,elapsed,pairs,score,complete', [
    (15, 30, 8, 75, True),
    (50, 10, 8, 60, True),
    (5, 125, 8, 0, True),
    (9, 40, 7, 0, False),
])
def test_reference_scenarios(moves, elapsed, pairs, score, complete):
    out = attest(AttestationInput(moves, elapsed, pairs))
    assert out == AttestationOutput(moves, elapsed, pairs, score, complete)


def test_incomplete_games_always_score_zero():
    for pairs in (0, 1, 7, 9, 100):
        for moves in (0, 3, 50):
            for elapsed in (0, 10, 119, 500):
                out = attest(AttestationInput(moves, elapsed, pairs))
                assert out.final_score == 0
                assert out.is_complete is False


def test_complete_games_follow_the_formula():
    for moves in range(0, 200, 9):
        for elapsed in range(0, 160, 13):
            out = attest(AttestationInput(moves, elapsed, 8))
            assert out.final_score == max(0, max(0, 120 - elapsed) - moves)


def test_attestation_is_deterministic():
    data = AttestationInput(21, 47, 8)
    first, second = attest(data), attest(data)
    assert first == second
    assert encode_public_values(first) == encode_public_values(second)


def test_extreme_u32_values():
    out = attest(AttestationInput(U32_MAX, U32_MAX, 8))
    assert out.final_score == 0
    assert out.is_complete


@pytest.mark.parametrize('kwargs', [
    {'moves': -1, 'elapsed_seconds': 0, 'matched_pairs': 8},
    {'moves': 0, 'elapsed_seconds': U32_MAX + 1, 'matched_pairs': 8},
    {'moves': 0, 'elapsed_seconds': 0, 'matched_pairs': True},
    {'moves': '3', 'elapsed_seconds': 0, 'matched_pairs': 8},
    {'moves': 1.5, 'elapsed_seconds': 0, 'matched_pairs': 8},
])
def test_malformed_input_is_rejected(kwargs):
    with pytest.raises(InvalidAttestationInput):
        AttestationInput(**kwargs)


def test_from_json_ignores_client_score_and_winner():
    data = AttestationInput.from_json({
        'score': 999, 'winner': True, 'moves': 9, 'time': 40, 'matchedPairs': 7,
    })
    out = attest(data)
    assert out.final_score == 0
    assert not out.is_complete


def test_from_json_accepts_alternate_keys():
    data = AttestationInput.from_json({'moves': 1, 'elapsedSeconds': 2, 'matched_pairs': 3})
    assert data == AttestationInput(1, 2, 3)


@pytest.mark.parametrize('payload', [None, [], {'moves': 1, 'time': 2}, {'time': 2, 'matchedPairs': 8}])
def test_from_json_rejects_incomplete_payloads(payload):
    with pytest.raises(InvalidAttestationInput):
        AttestationInput.from_json(payload)


def test_public_values_layout():
    raw = encode_public_values(attest(AttestationInput(15, 30, 8)))
    assert len(raw) == 17
    assert struct.unpack('<IIII', raw[:16]) == (15, 30, 8, 75)
    assert raw[16:] == b'\x01'
    assert decode_public_values(raw) == AttestationOutput(15, 30, 8, 75, True)


def test_input_stream_layout():
    raw = encode_input(AttestationInput(1, 2, 3))
    assert raw == b'\x01\x00\x00\x00\x02\x00\x00\x00\x03\x00\x00\x00'
    assert decode_input(raw) == AttestationInput(1, 2, 3)


def test_public_values_with_bad_length_or_flag():
    with pytest.raises(InvalidAttestationInput):
        decode_public_values(b'\x00' * 16)
    with pytest.raises(InvalidAttestationInput):
        decode_public_values(b'\x00' * 16 + b'\x02')


def test_third_party_verification_detects_tampering():
    honest = attest(AttestationInput(15, 30, 8))
    assert verify_output(honest)
    assert not verify_output(AttestationOutput(15, 30, 8, 90, True))
    assert not verify_output(AttestationOutput(15, 30, 7, 75, True))
