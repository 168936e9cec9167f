"""Independent score attestation.

The engine sees exactly three unsigned 32-bit counters copied out of a
finished session. It recomputes completeness and the score itself and
commits five values, in a fixed order, that anyone can re-derive:

    moves, elapsed_seconds, matched_pairs, final_score, is_complete

The byte layout mirrors what a zkVM guest commits: each integer as a
little-endian u32, the completeness flag as a single byte.
"""

import struct
from dataclasses import dataclass
from typing import Any, Mapping

from memory_game.services.games.scoring import PAIR_COUNT, compute_final_score
from .errors import InvalidAttestationInput

U32_MAX = 2 ** 32 - 1

_INPUT_FORMAT = struct.Struct('<III')
_PUBLIC_FORMAT = struct.Struct('<IIII?')


def _check_u32(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAttestationInput(f'{name} must be an unsigned 32-bit integer, got {value!r}')
    if not 0 <= value <= U32_MAX:
        raise InvalidAttestationInput(f'{name} out of u32 range: {value}')
    return value


@dataclass(frozen=True)
class AttestationInput:
    moves: int
    elapsed_seconds: int
    matched_pairs: int

    def __post_init__(self):
        _check_u32('moves', self.moves)
        _check_u32('elapsed_seconds', self.elapsed_seconds)
        _check_u32('matched_pairs', self.matched_pairs)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'AttestationInput':
        """Build an input from the host's JSON object.

        Accepts ``time`` or ``elapsedSeconds`` for the elapsed counter and
        ``matchedPairs`` or ``matched_pairs`` for the pair count. Any other
        key (a client-side score, for instance) is ignored.
        """
        if not isinstance(data, Mapping):
            raise InvalidAttestationInput('attestation input must be a JSON object')

        def pick(*keys):
            for key in keys:
                if key in data:
                    return data[key]
            raise InvalidAttestationInput(f'missing field {keys[0]!r}')

        return cls(
            moves=pick('moves'),
            elapsed_seconds=pick('time', 'elapsedSeconds', 'elapsed_seconds'),
            matched_pairs=pick('matchedPairs', 'matched_pairs'),
        )

    def to_dict(self):
        return {
            'moves': self.moves,
            'time': self.elapsed_seconds,
            'matchedPairs': self.matched_pairs,
        }


@dataclass(frozen=True)
class AttestationOutput:
    moves: int
    elapsed_seconds: int
    matched_pairs: int
    final_score: int
    is_complete: bool

    def to_dict(self):
        return {
            'moves': self.moves,
            'time': self.elapsed_seconds,
            'matchedPairs': self.matched_pairs,
            'finalScore': self.final_score,
            'isComplete': self.is_complete,
        }


def attest(data: AttestationInput) -> AttestationOutput:
    is_complete = data.matched_pairs == PAIR_COUNT
    final_score = compute_final_score(data.elapsed_seconds, data.moves, winner=is_complete)
    return AttestationOutput(
        moves=data.moves,
        elapsed_seconds=data.elapsed_seconds,
        matched_pairs=data.matched_pairs,
        final_score=final_score,
        is_complete=is_complete,
    )


def verify_output(output: AttestationOutput) -> bool:
    """Re-derive an output from its three inputs and compare all five fields."""
    try:
        expected = attest(AttestationInput(output.moves, output.elapsed_seconds, output.matched_pairs))
    except InvalidAttestationInput:
        return False
    return expected == output


def encode_input(data: AttestationInput) -> bytes:
    return _INPUT_FORMAT.pack(data.moves, data.elapsed_seconds, data.matched_pairs)


def decode_input(raw: bytes) -> AttestationInput:
    if len(raw) != _INPUT_FORMAT.size:
        raise InvalidAttestationInput(f'input stream must be {_INPUT_FORMAT.size} bytes, got {len(raw)}')
    return AttestationInput(*_INPUT_FORMAT.unpack(raw))


def encode_public_values(output: AttestationOutput) -> bytes:
    return _PUBLIC_FORMAT.pack(
        output.moves,
        output.elapsed_seconds,
        output.matched_pairs,
        output.final_score,
        output.is_complete,
    )


def decode_public_values(raw: bytes) -> AttestationOutput:
    if len(raw) != _PUBLIC_FORMAT.size:
        raise InvalidAttestationInput(f'public values must be {_PUBLIC_FORMAT.size} bytes, got {len(raw)}')
    if raw[-1] not in (0, 1):
        raise InvalidAttestationInput(f'invalid boolean byte in public values: {raw[-1]}')
    return AttestationOutput(*_PUBLIC_FORMAT.unpack(raw))
