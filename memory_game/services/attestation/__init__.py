"""Score attestation: the isolated re-derivation of a finished game's score.

Nothing in this package reads a live session. Callers hand it three copied
counters; it hands back committed values and, in prove mode, a verified
proof artifact.
"""

from .engine import (  # noqa: F401
    AttestationInput,
    AttestationOutput,
    attest,
    decode_public_values,
    encode_public_values,
    verify_output,
)
from .errors import (  # noqa: F401
    AttestationError,
    InvalidAttestationInput,
    MissingProofArtifact,
    ProofVerificationFailed,
    ProverFailed,
    ProverMisconfigured,
)
from .host import MODE_EXECUTE, MODE_PROVE, AttestationReceipt, run_attestation  # noqa: F401
from .prover import get_prover  # noqa: F401
