class AttestationError(Exception):
    """Base class for every failure on the attestation path."""


class InvalidAttestationInput(AttestationError, ValueError):
    pass


class ProverFailed(AttestationError):
    pass


class MissingProofArtifact(AttestationError):
    pass


class ProofVerificationFailed(AttestationError):
    pass


class ProverMisconfigured(AttestationError, ValueError):
    """The configured backend is unknown or missing required settings."""
