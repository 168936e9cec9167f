from datetime import datetime, timezone

from memory_game import db


def _utcnow():
    return datetime.now(timezone.utc)


class Attestation(db.Model):
    """A verified proof receipt. Only the committed values are stored."""
    __tablename__ = 'attestation'
    id = db.Column(db.Integer, primary_key=True)
    proof_hash = db.Column(db.String(80), unique=True, nullable=False, index=True)
    mode = db.Column(db.String(16), nullable=False)
    backend = db.Column(db.String(32), nullable=False)
    moves = db.Column(db.BigInteger, nullable=False)
    elapsed_seconds = db.Column(db.BigInteger, nullable=False)
    matched_pairs = db.Column(db.BigInteger, nullable=False)
    final_score = db.Column(db.BigInteger, nullable=False)
    is_complete = db.Column(db.Boolean, nullable=False)
    public_values = db.Column(db.String(64), nullable=False)  # hex
    artifact_path = db.Column(db.Text, nullable=True)
    verified = db.Column(db.Boolean, default=False, nullable=False)
    game_code = db.Column(db.String(4), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    @classmethod
    def from_receipt(cls, receipt, game_code=None):
        out = receipt.output
        return cls(
            proof_hash=receipt.proof_hash,
            mode=receipt.mode,
            backend=receipt.backend,
            moves=out.moves,
            elapsed_seconds=out.elapsed_seconds,
            matched_pairs=out.matched_pairs,
            final_score=out.final_score,
            is_complete=out.is_complete,
            public_values=receipt.public_values.hex(),
            artifact_path=receipt.artifact_path,
            verified=receipt.verified,
            game_code=game_code,
        )

    def to_output(self):
        from memory_game.services.attestation import AttestationOutput
        return AttestationOutput(
            moves=self.moves,
            elapsed_seconds=self.elapsed_seconds,
            matched_pairs=self.matched_pairs,
            final_score=self.final_score,
            is_complete=self.is_complete,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'proof_hash': self.proof_hash,
            'mode': self.mode,
            'backend': self.backend,
            'output': self.to_output().to_dict(),
            'public_values': self.public_values,
            'verified': self.verified,
            'game_code': self.game_code,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
