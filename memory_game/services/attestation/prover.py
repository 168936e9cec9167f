import hashlib
import hmac
import json
import logging
import os
import re
import secrets
import shlex
import shutil
import subprocess
import threading
from dataclasses import dataclass
from typing import Optional

from .engine import (
    AttestationInput,
    AttestationOutput,
    attest,
    decode_input,
    encode_input,
    encode_public_values,
    verify_output,
)
from .errors import MissingProofArtifact, ProofVerificationFailed, ProverFailed, ProverMisconfigured

PROGRAM_ID = 'memory-proof-program'
VERIFIED_MARKER = 'Proof verified successfully'
_FINAL_SCORE_RE = re.compile(r'FINAL_SCORE=(\d+)')


@dataclass(frozen=True)
class ProofArtifact:
    path: str
    output: AttestationOutput


def artifact_digest(path: str) -> str:
    try:
        with open(path, 'rb') as fh:
            return '0x' + hashlib.sha256(fh.read()).hexdigest()
    except FileNotFoundError as exc:
        raise MissingProofArtifact(f'proof artifact not found: {path}') from exc


class HmacProver:
    """Local attester sealing the committed values with an HMAC key.

    The artifact is a JSON document holding the input stream, the public
    values and a seal over both; verification re-executes the engine on the
    stored input rather than trusting the stored outputs.
    """

    name = 'hmac'

    def __init__(self, proof_dir: str, signing_key: str, logger: Optional[logging.Logger] = None):
        self.proof_dir = proof_dir
        self._key = signing_key.encode('utf-8')
        self.logger = logger or logging.getLogger('memory_game')

    def _seal(self, nonce: str, stdin: bytes, public_values: bytes) -> str:
        message = PROGRAM_ID.encode('ascii') + bytes.fromhex(nonce) + stdin + public_values
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def prove(self, data: AttestationInput) -> ProofArtifact:
        output = attest(data)
        stdin = encode_input(data)
        public_values = encode_public_values(output)
        nonce = secrets.token_hex(16)
        document = {
            'program': PROGRAM_ID,
            'backend': self.name,
            'nonce': nonce,
            'stdin': stdin.hex(),
            'public_values': public_values.hex(),
            'seal': self._seal(nonce, stdin, public_values),
        }
        os.makedirs(self.proof_dir, exist_ok=True)
        path = os.path.join(self.proof_dir, f'{document["seal"][:32]}.json')
        with open(path, 'w', encoding='utf-8') as fh:
            json.dump(document, fh, sort_keys=True)
        self.logger.info(f"[prove] backend={self.name} artifact={path}")
        return ProofArtifact(path=path, output=output)

    def verify(self, artifact: ProofArtifact) -> AttestationOutput:
        try:
            with open(artifact.path, 'r', encoding='utf-8') as fh:
                document = json.load(fh)
        except FileNotFoundError as exc:
            raise MissingProofArtifact(f'proof artifact not found: {artifact.path}') from exc
        except ValueError as exc:
            raise ProofVerificationFailed(f'proof artifact is not valid JSON: {artifact.path}') from exc

        if not isinstance(document, dict) or document.get('program') != PROGRAM_ID:
            raise ProofVerificationFailed(f'artifact was not produced by {PROGRAM_ID}')
        try:
            stdin = bytes.fromhex(document['stdin'])
            public_values = bytes.fromhex(document['public_values'])
            seal = str(document['seal'])
            expected_seal = self._seal(document['nonce'], stdin, public_values)
            recomputed = attest(decode_input(stdin))
        except (KeyError, TypeError, ValueError) as exc:
            raise ProofVerificationFailed(f'malformed proof artifact: {exc}') from exc

        if not hmac.compare_digest(seal, expected_seal):
            raise ProofVerificationFailed('proof seal does not match')
        if encode_public_values(recomputed) != public_values:
            raise ProofVerificationFailed('committed values do not match re-execution')
        if recomputed != artifact.output:
            raise ProofVerificationFailed('artifact commits different values than expected')
        self.logger.info(f"[verify] backend={self.name} artifact={artifact.path} ok")
        return recomputed


class CommandProver:
    """Drives an external proving command, e.g. a zkVM host binary.

    The command must exit 0, print the verification marker and a
    ``FINAL_SCORE=`` line agreeing with the local engine, and write a fresh
    proof file at ``artifact_path``. That file is then moved to
    ``<proof_dir>/<sha256>.bin`` so every proof keeps its own artifact.
    """

    name = 'command'
    # Runs share the command's fixed output path
    _run_lock = threading.Lock()

    def __init__(
        self,
        command: str,
        artifact_path: str,
        workdir: Optional[str] = None,
        timeout_sec: int = 900,
        proof_dir: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.command = command
        self.workdir = workdir
        self.artifact_path = artifact_path if os.path.isabs(artifact_path) or not workdir \
            else os.path.join(workdir, artifact_path)
        self.timeout_sec = timeout_sec
        self.proof_dir = proof_dir or os.path.dirname(os.path.abspath(self.artifact_path))
        self.logger = logger or logging.getLogger('memory_game')

    def prove(self, data: AttestationInput) -> ProofArtifact:
        output = attest(data)
        args = shlex.split(self.command.format(
            moves=data.moves, time=data.elapsed_seconds, matched_pairs=data.matched_pairs,
        ))
        with self._run_lock:
            # A file left by an earlier run must never pass for this proof
            if os.path.exists(self.artifact_path):
                os.remove(self.artifact_path)
            self._run(args, output)
            if not os.path.isfile(self.artifact_path) or os.path.getsize(self.artifact_path) == 0:
                raise MissingProofArtifact(f'prover did not write a proof artifact at {self.artifact_path}')
            path = self._store(self.artifact_path)

        artifact = ProofArtifact(path=path, output=output)
        self.verify(artifact)
        return artifact

    def _run(self, args, output: AttestationOutput) -> None:
        self.logger.info(f"[prove] backend={self.name} command={args}")
        try:
            completed = subprocess.run(
                args, cwd=self.workdir, capture_output=True, text=True, timeout=self.timeout_sec,
            )
        except subprocess.TimeoutExpired as exc:
            raise ProverFailed(f'prover timed out after {self.timeout_sec}s') from exc
        except OSError as exc:
            raise ProverFailed(f'could not run prover: {exc}') from exc

        if completed.stderr:
            self.logger.warning(f"[prove] backend={self.name} stderr={completed.stderr.strip()[-2000:]}")
        if completed.returncode != 0:
            raise ProverFailed(f'prover exited with status {completed.returncode}')
        if VERIFIED_MARKER not in completed.stdout:
            raise ProofVerificationFailed('prover did not report a verified proof')

        match = _FINAL_SCORE_RE.search(completed.stdout)
        if not match:
            raise ProverFailed('prover output has no FINAL_SCORE line')
        if int(match.group(1)) != output.final_score:
            raise ProofVerificationFailed(
                f'prover committed score {match.group(1)}, expected {output.final_score}'
            )

    def _store(self, produced: str) -> str:
        digest = artifact_digest(produced)
        os.makedirs(self.proof_dir, exist_ok=True)
        path = os.path.join(self.proof_dir, f'{digest[2:]}.bin')
        shutil.move(produced, path)
        self.logger.info(f"[prove] backend={self.name} artifact={path}")
        return path

    def verify(self, artifact: ProofArtifact) -> AttestationOutput:
        # The external driver verifies the proof itself before saving it;
        # here we only require the artifact and a consistent output.
        if not os.path.isfile(artifact.path) or os.path.getsize(artifact.path) == 0:
            raise MissingProofArtifact(f'proof artifact not found: {artifact.path}')
        if not verify_output(artifact.output):
            raise ProofVerificationFailed('committed values are not the score function of the inputs')
        return artifact.output


def get_prover(config, name: Optional[str] = None, logger: Optional[logging.Logger] = None):
    """Build the prover backend named by ``PROVER_BACKEND`` (or ``name``)."""
    backend = (name or config.get('PROVER_BACKEND') or 'hmac').lower()
    try:
        if backend == HmacProver.name:
            return HmacProver(
                proof_dir=config['PROOF_DIR'],
                signing_key=config.get('PROOF_SIGNING_KEY') or config['SECRET_KEY'],
                logger=logger,
            )
        if backend == CommandProver.name:
            return CommandProver(
                command=config['PROVER_COMMAND'],
                artifact_path=config['PROVER_ARTIFACT_PATH'],
                workdir=config.get('PROVER_WORKDIR'),
                timeout_sec=int(config.get('PROVER_TIMEOUT_SEC', 900)),
                proof_dir=config['PROOF_DIR'],
                logger=logger,
            )
    except KeyError as exc:
        raise ProverMisconfigured(f'prover backend {backend!r} needs setting {exc.args[0]}') from exc
    raise ProverMisconfigured(f'unknown prover backend {backend!r}')
