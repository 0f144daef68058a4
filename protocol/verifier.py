"""Matrix-multiplication proof verification.

Verification replays the prover's Fiat-Shamir transcript on one channel:

1. Shape checks - reject malformed proofs before any field arithmetic
2. Commitment check - A's commitment must match the model registry
3. Transcript setup - mix dimensions, draw row/column challenges, mix claims
4. Sumcheck - round consistency and final product check
5. MLE openings - A then B, at the sumcheck point, on the same channel

Rejections are returned, never raised: an untrusted proof is expected input.
"""

from dataclasses import dataclass
from typing import Optional

from primitives.channel import Channel, pack_qm31s
from protocol.errors import CommitmentMismatchError, VerificationError
from protocol.mle_opening import verify_mle_opening
from protocol.proof import MatMulSumcheckProof, ceil_log2, next_power_of_two, validate_proof_structure
from protocol.registry import ModelRegistry
from protocol.sumcheck import verify_sumcheck


@dataclass
class VerificationResult:
    """Outcome of verify_matmul.

    Attributes:
        accepted: True if every check passed
        audit_hash: Sumcheck audit hash (accepted proofs only)
        reason: Symbolic rejection tag (rejected proofs only)
        error: The rejection that stopped verification
    """
    accepted: bool
    audit_hash: Optional[int] = None
    reason: Optional[str] = None
    error: Optional[VerificationError] = None

    def __bool__(self) -> bool:
        return self.accepted


def _reject(error: VerificationError, reason: str = None) -> VerificationResult:
    print(f"ERROR: {error}")
    return VerificationResult(accepted=False, reason=reason or error.tag, error=error)


# --- Main Entry Point ---

def verify_matmul(proof: MatMulSumcheckProof, model_id: str, registry: ModelRegistry) -> VerificationResult:
    """Verify a matmul sumcheck proof against the registered commitment for model_id.

    Args:
        proof: Fully materialized proof
        model_id: Model whose weight commitment A must match
        registry: Source of registered commitments

    Returns:
        VerificationResult; truthy iff the proof is accepted
    """
    # --- Shape checks ---
    errors = validate_proof_structure(proof)
    if errors:
        for err in errors[1:]:
            print(f"ERROR: {err}")
        return _reject(errors[0])

    # --- Registered commitment ---
    try:
        expected_commitment = registry.lookup(model_id)
    except VerificationError as e:
        return _reject(e)
    if proof.a_commitment != expected_commitment:
        return _reject(CommitmentMismatchError(
            f"A commitment {hex(proof.a_commitment)} != registered {hex(expected_commitment)} for '{model_id}'"
        ))

    # --- Transcript setup ---
    channel = Channel()
    channel.mix_u64(proof.m)
    channel.mix_u64(proof.k)
    channel.mix_u64(proof.n)

    # Row and column challenges are not consumed here, but the prover draws them
    channel.draw_qm31s(ceil_log2(next_power_of_two(proof.m)))
    channel.draw_qm31s(ceil_log2(next_power_of_two(proof.n)))

    channel.mix_felt(pack_qm31s([proof.claimed_sum]))
    channel.mix_felt(proof.a_commitment)
    channel.mix_felt(proof.b_commitment)

    # --- Sumcheck ---
    print("Verifying sumcheck")
    try:
        sumcheck = verify_sumcheck(
            channel, proof.claimed_sum, proof.round_polys, proof.final_a_eval, proof.final_b_eval
        )
    except VerificationError as e:
        return _reject(e)

    # --- MLE openings (A, then B on the same channel) ---
    print("Verifying A opening")
    try:
        verify_mle_opening(channel, proof.a_commitment, proof.a_opening, sumcheck.assignment, proof.final_a_eval)
    except VerificationError as e:
        return _reject(e, "A_MLE_FAIL")

    print("Verifying B opening")
    try:
        verify_mle_opening(channel, proof.b_commitment, proof.b_opening, sumcheck.assignment, proof.final_b_eval)
    except VerificationError as e:
        return _reject(e, "B_MLE_FAIL")

    return VerificationResult(accepted=True, audit_hash=sumcheck.audit_hash)
