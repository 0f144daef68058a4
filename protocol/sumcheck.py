"""Sumcheck round verification for the matmul inner product."""

from dataclasses import dataclass
from typing import List, Sequence

from primitives.channel import Channel, pack_qm31s
from primitives.field import QM31
from primitives.poseidon import hash_many
from protocol.errors import FinalEvaluationError, RoundConsistencyError
from protocol.proof import RoundPoly


@dataclass
class SumcheckResult:
    """Accepted sumcheck: per-round challenges and the audit hash."""
    assignment: List[QM31]
    audit_hash: int


def sumcheck_audit_hash(
    initial_digest: int, num_rounds: int, claimed_sum: QM31, final_a_eval: QM31, final_b_eval: QM31
) -> int:
    """Hash binding the sumcheck transcript entry point to its claims (for logging only)."""
    return hash_many([
        initial_digest,
        num_rounds,
        pack_qm31s([claimed_sum]),
        pack_qm31s([final_a_eval]),
        pack_qm31s([final_b_eval]),
    ])


def verify_sumcheck(
    channel: Channel,
    claimed_sum: QM31,
    round_polys: Sequence[RoundPoly],
    final_a_eval: QM31,
    final_b_eval: QM31,
) -> SumcheckResult:
    """Check every round polynomial and the final product claim.

    Each round requires p(0) + p(1) to equal the running sum, mixes p into the
    channel, draws the round challenge r and continues with p(r). The last
    running sum must equal final_a_eval * final_b_eval.

    Args:
        channel: Transcript, advanced in place
        claimed_sum: Initial running sum
        round_polys: Round messages in order
        final_a_eval, final_b_eval: Claimed MLE evaluations at the challenge point

    Returns:
        SumcheckResult with challenges in round order

    Raises:
        RoundConsistencyError: A round fails p(0) + p(1) == expected sum
        FinalEvaluationError: Final running sum != final_a_eval * final_b_eval
    """
    initial_digest = channel.digest
    expected_sum = claimed_sum
    assignment = []

    for round_idx, poly in enumerate(round_polys):
        round_sum = poly.at_zero() + poly.at_one()
        if round_sum != expected_sum:
            raise RoundConsistencyError(
                round_idx, f"Sumcheck round {round_idx}: p(0) + p(1) = {round_sum}, expected {expected_sum}"
            )

        channel.mix_poly_coeffs(poly.c0, poly.c1, poly.c2)
        challenge = channel.draw_qm31()
        assignment.append(challenge)

        expected_sum = poly.eval_at(challenge)

    product = final_a_eval * final_b_eval
    if expected_sum != product:
        raise FinalEvaluationError(
            f"Sumcheck final check: running sum {expected_sum} != A(r) * B(r) = {product}"
        )

    audit_hash = sumcheck_audit_hash(initial_digest, len(round_polys), claimed_sum, final_a_eval, final_b_eval)
    return SumcheckResult(assignment=assignment, audit_hash=audit_hash)
