"""Verification failure taxonomy.

Every rejection carries a short symbolic tag. Stages raise these; the
orchestrator turns them into a rejected VerificationResult, so a dishonest or
malformed proof never escapes as an exception.
"""


class VerificationError(Exception):
    """Base class for all proof rejections."""

    tag = "VERIFICATION_FAIL"

    def __init__(self, message: str, tag: str = None):
        super().__init__(message)
        if tag is not None:
            self.tag = tag


class StructuralError(VerificationError):
    """Proof shape is malformed (lengths, round counts, dimensions)."""
    tag = "MALFORMED_PROOF"


class RoundConsistencyError(VerificationError):
    """A sumcheck round polynomial fails p(0) + p(1) == expected sum."""

    def __init__(self, round_idx: int, message: str):
        super().__init__(message, tag=f"ROUND_{round_idx}_FAIL")
        self.round_idx = round_idx


class FinalEvaluationError(VerificationError):
    """Final sumcheck value disagrees with final_a_eval * final_b_eval."""
    tag = "FINAL_FAIL"


class CommitmentMismatchError(VerificationError):
    """Proof's matrix commitment disagrees with the registered one."""
    tag = "COMMITMENT_MISMATCH"


class UnknownModelError(CommitmentMismatchError):
    """Registry holds no commitment for the requested model."""
    tag = "UNKNOWN_MODEL"


class MerkleAuthenticationError(VerificationError):
    """A sibling path fails to reproduce its layer root."""
    tag = "MLE_FAIL"


class FoldingConsistencyError(VerificationError):
    """An algebraic fold disagrees with the authenticated or claimed values."""
    tag = "MLE_FAIL"
