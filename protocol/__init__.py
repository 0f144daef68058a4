"""Protocol - matmul sumcheck proof types and verification."""

from protocol.errors import (
    CommitmentMismatchError,
    FinalEvaluationError,
    FoldingConsistencyError,
    MerkleAuthenticationError,
    RoundConsistencyError,
    StructuralError,
    UnknownModelError,
    VerificationError,
)
from protocol.mle_opening import verify_mle_opening
from protocol.proof import (
    MatMulSumcheckProof,
    MleOpeningProof,
    MleQueryProof,
    MleQueryRoundData,
    RoundPoly,
    load_proof_from_json,
    proof_from_json,
    proof_to_json,
    validate_proof_structure,
)
from protocol.registry import InMemoryModelRegistry, ModelRegistry
from protocol.sumcheck import SumcheckResult, verify_sumcheck
from protocol.verifier import VerificationResult, verify_matmul

__all__ = [
    # Proof
    "MatMulSumcheckProof",
    "MleOpeningProof",
    "MleQueryProof",
    "MleQueryRoundData",
    "RoundPoly",
    "proof_to_json",
    "proof_from_json",
    "load_proof_from_json",
    "validate_proof_structure",
    # Verification
    "verify_matmul",
    "VerificationResult",
    "verify_sumcheck",
    "SumcheckResult",
    "verify_mle_opening",
    # Registry
    "ModelRegistry",
    "InMemoryModelRegistry",
    # Errors
    "VerificationError",
    "StructuralError",
    "RoundConsistencyError",
    "FinalEvaluationError",
    "CommitmentMismatchError",
    "UnknownModelError",
    "MerkleAuthenticationError",
    "FoldingConsistencyError",
]
