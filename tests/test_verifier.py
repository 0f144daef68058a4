"""
End-to-end tests for verify_matmul.

Covers the accept path, every rejection class, the shape gate, registry
handling and transcript continuity across the sumcheck and both openings.
"""

import random

import pytest

import protocol.verifier as verifier_module
from primitives.field import QM31
from protocol.errors import (
    CommitmentMismatchError,
    FinalEvaluationError,
    MerkleAuthenticationError,
    RoundConsistencyError,
    StructuralError,
    UnknownModelError,
    VerificationError,
)
from protocol.proof import RoundPoly, proof_from_json, proof_to_json
from protocol.registry import InMemoryModelRegistry
from protocol.sumcheck import sumcheck_audit_hash
from protocol.verifier import verify_matmul
from tests.conftest import MODEL_ID
from tests.proof_builder import matmul_channel, prove_matmul, prove_random_matmul, random_qm31s


def _clone(proof):
    return proof_from_json(proof_to_json(proof))


def _flip_bit(value: QM31) -> QM31:
    a, b, c, d = value.to_m31s()
    return QM31.from_m31(a, b ^ 1, c, d)


def _registry_for(proof) -> InMemoryModelRegistry:
    return InMemoryModelRegistry({MODEL_ID: proof.a_commitment})


class _ChannelMustNotRun:
    """Stand-in that fails the test if verification reaches the transcript."""

    def __init__(self, *args, **kwargs):
        raise AssertionError("Channel was initialized")


# =============================================================================
# Accept path
# =============================================================================

class TestAccept:

    def test_accepts_honest_proof(self, proven, registry) -> None:
        """Test an honest proof is accepted with an audit hash."""
        result = verify_matmul(proven.proof, MODEL_ID, registry)
        assert result.accepted
        assert result
        assert result.reason is None
        assert result.error is None
        assert result.audit_hash is not None

    @pytest.mark.parametrize("m,k,n", [(1, 2, 1), (4, 3, 2), (2, 5, 7), (8, 16, 3)])
    def test_accepts_various_shapes(self, m: int, k: int, n: int) -> None:
        """Test honest proofs across matrix shapes are accepted."""
        proof = prove_random_matmul(seed=m * 100 + k * 10 + n, m=m, k=k, n=n).proof
        assert verify_matmul(proof, MODEL_ID, _registry_for(proof)).accepted

    def test_deterministic(self, proven, registry) -> None:
        """Test verifying twice gives the same result and audit hash."""
        first = verify_matmul(proven.proof, MODEL_ID, registry)
        second = verify_matmul(proven.proof, MODEL_ID, registry)
        assert first.accepted and second.accepted
        assert first.audit_hash == second.audit_hash

    def test_audit_hash_value(self, proven, registry) -> None:
        """Test the audit hash is taken at sumcheck entry."""
        proof = proven.proof
        channel = matmul_channel(
            proof.m, proof.k, proof.n, proof.claimed_sum, proof.a_commitment, proof.b_commitment
        )
        expected = sumcheck_audit_hash(
            channel.digest, proof.num_rounds, proof.claimed_sum, proof.final_a_eval, proof.final_b_eval
        )
        assert verify_matmul(proof, MODEL_ID, registry).audit_hash == expected

    def test_audit_hash_differs_between_proofs(self) -> None:
        """Test different proofs give different audit hashes."""
        p1 = prove_random_matmul(seed=1).proof
        p2 = prove_random_matmul(seed=2).proof
        h1 = verify_matmul(p1, MODEL_ID, _registry_for(p1)).audit_hash
        h2 = verify_matmul(p2, MODEL_ID, _registry_for(p2)).audit_hash
        assert h1 != h2


# =============================================================================
# Scenarios
# =============================================================================

class TestScenarios:

    @pytest.fixture
    def linear_proof(self):
        """k=2 with a constant B column, so the single round polynomial is linear."""
        a_vec = random_qm31s(random.Random(2024), 2)
        b_vec = [QM31.one(), QM31.one()]
        return prove_matmul(2, 2, 2, a_vec, b_vec).proof

    def test_scenario_a_single_round_pass(self, linear_proof) -> None:
        """Test a single linear round proof is accepted."""
        proof = linear_proof
        assert proof.num_rounds == 1
        assert proof.round_polys[0].c2 == QM31.zero()
        poly = proof.round_polys[0]
        assert poly.at_zero() + poly.at_one() == proof.claimed_sum
        assert verify_matmul(proof, MODEL_ID, _registry_for(proof)).accepted

    def test_scenario_b_sumcheck_fail(self, linear_proof, monkeypatch) -> None:
        """Test a bumped c0 fails at round 0 before any opening work."""
        proof = _clone(linear_proof)
        p = proof.round_polys[0]
        proof.round_polys[0] = RoundPoly(p.c0 + QM31.one(), p.c1, p.c2)

        def _no_opening(*args, **kwargs):
            raise AssertionError("MLE opening ran after a failed sumcheck")

        monkeypatch.setattr(verifier_module, "verify_mle_opening", _no_opening)
        result = verify_matmul(proof, MODEL_ID, _registry_for(proof))
        assert not result.accepted
        assert result.reason == "ROUND_0_FAIL"
        assert isinstance(result.error, RoundConsistencyError)
        assert result.audit_hash is None

    def test_scenario_c_mle_fail(self, proven, registry) -> None:
        """Test a flipped A leaf fails authentication in the A opening."""
        proof = _clone(proven.proof)
        rd = proof.a_opening.queries[0].rounds[0]
        rd.left_value = _flip_bit(rd.left_value)
        result = verify_matmul(proof, MODEL_ID, registry)
        assert not result.accepted
        assert result.reason == "A_MLE_FAIL"
        assert isinstance(result.error, MerkleAuthenticationError)

    def test_scenario_d_commitment_mismatch(self, proven, monkeypatch) -> None:
        """Test a registry mismatch is rejected before the channel exists."""
        registry = InMemoryModelRegistry({MODEL_ID: proven.proof.a_commitment + 1})
        monkeypatch.setattr(verifier_module, "Channel", _ChannelMustNotRun)
        result = verify_matmul(proven.proof, MODEL_ID, registry)
        assert not result.accepted
        assert result.reason == "COMMITMENT_MISMATCH"
        assert isinstance(result.error, CommitmentMismatchError)

    def test_unknown_model(self, proven, registry, monkeypatch) -> None:
        """Test an unregistered model is rejected before the channel exists."""
        monkeypatch.setattr(verifier_module, "Channel", _ChannelMustNotRun)
        result = verify_matmul(proven.proof, "other-model", registry)
        assert not result.accepted
        assert result.reason == "UNKNOWN_MODEL"
        assert isinstance(result.error, UnknownModelError)


# =============================================================================
# Shape gate
# =============================================================================

class TestStructure:

    @pytest.fixture(autouse=True)
    def no_channel(self, monkeypatch) -> None:
        monkeypatch.setattr(verifier_module, "Channel", _ChannelMustNotRun)

    def test_round_count_gate(self) -> None:
        """Test k=5 with two rounds is rejected by the shape gate."""
        proof = _clone(prove_random_matmul(seed=5, k=5).proof)
        assert proof.num_rounds == 3
        proof.num_rounds = 2
        proof.round_polys = proof.round_polys[:2]
        result = verify_matmul(proof, MODEL_ID, _registry_for(proof))
        assert not result.accepted
        assert result.reason == "ROUND_COUNT_MISMATCH"
        assert isinstance(result.error, StructuralError)

    def test_zero_rounds(self, proven, registry) -> None:
        """Test zero rounds is rejected."""
        proof = _clone(proven.proof)
        proof.num_rounds = 0
        proof.round_polys = []
        assert verify_matmul(proof, MODEL_ID, registry).reason == "INVALID_ROUNDS"

    def test_poly_count_mismatch(self, proven, registry) -> None:
        """Test a missing round polynomial is rejected."""
        proof = _clone(proven.proof)
        proof.round_polys = proof.round_polys[:-1]
        assert verify_matmul(proof, MODEL_ID, registry).reason == "POLY_COUNT_MISMATCH"

    @pytest.mark.parametrize("field_name", ["m", "k", "n"])
    def test_non_positive_dimension(self, proven, registry, field_name: str) -> None:
        """Test a zero dimension is rejected."""
        proof = _clone(proven.proof)
        setattr(proof, field_name, 0)
        assert verify_matmul(proof, MODEL_ID, registry).reason == "INVALID_DIMENSIONS"

    def test_oversized_dimension(self, proven, registry) -> None:
        """Test a dimension beyond u64 is rejected."""
        proof = _clone(proven.proof)
        proof.m = 1 << 64
        assert verify_matmul(proof, MODEL_ID, registry).reason == "INVALID_DIMENSIONS"

    def test_malformed_opening(self, proven, registry) -> None:
        """Test a short sibling path is rejected before verification."""
        proof = _clone(proven.proof)
        proof.b_opening.queries[0].rounds[0].left_siblings.pop()
        assert verify_matmul(proof, MODEL_ID, registry).reason == "MALFORMED_OPENING"


# =============================================================================
# Soundness under mutation
# =============================================================================

class TestMutations:

    def _assert_rejected(self, proof, registry) -> VerificationError:
        result = verify_matmul(proof, MODEL_ID, registry)
        assert not result.accepted
        assert result.audit_hash is None
        assert isinstance(result.error, VerificationError)
        return result.error

    @pytest.mark.parametrize("round_idx", [0, 1])
    @pytest.mark.parametrize("coeff", ["c0", "c1", "c2"])
    def test_round_poly_coefficient(self, proven, registry, round_idx: int, coeff: str) -> None:
        """Test flipping any round coefficient is rejected."""
        proof = _clone(proven.proof)
        p = proof.round_polys[round_idx]
        setattr(p, coeff, _flip_bit(getattr(p, coeff)))
        self._assert_rejected(proof, registry)

    def test_claimed_sum(self, proven, registry) -> None:
        """Test a modified claimed sum fails round 0."""
        proof = _clone(proven.proof)
        proof.claimed_sum = proof.claimed_sum + QM31.one()
        error = self._assert_rejected(proof, registry)
        assert isinstance(error, RoundConsistencyError)

    def test_final_a_eval(self, proven, registry) -> None:
        """Test a modified final A evaluation fails the product check."""
        proof = _clone(proven.proof)
        proof.final_a_eval = _flip_bit(proof.final_a_eval)
        assert isinstance(self._assert_rejected(proof, registry), FinalEvaluationError)

    def test_b_commitment(self, proven, registry) -> None:
        """Test a modified B commitment is rejected."""
        proof = _clone(proven.proof)
        proof.b_commitment += 1
        self._assert_rejected(proof, registry)

    def test_a_commitment_even_if_registered(self, proven) -> None:
        """Test a modified A commitment is rejected even when registered."""
        proof = _clone(proven.proof)
        proof.a_commitment += 1
        self._assert_rejected(proof, _registry_for(proof))

    @pytest.mark.parametrize("opening_name,tag", [("a_opening", "A_MLE_FAIL"), ("b_opening", "B_MLE_FAIL")])
    def test_merkle_sibling(self, proven, registry, opening_name: str, tag: str) -> None:
        """Test a tampered sibling fails in the matching opening."""
        proof = _clone(proven.proof)
        getattr(proof, opening_name).queries[-1].rounds[1].left_siblings[0] += 1
        result = verify_matmul(proof, MODEL_ID, registry)
        assert result.reason == tag
        assert isinstance(result.error, MerkleAuthenticationError)

    @pytest.mark.parametrize("opening_name,tag", [("a_opening", "A_MLE_FAIL"), ("b_opening", "B_MLE_FAIL")])
    def test_query_index(self, proven, registry, opening_name: str, tag: str) -> None:
        """Test a wrong query index fails in the matching opening."""
        proof = _clone(proven.proof)
        query = getattr(proof, opening_name).queries[0]
        query.initial_pair_index = (query.initial_pair_index + 1) % 2
        assert verify_matmul(proof, MODEL_ID, registry).reason == tag

    def test_opening_final_value(self, proven, registry) -> None:
        """Test a wrong B final value fails the B opening."""
        proof = _clone(proven.proof)
        proof.b_opening.final_value = proof.b_opening.final_value + QM31.one()
        assert verify_matmul(proof, MODEL_ID, registry).reason == "B_MLE_FAIL"

    def test_openings_swapped(self, proven, registry) -> None:
        """Test swapped openings fail the A opening."""
        # Each opening is bound to its own commitment and to the channel position
        proof = _clone(proven.proof)
        proof.a_opening, proof.b_opening = proof.b_opening, proof.a_opening
        assert verify_matmul(proof, MODEL_ID, registry).reason == "A_MLE_FAIL"
