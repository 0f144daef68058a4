"""Matrix-multiplication sumcheck proof data structures and serialization."""

import json
from dataclasses import dataclass, field
from typing import Any, List

from primitives.field import QM31, qm31, qm31_coeffs
from protocol.errors import StructuralError

# --- Type Aliases ---
Hash = int  # Poseidon felt

# Spot-check queries per MLE opening (capped by the number of folding pairs)
N_QUERIES = 14

# Dimensions are mixed into the channel as u64
MAX_DIMENSION = 1 << 64


# --- Size Helpers ---

def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def ceil_log2(n: int) -> int:
    """Smallest r with 2^r >= n."""
    if n <= 1:
        return 0
    return (n - 1).bit_length()


def n_queries_for(n_rounds: int) -> int:
    """Number of spot-check queries for an opening with n_rounds folds."""
    return min(N_QUERIES, 1 << (n_rounds - 1))


# --- Proof Data Structures ---

@dataclass
class RoundPoly:
    """Degree-2 sumcheck round message p(x) = c0 + c1*x + c2*x^2."""
    c0: QM31
    c1: QM31
    c2: QM31

    def at_zero(self) -> QM31:
        return self.c0

    def at_one(self) -> QM31:
        return self.c0 + self.c1 + self.c2

    def eval_at(self, x: QM31) -> QM31:
        """Horner evaluation: c0 + x*(c1 + x*c2)."""
        return self.c0 + x * (self.c1 + x * self.c2)


@dataclass
class MleQueryRoundData:
    """Folding pair at one layer with Merkle paths for both halves."""
    left_value: QM31
    right_value: QM31
    left_siblings: List[Hash] = field(default_factory=list)
    right_siblings: List[Hash] = field(default_factory=list)


@dataclass
class MleQueryProof:
    """One spot-check query walked through every folding layer."""
    initial_pair_index: int
    rounds: List[MleQueryRoundData] = field(default_factory=list)


@dataclass
class MleOpeningProof:
    """Opening of a Merkle-committed MLE at the sumcheck point.

    Attributes:
        intermediate_roots: Roots of folded layers 1 .. n_rounds-1
        queries: Spot-check queries
        final_value: Fully folded value, i.e. the MLE evaluation
    """
    intermediate_roots: List[Hash] = field(default_factory=list)
    queries: List[MleQueryProof] = field(default_factory=list)
    final_value: QM31 = field(default_factory=QM31.zero)


@dataclass
class MatMulSumcheckProof:
    """Sumcheck proof that C = A x B for A (m x k) and B (k x n).

    Attributes:
        m, k, n: Matrix dimensions
        num_rounds: Sumcheck rounds, ceil_log2(next_power_of_two(k))
        claimed_sum: Claimed value of the sum over the inner dimension
        round_polys: One degree-2 polynomial per round
        final_a_eval, final_b_eval: MLE evaluations of A and B at the sumcheck point
        a_commitment, b_commitment: Merkle roots of the committed A and B tables
        a_opening, b_opening: MLE openings binding the final evaluations
    """
    m: int
    k: int
    n: int
    num_rounds: int
    claimed_sum: QM31
    round_polys: List[RoundPoly]
    final_a_eval: QM31
    final_b_eval: QM31
    a_commitment: Hash
    b_commitment: Hash
    a_opening: MleOpeningProof = field(default_factory=MleOpeningProof)
    b_opening: MleOpeningProof = field(default_factory=MleOpeningProof)


# --- Structure Validation ---

def validate_opening_structure(opening: MleOpeningProof, n_rounds: int, label: str) -> List[StructuralError]:
    """Check an opening's shape against the number of folding rounds."""
    errors = []

    if len(opening.intermediate_roots) != n_rounds - 1:
        errors.append(StructuralError(
            f"{label}: expected {n_rounds - 1} intermediate roots, got {len(opening.intermediate_roots)}",
            tag="MALFORMED_OPENING",
        ))

    expected_queries = n_queries_for(n_rounds)
    if len(opening.queries) != expected_queries:
        errors.append(StructuralError(
            f"{label}: expected {expected_queries} queries, got {len(opening.queries)}",
            tag="MALFORMED_OPENING",
        ))

    for q_idx, query in enumerate(opening.queries):
        if len(query.rounds) != n_rounds:
            errors.append(StructuralError(
                f"{label}: query {q_idx} has {len(query.rounds)} rounds, expected {n_rounds}",
                tag="MALFORMED_OPENING",
            ))
            continue
        for r, round_data in enumerate(query.rounds):
            # Layer r holds 2^(n_rounds - r) leaves
            depth = n_rounds - r
            if len(round_data.left_siblings) != depth or len(round_data.right_siblings) != depth:
                errors.append(StructuralError(
                    f"{label}: query {q_idx} round {r} sibling path length != {depth}",
                    tag="MALFORMED_OPENING",
                ))

    return errors


def validate_proof_structure(proof: MatMulSumcheckProof) -> List[StructuralError]:
    """Validate proof shape before any field arithmetic runs.

    Returns:
        Structural errors in check order (empty if the shape is valid)
    """
    if proof.num_rounds <= 0:
        return [StructuralError(f"num_rounds must be positive, got {proof.num_rounds}", tag="INVALID_ROUNDS")]

    if len(proof.round_polys) != proof.num_rounds:
        return [StructuralError(
            f"Expected {proof.num_rounds} round polynomials, got {len(proof.round_polys)}",
            tag="POLY_COUNT_MISMATCH",
        )]

    if min(proof.m, proof.k, proof.n) <= 0 or max(proof.m, proof.k, proof.n) >= MAX_DIMENSION:
        return [StructuralError(
            f"Dimensions must be in [1, 2^64), got m={proof.m} k={proof.k} n={proof.n}",
            tag="INVALID_DIMENSIONS",
        )]

    expected_rounds = ceil_log2(next_power_of_two(proof.k))
    if proof.num_rounds != expected_rounds:
        return [StructuralError(
            f"k={proof.k} requires {expected_rounds} rounds, proof declares {proof.num_rounds}",
            tag="ROUND_COUNT_MISMATCH",
        )]

    errors = validate_opening_structure(proof.a_opening, proof.num_rounds, "A opening")
    errors.extend(validate_opening_structure(proof.b_opening, proof.num_rounds, "B opening"))
    return errors


# --- JSON Serialization ---

def _qm31_to_json(value: QM31) -> List[str]:
    return [str(c) for c in qm31_coeffs(value)]


def _qm31_from_json(data: List[Any]) -> QM31:
    return qm31([int(c) for c in data])


def opening_to_json(opening: MleOpeningProof) -> dict[str, Any]:
    return {
        "intermediateRoots": [str(r) for r in opening.intermediate_roots],
        "queries": [
            {
                "initialPairIndex": str(query.initial_pair_index),
                "rounds": [
                    {
                        "leftValue": _qm31_to_json(rd.left_value),
                        "rightValue": _qm31_to_json(rd.right_value),
                        "leftSiblings": [str(s) for s in rd.left_siblings],
                        "rightSiblings": [str(s) for s in rd.right_siblings],
                    }
                    for rd in query.rounds
                ],
            }
            for query in opening.queries
        ],
        "finalValue": _qm31_to_json(opening.final_value),
    }


def opening_from_json(data: dict[str, Any]) -> MleOpeningProof:
    queries = []
    for q in data.get("queries", []):
        rounds = [
            MleQueryRoundData(
                left_value=_qm31_from_json(rd["leftValue"]),
                right_value=_qm31_from_json(rd["rightValue"]),
                left_siblings=[int(s) for s in rd.get("leftSiblings", [])],
                right_siblings=[int(s) for s in rd.get("rightSiblings", [])],
            )
            for rd in q.get("rounds", [])
        ]
        queries.append(MleQueryProof(initial_pair_index=int(q["initialPairIndex"]), rounds=rounds))

    return MleOpeningProof(
        intermediate_roots=[int(r) for r in data.get("intermediateRoots", [])],
        queries=queries,
        final_value=_qm31_from_json(data["finalValue"]),
    )


def proof_to_json(proof: MatMulSumcheckProof) -> dict[str, Any]:
    """Convert proof to JSON-serializable dictionary (integers as decimal strings)."""
    return {
        "m": str(proof.m),
        "k": str(proof.k),
        "n": str(proof.n),
        "numRounds": str(proof.num_rounds),
        "claimedSum": _qm31_to_json(proof.claimed_sum),
        "roundPolys": [
            [_qm31_to_json(p.c0), _qm31_to_json(p.c1), _qm31_to_json(p.c2)]
            for p in proof.round_polys
        ],
        "finalAEval": _qm31_to_json(proof.final_a_eval),
        "finalBEval": _qm31_to_json(proof.final_b_eval),
        "aCommitment": str(proof.a_commitment),
        "bCommitment": str(proof.b_commitment),
        "aOpening": opening_to_json(proof.a_opening),
        "bOpening": opening_to_json(proof.b_opening),
    }


def proof_from_json(data: dict[str, Any]) -> MatMulSumcheckProof:
    """Build a proof from its JSON dictionary form."""
    round_polys = []
    for coeffs in data["roundPolys"]:
        if len(coeffs) != 3:
            raise ValueError(f"Round polynomial must have 3 coefficients, got {len(coeffs)}")
        round_polys.append(RoundPoly(*(_qm31_from_json(c) for c in coeffs)))

    return MatMulSumcheckProof(
        m=int(data["m"]),
        k=int(data["k"]),
        n=int(data["n"]),
        num_rounds=int(data["numRounds"]),
        claimed_sum=_qm31_from_json(data["claimedSum"]),
        round_polys=round_polys,
        final_a_eval=_qm31_from_json(data["finalAEval"]),
        final_b_eval=_qm31_from_json(data["finalBEval"]),
        a_commitment=int(data["aCommitment"]),
        b_commitment=int(data["bCommitment"]),
        a_opening=opening_from_json(data["aOpening"]),
        b_opening=opening_from_json(data["bOpening"]),
    )


def load_proof_from_json(path: str) -> MatMulSumcheckProof:
    """Load proof from JSON file."""
    with open(path) as f:
        data = json.load(f)
    return proof_from_json(data)
