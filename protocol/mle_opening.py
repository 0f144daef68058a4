"""MLE opening verification by Merkle-authenticated folding.

The prover commits to the 2^n evaluations of a multilinear polynomial as the
leaves of a Merkle tree, then folds the table once per sumcheck challenge:

    layer_{r+1}[i] = layer_r[i] + challenge_r * (layer_r[mid + i] - layer_r[i]),  mid = |layer_r| / 2

pairing the low half against the high half. Each folded layer except the last
(a single value) is committed too. The verifier samples query pair indices
from the channel and, for each one, authenticates both halves of the pair at
every layer, recomputes the fold and checks it against the next layer (or the
final value).
"""

from typing import List, Optional, Sequence

from primitives.channel import Channel, pack_qm31s
from primitives.field import QM31
from primitives.merkle import MerkleRoot, verify_merkle_path
from protocol.errors import FoldingConsistencyError, MerkleAuthenticationError, StructuralError
from protocol.proof import MleOpeningProof, MleQueryProof, n_queries_for


# --- Query Index Derivation ---

def draw_query_indices(channel: Channel, n_rounds: int) -> List[int]:
    """Draw spot-check pair indices in [0, 2^(n_rounds-1))."""
    half_n = 1 << (n_rounds - 1)
    return [channel.draw_u64() % half_n for _ in range(n_queries_for(n_rounds))]


def next_query_pair_index(current_idx: int, layer_size: int) -> int:
    """Pair index in the next (halved) layer for a pair at current_idx."""
    mid = layer_size >> 1
    return current_idx % (mid >> 1)


def fold_pair(left: QM31, right: QM31, challenge: QM31) -> QM31:
    """left + challenge * (right - left)."""
    return left + challenge * (right - left)


# --- Verification ---

def verify_mle_opening(
    channel: Channel,
    commitment_root: MerkleRoot,
    opening: MleOpeningProof,
    challenges: Sequence[QM31],
    claimed_value: Optional[QM31] = None,
) -> None:
    """Verify that the committed MLE evaluates to opening.final_value at `challenges`.

    Challenges are applied in forward order: challenges[0] folds layer 0.

    Args:
        channel: Transcript, advanced in place (roots mixed, queries drawn)
        commitment_root: Merkle root of the full evaluation table
        opening: Intermediate roots, queries and final value
        challenges: Evaluation point, one coordinate per folding round
        claimed_value: If given, final_value must equal it

    Raises:
        StructuralError: Wrong number of roots, queries or rounds
        MerkleAuthenticationError: A pair value fails to authenticate
        FoldingConsistencyError: A fold disagrees with the next layer, the final
            value or the claimed value, or a query index differs from the drawn one
    """
    n_rounds = len(challenges)
    if n_rounds == 0:
        raise StructuralError("MLE opening needs at least one folding round", tag="MALFORMED_OPENING")
    if len(opening.intermediate_roots) != n_rounds - 1:
        raise StructuralError(
            f"Expected {n_rounds - 1} intermediate roots, got {len(opening.intermediate_roots)}",
            tag="MALFORMED_OPENING",
        )

    # Bind commitments into the transcript before deriving queries
    channel.mix_felt(commitment_root)
    for root in opening.intermediate_roots:
        channel.mix_felt(root)

    query_indices = draw_query_indices(channel, n_rounds)
    if len(opening.queries) != len(query_indices):
        raise StructuralError(
            f"Expected {len(query_indices)} queries, got {len(opening.queries)}",
            tag="MALFORMED_OPENING",
        )

    if claimed_value is not None and opening.final_value != claimed_value:
        raise FoldingConsistencyError(
            f"Opening final value {opening.final_value} != claimed evaluation {claimed_value}"
        )

    layer_roots = [commitment_root] + list(opening.intermediate_roots)
    for q_idx, (query, drawn_idx) in enumerate(zip(opening.queries, query_indices)):
        _verify_query(q_idx, query, drawn_idx, layer_roots, challenges, opening.final_value)


def _verify_query(
    q_idx: int,
    query: MleQueryProof,
    drawn_idx: int,
    layer_roots: List[MerkleRoot],
    challenges: Sequence[QM31],
    final_value: QM31,
) -> None:
    """Walk one query through every folding layer."""
    n_rounds = len(challenges)

    if query.initial_pair_index != drawn_idx:
        raise FoldingConsistencyError(
            f"Query {q_idx}: pair index {query.initial_pair_index} != drawn index {drawn_idx}"
        )
    if len(query.rounds) != n_rounds:
        raise StructuralError(
            f"Query {q_idx}: expected {n_rounds} rounds, got {len(query.rounds)}",
            tag="MALFORMED_OPENING",
        )

    current_idx = drawn_idx
    # Fold of the previous round and the position it lands on in this layer
    carried_fold = None
    carried_idx = 0
    for r, round_data in enumerate(query.rounds):
        depth = n_rounds - r
        layer_size = 1 << depth
        mid = layer_size >> 1
        root = layer_roots[r]

        # Leaves are the packed values themselves
        left_leaf = pack_qm31s([round_data.left_value])
        right_leaf = pack_qm31s([round_data.right_value])

        if not verify_merkle_path(root, left_leaf, current_idx, round_data.left_siblings, depth):
            raise MerkleAuthenticationError(f"Query {q_idx} round {r}: left value does not authenticate")
        if not verify_merkle_path(root, right_leaf, mid + current_idx, round_data.right_siblings, depth):
            raise MerkleAuthenticationError(f"Query {q_idx} round {r}: right value does not authenticate")

        # The previous fold reappears as one half of this layer's pair
        if carried_fold is not None:
            expected = round_data.left_value if carried_idx < mid else round_data.right_value
            if carried_fold != expected:
                raise FoldingConsistencyError(
                    f"Query {q_idx} round {r - 1}: fold {carried_fold} != next layer value {expected}"
                )

        folded = fold_pair(round_data.left_value, round_data.right_value, challenges[r])

        if r == n_rounds - 1:
            if folded != final_value:
                raise FoldingConsistencyError(
                    f"Query {q_idx}: last fold {folded} != final value {final_value}"
                )
            break

        carried_fold = folded
        carried_idx = current_idx
        current_idx = next_query_pair_index(current_idx, layer_size)
