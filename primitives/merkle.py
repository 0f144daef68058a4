"""Binary Merkle tree over raw felt leaves using Poseidon.

Leaves are committed as-is (packed QM31 values are already single field
elements), so a leaf is never hashed on its own. Each internal node is
hash_pair(left_child, right_child).
"""

from typing import List, Sequence

from primitives.poseidon import hash_pair

# --- Type Aliases ---

MerkleRoot = int
SiblingPath = List[int]  # Sibling hashes from leaf level up to the root


# --- Verification ---

def verify_merkle_path(
    root: MerkleRoot, leaf: int, index: int, siblings: Sequence[int], depth: int = None
) -> bool:
    """Check that `leaf` sits at `index` under `root`.

    Args:
        root: Expected Merkle root
        leaf: Leaf felt (not hashed)
        index: Leaf position
        siblings: One sibling per level, ordered leaf to root
        depth: Expected tree depth; a path of any other length fails

    Returns:
        True if the path reproduces the root
    """
    if depth is not None and len(siblings) != depth:
        return False
    if index < 0 or index >= (1 << len(siblings)):
        return False

    current = leaf
    current_idx = index
    for sibling in siblings:
        if current_idx & 1:
            current = hash_pair(sibling, current)
        else:
            current = hash_pair(current, sibling)
        current_idx >>= 1

    return current == root


# --- Tree Construction ---

class MerkleTree:
    """Complete binary Merkle tree over a power-of-two number of felt leaves."""

    def __init__(self, leaves: Sequence[int]):
        n = len(leaves)
        if n == 0 or n & (n - 1):
            raise ValueError(f"leaf count must be a nonzero power of two, got {n}")

        # levels[0] are the leaves, levels[-1] == [root]
        self.levels: List[List[int]] = [list(leaves)]
        while len(self.levels[-1]) > 1:
            below = self.levels[-1]
            self.levels.append(
                [hash_pair(below[2 * i], below[2 * i + 1]) for i in range(len(below) // 2)]
            )

    @property
    def depth(self) -> int:
        return len(self.levels) - 1

    @property
    def root(self) -> MerkleRoot:
        return self.levels[-1][0]

    def get_path(self, index: int) -> SiblingPath:
        """Sibling hashes for leaf `index`, ordered leaf to root."""
        path = []
        idx = index
        for level in self.levels[:-1]:
            path.append(level[idx ^ 1])
            idx >>= 1
        return path
