"""
Poseidon (Hades) permutation and sponge over the 252-bit STARK field.

Thin wrapper over the poseidon-py library, which implements the Starknet
Poseidon instance (width 3, rate 2). Only the call shapes used by the channel
and the Merkle verifier are exposed; the permutation's internal constants are
the library's concern.
"""

from typing import List, Sequence

from poseidon_py.poseidon_hash import (
    poseidon_hash_many as _poseidon_hash_many,
    poseidon_perm as _poseidon_perm,
)

# Prime of the field every felt lives in
STARK_PRIME = (1 << 251) + 17 * (1 << 192) + 1


def permute3(x: int, y: int, z: int) -> List[int]:
    """
    Apply the width-3 Hades permutation.

    Args:
        x, y, z: Field elements (as integers)

    Returns:
        The three output lanes
    """
    return [int(v) for v in _poseidon_perm(x % STARK_PRIME, y % STARK_PRIME, z % STARK_PRIME)]


def hash_pair(x: int, y: int) -> int:
    """Two-to-one hash: first lane of permute3(x, y, 2)."""
    return permute3(x, y, 2)[0]


def hash_many(values: Sequence[int]) -> int:
    """Sponge hash of an arbitrary-length sequence of field elements."""
    return int(_poseidon_hash_many([v % STARK_PRIME for v in values]))


__all__ = [
    'STARK_PRIME',
    'permute3',
    'hash_pair',
    'hash_many',
]
