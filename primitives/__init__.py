"""Primitives - field tower, hash wrapper, Fiat-Shamir channel and Merkle paths."""

from primitives.channel import (
    DRAW_DOMAIN,
    MIX_DOMAIN,
    Channel,
    pack_qm31s,
    unpack_felt,
)
from primitives.field import (
    CM31,
    FF,
    M31_PRIME,
    QM31,
    m31,
    qm31,
    qm31_coeffs,
)
from primitives.merkle import (
    MerkleRoot,
    MerkleTree,
    verify_merkle_path,
)
from primitives.poseidon import (
    STARK_PRIME,
    hash_many,
    hash_pair,
    permute3,
)

__all__ = [
    # Field
    "FF",
    "M31_PRIME",
    "CM31",
    "QM31",
    "m31",
    "qm31",
    "qm31_coeffs",
    # Hash
    "STARK_PRIME",
    "permute3",
    "hash_pair",
    "hash_many",
    # Channel
    "Channel",
    "MIX_DOMAIN",
    "DRAW_DOMAIN",
    "pack_qm31s",
    "unpack_felt",
    # Merkle
    "MerkleTree",
    "MerkleRoot",
    "verify_merkle_path",
]
