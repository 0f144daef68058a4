"""
Fiat-Shamir channel over the Poseidon permutation.

The channel is a digest plus a draw counter. Mixing replaces the digest and
resets the counter; drawing hashes the digest with the counter and bumps it.
Ordering and packing of every call must match the prover exactly, otherwise
the verifier derives different challenges and rejects honest proofs.
"""

from typing import List, Sequence

from primitives.field import QM31, m31
from primitives.poseidon import STARK_PRIME, hash_many, permute3

# Domain tags (third permutation lane) separating call shapes
MIX_DOMAIN = 2
DRAW_DOMAIN = 3

# Packing parameters
M31_SHIFT = 1 << 31
CHUNKS_PER_FELT = 8
QM31_COMPONENTS = 4

U64_MASK = (1 << 64) - 1


# --- Packing ---

def pack_qm31s(values: Sequence[QM31]) -> int:
    """Pack QM31 values into one felt: acc <- acc * 2^31 + component, seeded with 1.

    At most two QM31 (eight components) fit below the STARK prime.
    """
    if len(values) * QM31_COMPONENTS > CHUNKS_PER_FELT:
        raise ValueError(f"cannot pack {len(values)} QM31 values into one felt")
    acc = 1
    for value in values:
        for component in value.to_m31s():
            acc = acc * M31_SHIFT + component
    return acc


def unpack_felt(felt: int) -> List[int]:
    """Split a felt into eight 31-bit little-endian chunks, each reduced mod P."""
    return [int(m31((felt >> (31 * i)) & (M31_SHIFT - 1))) for i in range(CHUNKS_PER_FELT)]


# --- Channel ---

class Channel:
    """
    Poseidon-based Fiat-Shamir channel.

    A fresh channel starts with digest 0 and draw count 0. One instance is
    threaded through every stage of a single verification; it is never shared
    between verifications.

    Attributes:
        digest: Current 252-bit digest
        n_draws: Draws since the last mix
    """

    def __init__(self, digest: int = 0, n_draws: int = 0):
        self.digest = digest
        self.n_draws = n_draws

    def copy(self) -> "Channel":
        return Channel(self.digest, self.n_draws)

    # --- Mixing ---

    def mix_u64(self, value: int) -> None:
        """Absorb a narrow integer."""
        if not 0 <= value <= U64_MASK:
            raise ValueError(f"mix_u64 value out of range: {value}")
        self._mix(value)

    def mix_felt(self, value: int) -> None:
        """Absorb an arbitrary field element."""
        self._mix(value % STARK_PRIME)

    def _mix(self, value: int) -> None:
        self.digest = permute3(self.digest, value, MIX_DOMAIN)[0]
        self.n_draws = 0

    def mix_poly_coeffs(self, c0: QM31, c1: QM31, c2: QM31) -> None:
        """Absorb a degree-2 round polynomial.

        (c0, c1) are packed into one felt and c2 alone into a second felt; the
        2-then-1 chunking is part of the transcript format.
        """
        packed1 = pack_qm31s([c0, c1])
        packed2 = pack_qm31s([c2])
        self.digest = hash_many([self.digest, packed1, packed2])
        self.n_draws = 0

    # --- Drawing ---

    def draw_felt(self) -> int:
        """Squeeze one field element."""
        result = permute3(self.digest, self.n_draws, DRAW_DOMAIN)[0]
        self.n_draws += 1
        return result

    def draw_qm31(self) -> QM31:
        """Squeeze one secure-field element.

        Only the low four 31-bit chunks of the drawn felt are used; the upper
        four are dropped, never buffered for the next draw.
        """
        chunks = unpack_felt(self.draw_felt())
        return QM31.from_m31(*chunks[:QM31_COMPONENTS])

    def draw_qm31s(self, count: int) -> List[QM31]:
        return [self.draw_qm31() for _ in range(count)]

    def draw_u64(self) -> int:
        """Low 64 bits of a drawn felt."""
        return self.draw_felt() & U64_MASK

    def __repr__(self) -> str:
        return f"Channel(digest={hex(self.digest)}, n_draws={self.n_draws})"
