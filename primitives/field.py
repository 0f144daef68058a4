"""Mersenne-31 field tower: M31 -> CM31 -> QM31.

The base field GF(2^31 - 1) comes from the galois library. The two extensions
are built by hand on top of it because their reduction identities are part of
the wire contract:

    CM31 = M31[i] / (i^2 + 1)
    QM31 = CM31[j] / (j^2 - (2 + i))

Any other irreducible polynomial describes an isomorphic field with a
different coordinate system, and its elements would not interoperate with the
prover's.
"""

from __future__ import annotations

from typing import List, Tuple, Union

import galois

# --- Field Construction ---

M31_PRIME = (1 << 31) - 1

FF = galois.GF(M31_PRIME)
"""Base field GF(2^31 - 1)."""

IntLike = Union[int, "galois.FieldArray"]


def m31(value: IntLike) -> FF:
    """Reduce a non-negative integer into [0, P) as a base field element."""
    return FF(int(value) % M31_PRIME)


# --- Complex Extension ---

class CM31:
    """Element a + b*i of M31[i] / (i^2 + 1)."""

    __slots__ = ("a", "b")

    def __init__(self, a: IntLike = 0, b: IntLike = 0):
        self.a = m31(a)
        self.b = m31(b)

    @classmethod
    def zero(cls) -> "CM31":
        return cls(0, 0)

    @classmethod
    def one(cls) -> "CM31":
        return cls(1, 0)

    def __add__(self, other: "CM31") -> "CM31":
        return CM31(self.a + other.a, self.b + other.b)

    def __sub__(self, other: "CM31") -> "CM31":
        return CM31(self.a - other.a, self.b - other.b)

    def __neg__(self) -> "CM31":
        return CM31(-self.a, -self.b)

    def __mul__(self, other: "CM31") -> "CM31":
        # (a + bi)(c + di) = (ac - bd) + (ad + bc)i
        return CM31(
            self.a * other.a - self.b * other.b,
            self.a * other.b + self.b * other.a,
        )

    def to_m31s(self) -> Tuple[int, int]:
        return int(self.a), int(self.b)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CM31):
            return NotImplemented
        return self.to_m31s() == other.to_m31s()

    def __hash__(self) -> int:
        return hash(self.to_m31s())

    def __repr__(self) -> str:
        return f"CM31({int(self.a)}, {int(self.b)})"


# Non-residue defining the quartic extension: j^2 = 2 + i
QM31_R = CM31(2, 1)


# --- Secure Field ---

class QM31:
    """Element a + b*j of CM31[j] / (j^2 - (2 + i)).

    All challenges, claimed sums and evaluations live in this field.
    """

    __slots__ = ("a", "b")

    def __init__(self, a: CM31, b: CM31):
        self.a = a
        self.b = b

    @classmethod
    def from_m31(cls, a: IntLike, b: IntLike, c: IntLike, d: IntLike) -> "QM31":
        """Build from ascending components (a.a, a.b, b.a, b.b)."""
        return cls(CM31(a, b), CM31(c, d))

    @classmethod
    def zero(cls) -> "QM31":
        return cls(CM31.zero(), CM31.zero())

    @classmethod
    def one(cls) -> "QM31":
        return cls(CM31.one(), CM31.zero())

    def __add__(self, other: "QM31") -> "QM31":
        return QM31(self.a + other.a, self.b + other.b)

    def __sub__(self, other: "QM31") -> "QM31":
        return QM31(self.a - other.a, self.b - other.b)

    def __neg__(self) -> "QM31":
        return QM31(-self.a, -self.b)

    def __mul__(self, other: "QM31") -> "QM31":
        # Karatsuba: 3 CM31 multiplications.
        # (a + bj)(c + dj) = (ac + R*bd) + ((a + b)(c + d) - ac - bd)j
        ac = self.a * other.a
        bd = self.b * other.b
        cross = (self.a + self.b) * (other.a + other.b) - ac - bd
        return QM31(ac + QM31_R * bd, cross)

    def to_m31s(self) -> Tuple[int, int, int, int]:
        """Ascending components (a.a, a.b, b.a, b.b) as plain ints."""
        return self.a.to_m31s() + self.b.to_m31s()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QM31):
            return NotImplemented
        return self.to_m31s() == other.to_m31s()

    def __hash__(self) -> int:
        return hash(self.to_m31s())

    def __repr__(self) -> str:
        return "QM31({}, {}, {}, {})".format(*self.to_m31s())


# --- Coefficient Helpers ---

def qm31(coeffs: List[int]) -> QM31:
    """Construct QM31 from ascending components [a.a, a.b, b.a, b.b]."""
    if len(coeffs) != 4:
        raise ValueError(f"QM31 needs 4 components, got {len(coeffs)}")
    return QM31.from_m31(*coeffs)


def qm31_coeffs(elem: QM31) -> List[int]:
    """Extract ascending components [a.a, a.b, b.a, b.b] from QM31."""
    return list(elem.to_m31s())
