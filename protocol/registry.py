"""Model-to-commitment registry boundary."""

import json
from typing import Dict, Protocol

from protocol.errors import UnknownModelError


class ModelRegistry(Protocol):
    """Anything that maps a model id to its registered weight commitment."""

    def lookup(self, model_id: str) -> int:
        ...


class InMemoryModelRegistry:
    """Dict-backed registry."""

    def __init__(self, commitments: Dict[str, int] = None):
        self._commitments: Dict[str, int] = dict(commitments or {})

    def register(self, model_id: str, commitment: int) -> None:
        self._commitments[model_id] = commitment

    def lookup(self, model_id: str) -> int:
        try:
            return self._commitments[model_id]
        except KeyError:
            raise UnknownModelError(f"No commitment registered for model '{model_id}'") from None

    @classmethod
    def from_json(cls, path: str) -> "InMemoryModelRegistry":
        """Load {model_id: commitment} where commitments are ints or decimal/hex strings."""
        with open(path) as f:
            data = json.load(f)
        return cls({str(k): int(v, 0) if isinstance(v, str) else int(v) for k, v in data.items()})
