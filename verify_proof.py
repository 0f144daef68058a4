#!/usr/bin/env python3
"""
Verify a matmul sumcheck proof from the command line.

Usage:
    python verify_proof.py --proof proof.json --registry registry.json --model-id my-model

The registry file maps model ids to their A-matrix commitments:
    {"my-model": "0x1234..."}

Exit status is 0 if the proof is accepted, 1 if rejected.
"""

import argparse
import sys
from pathlib import Path

from protocol.proof import load_proof_from_json
from protocol.registry import InMemoryModelRegistry
from protocol.verifier import verify_matmul


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Verify a matmul sumcheck proof")
    parser.add_argument("--proof", type=Path, required=True, help="Proof JSON file")
    parser.add_argument("--registry", type=Path, required=True, help="Model registry JSON file")
    parser.add_argument("--model-id", required=True, help="Model id whose commitment A must match")
    args = parser.parse_args(argv)

    proof = load_proof_from_json(str(args.proof))
    registry = InMemoryModelRegistry.from_json(str(args.registry))

    result = verify_matmul(proof, args.model_id, registry)
    if result.accepted:
        print(f"Proof accepted (audit hash {hex(result.audit_hash)})")
        return 0

    print(f"Proof rejected: {result.reason}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
