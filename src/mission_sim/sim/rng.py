from __future__ import annotations

import hashlib
from random import Random

SEED_MASK = (1 << 63) - 1


def derive_seed(roll_seed: int, *, deployment_id: str, stream: str, purpose: str) -> int:
    payload = f"{roll_seed}|{deployment_id}|{stream}|{purpose}".encode("utf-8")
    digest = hashlib.blake2b(payload, digest_size=8).digest()
    return int.from_bytes(digest, "big") & SEED_MASK


def deployment_rng(roll_seed: int, deployment_id: str, stream: str, purpose: str) -> Random:
    return Random(derive_seed(roll_seed, deployment_id=deployment_id, stream=stream, purpose=purpose))


def new_roll_seed(rng: Random) -> int:
    return rng.getrandbits(63)
