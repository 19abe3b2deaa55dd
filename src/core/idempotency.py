"""
Idempotency keys and provably-fair inputs.

operation ids let the backend deduplicate retried move submissions; every
move gets a fresh one. Client seeds are mixed into the server's randomness
commitment. The device fingerprint is a stable, non-identifying digest.
"""

import hashlib
import os
import platform
import secrets
import time


class IdempotencyKeyGenerator:
    """
    Generates operation ids of the form `op_<epoch-ms>_<random hex>`.

    The random part carries 64 bits from the OS CSPRNG, so ids stay unique
    even when many are minted within the same millisecond.
    """

    def __init__(self, prefix: str = "op", random_bytes: int = 8):
        if random_bytes < 8:
            raise ValueError("random_bytes must be at least 8")
        self.prefix = prefix
        self.random_bytes = random_bytes

    def operation_id(self) -> str:
        """Fresh id for one move submission. Never reuse the result."""
        millis = time.time_ns() // 1_000_000
        return f"{self.prefix}_{millis}_{secrets.token_hex(self.random_bytes)}"

    @staticmethod
    def client_seed() -> str:
        """Random client seed (256 bits, hex)."""
        return secrets.token_hex(32)


def default_device_fingerprint() -> str:
    """
    SHA-256 over coarse host traits (OS, architecture, interpreter, CPU count).

    Stable for a given machine and carries nothing that identifies a user.
    """
    traits = [
        platform.system(),
        platform.machine(),
        platform.python_implementation(),
        str(os.cpu_count() or 0),
    ]
    return hashlib.sha256("|".join(traits).encode("utf-8")).hexdigest()
