"""
Configuration for a lifting run.

A config is a plain dataclass; YAML files (same keys) can be loaded with
``LiftingConfig.from_yaml``.  Unknown keys are rejected so typos in a
config file surface immediately.
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Dict, Any, Optional

import yaml


@dataclass
class LiftingConfig:
    """Parameters for modulus selection and iteration.

    The lifting and RNS primes are drawn from one generator of
    ``prime_bits``-bit primes; the smallest ``primes_count`` become
    lifting primes.
    """
    primes_count: int = 2           # l, number of lifting primes
    prime_bits: int = 22            # Bit size of generated primes
    seed: int = 12345               # Prime generator seed
    max_prime_draws: int = 10000    # Draws before InsufficientPrimes
    max_bad_prime_retries: int = 3  # 0 = BadPrime is fatal
    rns_margin_bits: float = 2.0    # Extra bits on top of log2|A| + log2 n
    check_bounds: bool = True       # Cheap per-step magnitude check
    verify_steps: bool = False      # Exact big-int check of each step (slow)

    def __post_init__(self):
        if self.primes_count < 1:
            raise ValueError(f"primes_count must be >= 1, got {self.primes_count}")
        if not 3 <= self.prime_bits <= 26:
            raise ValueError(
                f"prime_bits must be in [3, 26], got {self.prime_bits}"
            )
        if self.max_bad_prime_retries < 0:
            raise ValueError("max_bad_prime_retries must be >= 0")
        if self.rns_margin_bits < 1.0:
            raise ValueError("rns_margin_bits must be >= 1 for signed residues")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "LiftingConfig":
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown lifting config keys: {unknown}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path) -> "LiftingConfig":
        """Load from a YAML file; a top-level ``lifting:`` section is accepted."""
        with open(Path(path), 'r') as f:
            data = yaml.safe_load(f) or {}
        if "lifting" in data and isinstance(data["lifting"], dict):
            data = data["lifting"]
        return cls.from_dict(data)
