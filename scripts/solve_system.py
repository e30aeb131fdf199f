#!/usr/bin/env python3
"""
Solve an integer linear system A x = b exactly with RNS Dixon lifting.

Input file (JSON or YAML):
    {"A": [[2, 1], [1, 1]], "b": [3, 2]}

Usage:
    python scripts/solve_system.py --input system.json
    python scripts/solve_system.py --input system.json --config configs/default.yaml
    python scripts/solve_system.py --input system.json --primes 101 103 --output-dir runs/demo
"""

import argparse
import json
import sys
import time
from pathlib import Path

import yaml

from rns_dixon.config import LiftingConfig
from rns_dixon.errors import LiftingError
from rns_dixon.logging import LiftingLogger, create_manifest
from rns_dixon.solver import solve_rational, check_solution


def load_system(path: str):
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict) or "A" not in data or "b" not in data:
        raise ValueError(f"{path}: expected a mapping with keys 'A' and 'b'")
    return data["A"], data["b"]


def main():
    parser = argparse.ArgumentParser(description="Exact rational solve via RNS Dixon lifting")
    parser.add_argument("--input", type=str, required=True,
                        help="JSON/YAML file with 'A' and 'b'")
    parser.add_argument("--config", type=str, default=None,
                        help="YAML lifting config (see configs/default.yaml)")
    parser.add_argument("--primes-count", type=int, default=0,
                        help="Number of lifting primes (0 = from config)")
    parser.add_argument("--primes", type=int, nargs="+", default=None,
                        help="Explicit lifting primes")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--verify-steps", action="store_true",
                        help="Exact big-int check of every lifting step")
    parser.add_argument("--output-dir", type=str, default=None,
                        help="Write manifest.json and JSONL logs here")
    args = parser.parse_args()

    config = LiftingConfig.from_yaml(args.config) if args.config else LiftingConfig()
    overrides = config.to_dict()
    if args.primes_count > 0:
        overrides["primes_count"] = args.primes_count
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.verify_steps:
        overrides["verify_steps"] = True
    config = LiftingConfig.from_dict(overrides)

    A, b = load_system(args.input)
    print(f"System: n={len(A)}, lifting primes={args.primes or config.primes_count}")

    logger = None
    if args.output_dir:
        out = Path(args.output_dir)
        run_id = time.strftime("solve_%Y%m%d_%H%M%S")
        create_manifest(run_id, config.to_dict()).save(out / "manifest.json")
        logger = LiftingLogger(out)

    try:
        sol = solve_rational(A, b, config=config, lifting_primes=args.primes,
                             logger=logger)
    except LiftingError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        if logger is not None:
            logger.close()

    ok = check_solution(A, b, sol)
    print(f"Primes: {sol.primes}  RNS basis: {len(sol.rns_primes)} primes")
    print(f"Iterations: {sol.iterations}  time: {sol.wall_time_sec:.3f}s  "
          f"check: {'PASS' if ok else 'FAIL'}")
    print(json.dumps({
        "x": [str(f) for f in sol.as_fractions()],
        "denominator": str(sol.denominator),
    }, indent=2))
    return 0 if ok else 2


if __name__ == "__main__":
    sys.exit(main())
