"""
Structured logging for lifting runs.

Produces:
  - manifest.json: One-time run metadata (git hash, config, host info)
  - iterations.jsonl: One record per lifting iteration (timing, residual size)
  - solutions.jsonl: One record per completed solve
"""

import hashlib
import json
import os
import platform
import subprocess
import sys
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict


@dataclass
class RunManifest:
    """Run-level metadata, saved once per run."""
    run_id: str
    timestamp: str
    git_commit: str
    config_hash: str
    node_name: str
    python_version: str
    numpy_version: str
    config: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def save(self, path: Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2, default=str)


def _get_git_commit() -> str:
    """Get current git commit hash, or 'unknown'."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True, text=True, timeout=5,
        )
        return result.stdout.strip() if result.returncode == 0 else "unknown"
    except (OSError, subprocess.SubprocessError):
        return "unknown"


def _config_hash(config: Dict[str, Any]) -> str:
    """Deterministic hash of config dict."""
    s = json.dumps(config, sort_keys=True, default=str)
    return hashlib.sha256(s.encode()).hexdigest()[:16]


def create_manifest(run_id: str, config: Dict[str, Any]) -> RunManifest:
    """Create a RunManifest with auto-detected metadata."""
    import numpy as np

    return RunManifest(
        run_id=run_id,
        timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
        git_commit=_get_git_commit(),
        config_hash=_config_hash(config),
        node_name=os.environ.get("SLURMD_NODENAME", platform.node()),
        python_version=sys.version,
        numpy_version=np.__version__,
        config=config,
    )


class LiftingLogger:
    """JSONL logger for lifting iterations and solutions.

    ``log_iteration`` has the signature of the container's ``trace`` hook,
    so it can be passed directly:

        with LiftingLogger(out_dir) as log:
            MultiModLiftingContainer(A, b, trace=log.log_iteration)
    """

    def __init__(self, output_dir: Path, flush_every: int = 100):
        self.output_dir = Path(output_dir)
        self.flush_every = flush_every
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self._iterations_path = self.output_dir / "iterations.jsonl"
        self._solutions_path = self.output_dir / "solutions.jsonl"

        # Append mode so repeated solves share one log
        self._iterations_f = open(self._iterations_path, 'a')
        self._solutions_f = open(self._solutions_path, 'a')

        self._iterations_count = 0
        self._solutions_count = 0

    def log_iteration(self, record: Dict[str, Any]):
        record["timestamp"] = time.time()
        self._iterations_f.write(json.dumps(record, default=str) + "\n")
        self._iterations_count += 1
        if self._iterations_count % self.flush_every == 0:
            self._iterations_f.flush()

    def log_solution(self, record: Dict[str, Any]):
        record["timestamp"] = time.time()
        self._solutions_f.write(json.dumps(record, default=str) + "\n")
        self._solutions_f.flush()
        self._solutions_count += 1

    def close(self):
        """Flush and close all log files."""
        for f in [self._iterations_f, self._solutions_f]:
            if not f.closed:
                f.flush()
                f.close()

    @property
    def summary(self) -> Dict[str, int]:
        return {
            "iterations_logged": self._iterations_count,
            "solutions_logged": self._solutions_count,
        }

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
