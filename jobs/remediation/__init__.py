"""Remediation runner package.

Modules:
- config: RunnerConfig dataclass
- runner: run_once / run_forever
- cli: CLI entry point (main)
"""

from .config import RunnerConfig
from .runner import run_forever, run_once
from .cli import main

__all__ = ["RunnerConfig", "run_forever", "run_once", "main"]
