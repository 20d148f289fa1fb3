"""
Shared utilities for texstage.

Common functionality used across contexts:
- External process execution
- Filesystem staging helpers
- Logging setup
"""

from texstage.utils.process import ExecutionMode, ProcessResult, ProcessRunner
from texstage.utils.timestamp import now

__all__ = ["ExecutionMode", "ProcessResult", "ProcessRunner", "now"]
