"""Inspection helpers for XHash containers."""

from .ring import verify_ring, verify_tree
from .trace import format_trace_lines, trace_path

__all__ = ["format_trace_lines", "trace_path", "verify_ring", "verify_tree"]
