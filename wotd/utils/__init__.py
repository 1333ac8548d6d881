"""Utility helpers package."""

from .helpers import emit_startup_instructions, read_json, write_json_atomic

__all__ = ["emit_startup_instructions", "read_json", "write_json_atomic"]
