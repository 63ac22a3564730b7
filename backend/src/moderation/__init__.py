"""Moderation engine: audited state transitions for files and users"""

from .engine import ModerationEngine, classify_file_change, normalize_remark

__all__ = ["ModerationEngine", "classify_file_change", "normalize_remark"]
