"""Document persistence for springcrm."""

from .json_store import JsonStore, generate_id, now_iso

__all__ = ["JsonStore", "generate_id", "now_iso"]
