"""HTTP surface for springcrm."""

from .server import ApiServer

__all__ = ["ApiServer"]
