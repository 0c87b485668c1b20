"""
Record Lifecycle - The Record Class
"""

from .record import Record

__all__ = ["Record"]
