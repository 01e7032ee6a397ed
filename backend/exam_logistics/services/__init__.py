# backend/exam_logistics/services/__init__.py

from . import allocation, data_retrieval
from .tracking_mixin import TrackingMixin

__all__ = ["allocation", "data_retrieval", "TrackingMixin"]
