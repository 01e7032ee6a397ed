# backend/exam_logistics/services/data_retrieval/__init__.py

from .staffing_data import StaffingData

__all__ = ["StaffingData"]
