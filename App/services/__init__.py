"""
Service layer for business logic.

The service layer sits between HTTP request handling (views) and the
framework-agnostic optimisation library (staffing_lp).
"""

from .optimization_service import OptimizationService
from .data_transformation_service import DataTransformationService, PayloadError

__all__ = [
    'OptimizationService',
    'DataTransformationService',
    'PayloadError',
]
