"""Consent-gated access to off-chain student records."""

from .student_data import (
    StudentDataGateway,
    StudentDataResult,
    StudentNotFound,
    Unauthorized,
)

__all__ = [
    "StudentDataGateway",
    "StudentDataResult",
    "StudentNotFound",
    "Unauthorized",
]
