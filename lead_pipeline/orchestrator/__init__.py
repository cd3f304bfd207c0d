"""Workflow orchestration for intake, conversion, and record activity."""

from .activity import RecordActivityService
from .conversion import ConversionError, ConversionResult, LeadConverter
from .intake import LeadIntakeService

__all__ = [
    "ConversionError",
    "ConversionResult",
    "LeadConverter",
    "LeadIntakeService",
    "RecordActivityService",
]
