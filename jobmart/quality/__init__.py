"""Quality module - Data validation and quality gates."""

from .validators import (
    StagingValidator, WarehouseValidator,
    ValidationConfig, ValidationResult, IntegrityResult
)
from .gates import QualityGate, GateResult, ValidationHardFailError

__all__ = [
    'StagingValidator', 'WarehouseValidator',
    'ValidationConfig', 'ValidationResult', 'IntegrityResult',
    'QualityGate', 'GateResult', 'ValidationHardFailError',
]
