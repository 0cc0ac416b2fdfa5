"""Quality gates: turn validation results into go / warn / stop."""

import logging
from dataclasses import dataclass

from .validators import IntegrityResult, ValidationConfig, ValidationResult

logger = logging.getLogger(__name__)


class ValidationHardFailError(Exception):
    """The batch or the warehouse is not fit to continue."""
    pass


@dataclass
class GateResult:
    status: str  # 'success' or 'warning'
    valid_rate: float
    message: str


class QualityGate:
    """Thresholds come from ValidationConfig (DQ_* settings)."""

    def __init__(self, config: ValidationConfig = None):
        self.config = config or ValidationConfig()

    def _hard_failure(self, result: ValidationResult):
        cfg = self.config
        if result.total_rows == 0:
            return 'No rows in source'
        if result.total_rows < cfg.min_row_count:
            return f'{result.total_rows} rows is below minimum {cfg.min_row_count}'
        if result.duplicate_rate > cfg.hard_fail_duplicate_rate:
            return (f'Duplicate rate {result.duplicate_rate:.1%} exceeds '
                    f'{cfg.hard_fail_duplicate_rate:.0%}')
        if result.valid_rate < cfg.warning_threshold:
            return f'Valid rate {result.valid_rate:.1%} below {cfg.warning_threshold:.0%}'
        return None

    def evaluate(self, result: ValidationResult) -> GateResult:
        """Gate a staging batch. Raises ValidationHardFailError on a hard failure."""
        failure = self._hard_failure(result)
        if failure:
            logger.error(f'Staging gate failed: {failure}')
            raise ValidationHardFailError(failure)

        rate = result.valid_rate
        if rate < self.config.success_threshold:
            logger.warning(
                f'Staging gate: {rate:.1%} valid ({result.total_rows - result.valid_rows} rows '
                f'without title or posted date)'
            )
            return GateResult('warning', rate, f'Warning: {rate:.1%} valid')

        logger.info(f'Staging gate passed: {rate:.1%} valid')
        return GateResult('success', rate, f'Passed: {rate:.1%} valid')

    def evaluate_integrity(self, result: IntegrityResult) -> GateResult:
        """Any orphaned foreign key is a hard fail."""
        if result.total_orphans:
            detail = ', '.join(f"{k}={v}" for k, v in result.orphans.items() if v)
            logger.error(f'Warehouse integrity failed: {detail}')
            raise ValidationHardFailError(f'Orphaned foreign keys: {detail}')

        logger.info('Warehouse integrity passed')
        return GateResult('success', 1.0, 'Passed: no orphaned keys')
