"""
ETL package: staging, warehouse, marts, merge and the orchestrator.
"""

from .errors import (
    PipelineError, LoadError, SkillsParseError, MergeError, PipelineStepError
)
from .merge import MergeSpec, MergeResult, merge_upsert
from .pipeline import (
    PIPELINE_STEPS, WAREHOUSE_STEP_NAMES, MART_STEP_NAMES,
    Step, PipelineSettings, PipelineContext, RunReport, StepReport,
    run_pipeline, select_steps, validate_steps
)

__all__ = [
    'PipelineError',
    'LoadError',
    'SkillsParseError',
    'MergeError',
    'PipelineStepError',
    'MergeSpec',
    'MergeResult',
    'merge_upsert',
    'PIPELINE_STEPS',
    'WAREHOUSE_STEP_NAMES',
    'MART_STEP_NAMES',
    'Step',
    'PipelineSettings',
    'PipelineContext',
    'RunReport',
    'StepReport',
    'run_pipeline',
    'select_steps',
    'validate_steps',
]
