"""Monitoring module - per-step ETL metrics."""

from .etl_metrics import ETLMetrics, ETLMetricsLogger

__all__ = ['ETLMetrics', 'ETLMetricsLogger']
