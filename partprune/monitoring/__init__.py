"""
Monitoring components for partprune.

Prometheus metrics recorded while retention runs execute.
"""

from .retention_metrics import RetentionMetrics

__all__ = ['RetentionMetrics']
