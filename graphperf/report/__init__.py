"""
Report Layer

RESPONSIBILITY: Turn session buffers into statistics, verdicts and text
ALLOWED INPUTS: AggregationInput (read-only views of the buffers)
OUTPUTS: PerformanceReport, report text

WHAT THIS LAYER MUST NOT DO:
============================
- Mutate any buffer it reads
- Emit NaN or undefined values (absent data is 0.00)
"""

from .aggregator import AggregationInput, ReportAggregator, ReportConfig
from .formatter import fmt2, format_activity_line, format_report

__all__ = [
    'AggregationInput',
    'ReportAggregator',
    'ReportConfig',
    'fmt2',
    'format_activity_line',
    'format_report',
]
