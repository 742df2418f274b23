"""Reporting functions for link diagnostics and end-to-end flows.

This module contains pure functions that turn collected counters into
rows, text tables and DataFrames. No simulation dependencies.
"""

from hapnet.metrics.report import (
    EndToEndFlowStats,
    FlowReportRow,
    build_flow_rows,
    flow_rows_to_frame,
    format_end_to_end_table,
    format_flow_table,
)

__all__ = [
    "FlowReportRow",
    "build_flow_rows",
    "format_flow_table",
    "flow_rows_to_frame",
    "EndToEndFlowStats",
    "format_end_to_end_table",
]
