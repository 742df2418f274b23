"""Per-link and end-to-end packet accounting.

The accountant observes interface trace events only; it never reads the
beam-steering state.
"""

from hapnet.diagnostics.accountant import FlowCounters, FlowKey, LinkAccountant
from hapnet.diagnostics.flow_monitor import EndToEndFlowMonitor
from hapnet.diagnostics.identity import EndpointRegistry

__all__ = [
    # identity.py
    "EndpointRegistry",
    # accountant.py
    "FlowKey",
    "FlowCounters",
    "LinkAccountant",
    # flow_monitor.py
    "EndToEndFlowMonitor",
]
