from section_cdc.processing.handler import EventTypeSectionHandler, HandlerState
from section_cdc.processing.reclassifier import reclassify, split_runs
from section_cdc.processing.recovery import (
    IgnorePolicy,
    MaxFailuresPolicy,
    PropagatePolicy,
    RecoveryContext,
    RecoveryPolicy,
    RecoveryPolicyFactory,
)
from section_cdc.processing.worker import Worker

__all__ = [
    "EventTypeSectionHandler",
    "HandlerState",
    "IgnorePolicy",
    "MaxFailuresPolicy",
    "PropagatePolicy",
    "RecoveryContext",
    "RecoveryPolicy",
    "RecoveryPolicyFactory",
    "Worker",
    "reclassify",
    "split_runs",
]
