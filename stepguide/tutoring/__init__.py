#!/usr/bin/env python3
"""
Step-by-step tutorial sessions.

A session streams one step of guidance at a time from the tutorial service.
Three kinds of content can be requested for a step:
- generate: the step itself
- stuck: a hint for the current step
- instructionHint: clarified instructions for the current step
"""

from .state import (
    TutorialMode,
    TargetField,
    FetchTag,
    TutorialState,
)
from .ids import new_id
from .request_builder import StepRequest, build_step_request
from .stream import (
    COMPLETION_SENTINEL,
    FALLBACK_MESSAGE,
    EventStreamTransport,
    StepFetch,
    StreamConsumer,
)
from .session import TutorialSession

__all__ = [
    'TutorialMode',
    'TargetField',
    'FetchTag',
    'TutorialState',
    'new_id',
    'StepRequest',
    'build_step_request',
    'COMPLETION_SENTINEL',
    'FALLBACK_MESSAGE',
    'EventStreamTransport',
    'StepFetch',
    'StreamConsumer',
    'TutorialSession',
]
