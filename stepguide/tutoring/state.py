#!/usr/bin/env python3
"""
State for the step-by-step tutorial session.
Tracks the problem, the current step and its hints, and the conversation
identity threaded through every step request.
"""

import dataclasses
from dataclasses import dataclass
from typing import Optional
from enum import Enum

from ..config import DEFAULT_MAX_STEPS


class TutorialMode(Enum):
    """Kind of content requested from the tutorial service"""
    GENERATE = 'generate'                 # Full step generation
    STUCK = 'stuck'                       # Hint for the current step
    INSTRUCTION_HINT = 'instructionHint'  # Clarified instructions for the current step

    @classmethod
    def parse(cls, mode) -> 'TutorialMode':
        """Accept a TutorialMode or its wire value"""
        if isinstance(mode, cls):
            return mode
        try:
            return cls(mode)
        except ValueError:
            raise ValueError(f"Unknown tutorial mode: {mode!r}")


class TargetField(Enum):
    """State field a fetch streams into"""
    STEP = 'step'
    STEP_HINT = 'step_hint'
    STEP_INSTRUCTION_HINT = 'step_instruction_hint'


@dataclass(frozen=True)
class FetchTag:
    """Identifies one logical fetch. Chunks are applied only while it is expected."""
    seq: int
    target: TargetField
    step_index: int
    mode: TutorialMode = TutorialMode.GENERATE


@dataclass
class TutorialState:
    """Current state of the tutorial session"""
    problem: str = ''                         # Empty means no active session
    conversation_id: Optional[str] = None
    latest_response_id: Optional[str] = None

    step_index: int = 1
    max_steps: int = DEFAULT_MAX_STEPS

    # Streamed content
    step: str = ''
    step_hint: str = ''
    step_instruction_hint: str = ''

    is_last_step: bool = False
    draft: str = ''                           # Intake text not yet submitted

    def is_active(self) -> bool:
        """A session is active once a problem has been submitted"""
        return bool(self.problem)

    def has_step(self) -> bool:
        """Check if step content has started arriving"""
        return bool(self.step)

    def get_field(self, target: TargetField) -> str:
        return getattr(self, target.value)

    def snapshot(self) -> 'TutorialState':
        """Independent copy for observers"""
        return dataclasses.replace(self)
