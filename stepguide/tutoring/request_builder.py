#!/usr/bin/env python3
"""
Builds the query parameters for one step request.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .state import TutorialMode, TutorialState


@dataclass(frozen=True)
class StepRequest:
    """Parameters of one step request, all as strings"""
    step: str
    mode: str
    conversation_id: str = ''
    previous_response_id: str = ''
    current_code: str = ''
    problem: str = ''

    def to_params(self) -> Dict[str, str]:
        """Query parameters in the form the tutorial service expects"""
        return {
            'step': self.step,
            'mode': self.mode,
            'conversationId': self.conversation_id,
            'previousResponseId': self.previous_response_id,
            'currentCode': self.current_code,
            'problem': self.problem,
        }


def build_step_request(
    step_index: int,
    mode,
    state: TutorialState,
    current_code: Optional[str] = None,
) -> StepRequest:
    """
    Compose the request for one step from the current session state.

    Args:
        step_index: Step the fetch is for
        mode: TutorialMode or its wire value
        state: Session state to read identities and the problem from
        current_code: Content of the active file, if any

    Returns:
        StepRequest with every missing value replaced by ''
    """
    return StepRequest(
        step=str(step_index),
        mode=TutorialMode.parse(mode).value,
        conversation_id=state.conversation_id or '',
        previous_response_id=state.latest_response_id or '',
        current_code=current_code or '',
        problem=state.problem or '',
    )
