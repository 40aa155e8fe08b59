#!/usr/bin/env python3
"""
TutorialSession - the state machine behind a step-by-step tutorial.

Transitions (start, restart, stuck, next, hints, reset) are the only way the
state changes. Each fetch gets a FetchTag; the session keeps the tag it
currently expects for every target field and drops anything streamed under
an older one.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from .state import TutorialMode, TargetField, FetchTag, TutorialState
from .ids import IdentityProvider, new_id
from .request_builder import StepRequest, build_step_request
from .stream import StreamConsumer, StepFetch, EventStreamTransport
from ..config import (
    get_api_url,
    get_api_token,
    get_connect_timeout,
    get_max_steps,
)

logger = logging.getLogger(__name__)

Observer = Callable[[TutorialState], None]
PendingFetch = Optional[Tuple[FetchTag, StepRequest]]
Update = Tuple[int, TutorialState]


class TutorialSession:
    """Owns the tutorial state and drives step fetches"""

    def __init__(
        self,
        transport,
        workspace=None,
        id_provider: IdentityProvider = new_id,
        max_steps: int = None,
        background: bool = False,
    ):
        self.workspace = workspace
        self.id_provider = id_provider
        self.transport = transport
        self.consumer = StreamConsumer(self, transport, background=background)

        if max_steps is None:
            max_steps = get_max_steps()
        self._state = TutorialState(max_steps=max_steps)
        self._lock = threading.RLock()
        self._delivery_lock = threading.RLock()
        self._seq = 0
        self._version = 0
        self._delivered = 0
        self._expected: Dict[TargetField, FetchTag] = {}
        self._observers: List[Observer] = []

    @classmethod
    def from_config(
        cls,
        api_url: str = None,
        workspace=None,
        background: bool = False,
        **kwargs,
    ) -> 'TutorialSession':
        """Create a session talking to the configured tutorial service"""
        transport = EventStreamTransport(
            (api_url or get_api_url()).rstrip('/'),
            token=get_api_token(),
            connect_timeout=get_connect_timeout(),
        )
        return cls(transport, workspace=workspace, background=background, **kwargs)

    def close(self):
        """Abandon open fetches and release the transport"""
        self.consumer.abandon_all()
        self.transport.close()

    @property
    def state(self) -> TutorialState:
        """Snapshot of the current state"""
        with self._lock:
            return self._state.snapshot()

    def is_streaming(self, target: TargetField = None) -> bool:
        """Check if a fetch is still expected to deliver content"""
        with self._lock:
            if target is None:
                return bool(self._expected)
            return target in self._expected

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer called with a snapshot after every update"""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe():
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def set_draft(self, text: str):
        with self._lock:
            self._state.draft = text
            update = self._publish()
        self._notify(update)

    def submit_problem(self, text: str = None, stuck: bool = False) -> Optional[StepFetch]:
        """
        Submit the intake form.

        Stores the problem and, when it is not blank, starts the tutorial
        (or asks for help right away when stuck=True).
        """
        with self._lock:
            if text is None:
                text = self._state.draft
            self._state.problem = text
            update = self._publish()
        self._notify(update)

        if not text.strip():
            return None
        return self.stuck() if stuck else self.start()

    def start(self) -> Optional[StepFetch]:
        """Begin a new conversation at step 1"""
        with self._lock:
            self._new_conversation()
            pending = self._begin_fetch(1, TutorialMode.GENERATE, TargetField.STEP)
            update = self._publish()
        self._notify(update)
        return self._launch(pending, abandon_all=True)

    def restart(self) -> Optional[StepFetch]:
        """Start the same problem over in a new conversation"""
        with self._lock:
            self._new_conversation()
            self._state.is_last_step = False
            pending = self._begin_fetch(1, TutorialMode.GENERATE, TargetField.STEP)
            update = self._publish()
        self._notify(update)
        return self._launch(pending, abandon_all=True)

    def stuck(self) -> Optional[StepFetch]:
        """Start a new conversation with a hint as the first step"""
        with self._lock:
            self._new_conversation()
            pending = self._begin_fetch(1, TutorialMode.STUCK, TargetField.STEP)
            update = self._publish()
        self._notify(update)
        return self._launch(pending, abandon_all=True)

    def next(self) -> Optional[StepFetch]:
        """
        Advance to the next step.

        At the last allowed step this only marks the tutorial as finished.
        """
        with self._lock:
            state = self._state
            if not state.problem or state.is_last_step:
                return None

            if state.step_index >= state.max_steps:
                state.is_last_step = True
                update = self._publish()
                pending = None
                advanced = False
            else:
                self._expected.clear()
                state.step_hint = ''
                state.step_instruction_hint = ''
                pending = self._begin_fetch(state.step_index + 1, TutorialMode.GENERATE, TargetField.STEP)
                update = self._publish()
                advanced = True

        self._notify(update)
        if not advanced:
            return None
        return self._launch(pending, abandon_all=True)

    def get_hint(self) -> Optional[StepFetch]:
        """Ask for a hint on the current step"""
        return self._fetch_current(TutorialMode.STUCK, TargetField.STEP_HINT)

    def get_instruction_hint(self) -> Optional[StepFetch]:
        """Ask for clarified instructions on the current step"""
        return self._fetch_current(TutorialMode.INSTRUCTION_HINT, TargetField.STEP_INSTRUCTION_HINT)

    def reset(self):
        """Drop the current problem and return to the intake form"""
        with self._lock:
            self._new_conversation()
            state = self._state
            state.is_last_step = False
            state.problem = ''
            state.draft = ''
            state.step = ''
            state.step_hint = ''
            state.step_instruction_hint = ''
            update = self._publish()
        self._notify(update)
        self.consumer.abandon_all()

    def cancel(self):
        """Stop every in-flight fetch, keeping whatever content already arrived"""
        with self._lock:
            self._expected.clear()
            update = self._publish()
        self.consumer.abandon_all()
        self._notify(update)

    # ------------------------------------------------------------------
    # Called by the stream consumer
    # ------------------------------------------------------------------

    def apply_chunk(self, tag: FetchTag, content: str, finished: bool = False) -> bool:
        """Replace the target field with the accumulated content of a fetch"""
        changes = {
            'step_index': tag.step_index,
            tag.target.value: content,
        }
        if finished:
            changes['is_last_step'] = True
        return self._apply(tag, changes)

    def apply_response_id(self, tag: FetchTag, response_id: str) -> bool:
        return self._apply(tag, {'latest_response_id': response_id})

    def finish_fetch(self, tag: FetchTag):
        """Forget a fetch that has finished"""
        with self._lock:
            if self._expected.get(tag.target) == tag:
                del self._expected[tag.target]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fetch_current(self, mode: TutorialMode, target: TargetField) -> Optional[StepFetch]:
        with self._lock:
            if not self._state.has_step():
                return None
            pending = self._begin_fetch(self._state.step_index, mode, target)
            update = self._publish()
        self._notify(update)
        return self._launch(pending)

    def _new_conversation(self):
        """Fresh conversation identity at step 1. Caller holds the lock."""
        self._expected.clear()
        self._state.conversation_id = self.id_provider()
        self._state.latest_response_id = None
        self._state.step_index = 1

    def _begin_fetch(self, step_index: int, mode: TutorialMode, target: TargetField) -> PendingFetch:
        """
        Reset the target field and register a new expected fetch.
        Caller holds the lock.

        Returns None when there is no problem to ask about.
        """
        state = self._state
        if not state.problem:
            logger.debug("Skipping %s fetch: no active problem", mode.value)
            return None

        self._seq += 1
        tag = FetchTag(seq=self._seq, target=target, step_index=step_index, mode=mode)
        self._expected[target] = tag
        state.step_index = step_index
        setattr(state, target.value, '')

        current_code = self.workspace.content if self.workspace is not None else ''
        request = build_step_request(step_index, mode, state, current_code)
        return tag, request

    def _launch(self, pending: PendingFetch, abandon_all: bool = False) -> Optional[StepFetch]:
        if abandon_all:
            self.consumer.abandon_all()
        if pending is None:
            return None
        tag, request = pending
        logger.debug("Fetching step %d (%s -> %s)", tag.step_index, tag.mode.value, tag.target.value)
        return self.consumer.fetch(tag, request)

    def _apply(self, tag: FetchTag, changes: Dict) -> bool:
        with self._lock:
            if self._expected.get(tag.target) != tag:
                logger.debug("Discarding stale update from fetch %d (%s)", tag.seq, tag.target.value)
                return False
            for name, value in changes.items():
                setattr(self._state, name, value)
            update = self._publish()
        self._notify(update)
        return True

    def _publish(self) -> Update:
        """Stamp the current state with the next version. Caller holds the lock."""
        self._version += 1
        return self._version, self._state.snapshot()

    def _notify(self, update: Update):
        """
        Deliver a snapshot to observers in version order.

        A snapshot older than one already delivered is dropped, so a worker
        thread that loses the race never shows superseded content.
        """
        version, snapshot = update
        with self._delivery_lock:
            if version <= self._delivered:
                logger.debug("Dropping out-of-order notification %d", version)
                return
            self._delivered = version
            with self._lock:
                observers = list(self._observers)
            for observer in observers:
                # An observer may trigger a newer update on this thread
                if self._delivered != version:
                    break
                observer(snapshot)
