#!/usr/bin/env python3
"""
Stream consumer for step requests.

Opens one server-sent event stream per fetch, accumulates the streamed text
and hands every update back to the session tagged with the fetch it belongs
to. The session decides whether the update is still wanted.

Wire format (text/event-stream):
    data: <fragment>        unnamed event, text to append
    event: responseId       data is the service's response identity
    event: done             producer finished, close the stream
"""

import logging
import socket
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

import httpx
from httpx_sse import connect_sse, EventSource, ServerSentEvent

from .state import FetchTag, TargetField
from .request_builder import StepRequest

logger = logging.getLogger(__name__)

COMPLETION_SENTINEL = "Tutorial complete"
FALLBACK_MESSAGE = "Unable to load step instructions."

MESSAGE_EVENT = 'message'
RESPONSE_ID_EVENT = 'responseId'
DONE_EVENT = 'done'

DEFAULT_STREAM_PATH = '/api/tutorials/stream/'


class EventStreamTransport:
    """Opens step streams against the tutorial service over HTTP"""

    def __init__(
        self,
        base_url: str,
        stream_path: str = DEFAULT_STREAM_PATH,
        client: httpx.Client = None,
        token: str = None,
        connect_timeout: float = 10.0,
    ):
        self.stream_path = stream_path
        if client is None:
            headers = {'Authorization': f'Bearer {token}'} if token else {}
            # No read timeout: a hung stream simply never completes
            client = httpx.Client(
                base_url=base_url,
                headers=headers,
                timeout=httpx.Timeout(None, connect=connect_timeout),
                follow_redirects=True,
            )
        self.client = client

    @contextmanager
    def open(self, params: Dict[str, str]) -> Iterator[EventSource]:
        """
        Open a stream for one step request.

        Yields the event source; its response can be closed from another
        thread to abandon the stream. The response is closed when the context
        exits.

        Raises:
            httpx.HTTPStatusError: if the service answers with an error status
            httpx_sse.SSEError: if the response is not an event stream
        """
        with connect_sse(self.client, 'GET', self.stream_path, params=params) as event_source:
            event_source.response.raise_for_status()
            logger.debug("Opened step stream (step=%s, mode=%s)", params.get('step'), params.get('mode'))
            yield event_source

    def close(self):
        self.client.close()


class StepFetch:
    """
    One logical fetch: a single stream feeding a single target field.

    Once closed (done, error, or superseded) it never touches the session again.
    """

    def __init__(self, session, tag: FetchTag, request: StepRequest, transport):
        self.session = session
        self.tag = tag
        self.request = request
        self.transport = transport
        self.content = ''
        self.closed = False
        self.failed = False
        self.response: Optional[httpx.Response] = None
        self.thread: Optional[threading.Thread] = None

    @property
    def target(self) -> TargetField:
        return self.tag.target

    def run(self):
        """Pump the stream until it finishes, fails, or is abandoned"""
        try:
            with self.transport.open(self.request.to_params()) as event_source:
                self.response = event_source.response
                if self.closed:
                    return
                for event in event_source.iter_sse():
                    if self.closed:
                        break
                    self.dispatch(event)
                    if self.closed:
                        break
        except httpx.HTTPError as e:
            self.fail(e)
        except Exception:
            if not self.closed:
                raise
            # Closing the response under a blocked read can surface as any stream error
            logger.debug("Abandoned stream %d raised on close", self.tag.seq, exc_info=True)
        else:
            if not self.closed:
                self.fail("stream ended before done")
        finally:
            self.closed = True

    def dispatch(self, event: ServerSentEvent):
        """Route one server-sent event"""
        if event.event == MESSAGE_EVENT:
            self.on_message(event.data)
        elif event.event == RESPONSE_ID_EVENT:
            self.on_response_id(event.data)
        elif event.event == DONE_EVENT:
            self.on_done()
        else:
            logger.debug("Ignoring unknown stream event %r", event.event)

    def on_message(self, data: str):
        if self.closed:
            return
        self.content += data
        # Only the incoming fragment is checked, not the accumulated text
        finished = COMPLETION_SENTINEL in data
        self.session.apply_chunk(self.tag, self.content, finished=finished)

    def on_response_id(self, response_id: str):
        if self.closed:
            return
        self.session.apply_response_id(self.tag, response_id)

    def on_done(self):
        if self.closed:
            return
        self.closed = True
        self.session.finish_fetch(self.tag)
        logger.debug("Step stream done (fetch %d)", self.tag.seq)

    def fail(self, error):
        """Close the fetch and replace any partial content with the fallback"""
        if self.closed:
            return
        self.closed = True
        self.failed = True
        logger.warning("Step stream failed (step %d, %s): %s",
                       self.tag.step_index, self.tag.target.value, error)
        self.session.apply_chunk(self.tag, FALLBACK_MESSAGE)
        self.session.finish_fetch(self.tag)

    def close(self):
        """
        Abandon the fetch. Late events are dropped.

        Closes the HTTP response so a pump blocked on a silent stream wakes
        up and its connection is released.
        """
        if self.closed:
            return
        logger.debug("Abandoning fetch %d (%s)", self.tag.seq, self.tag.target.value)
        self.closed = True

        response = self.response
        if response is None:
            return
        network_stream = response.extensions.get('network_stream')
        sock = network_stream.get_extra_info('socket') if network_stream is not None else None
        if sock is not None:
            # close() alone does not interrupt a recv() blocked on another thread
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError as e:
                logger.debug("Socket already shut down: %s", e)
        response.close()

    def wait(self, timeout: float = None) -> bool:
        """Wait for a background fetch to finish. Returns False on timeout."""
        if self.thread is None:
            return True
        self.thread.join(timeout)
        return not self.thread.is_alive()


class StreamConsumer:
    """Owns the active fetch for each target field"""

    def __init__(self, session, transport, background: bool = False):
        self.session = session
        self.transport = transport
        self.background = background
        self._active: Dict[TargetField, StepFetch] = {}
        self._lock = threading.Lock()

    def fetch(self, tag: FetchTag, request: StepRequest) -> StepFetch:
        """
        Start streaming a step request.

        Any previous fetch for the same target field is abandoned first.
        """
        step_fetch = StepFetch(self.session, tag, request, self.transport)

        with self._lock:
            previous = self._active.get(tag.target)
            self._active[tag.target] = step_fetch
        if previous is not None:
            previous.close()

        if self.background:
            step_fetch.thread = threading.Thread(target=step_fetch.run)
            step_fetch.thread.daemon = True
            step_fetch.thread.start()
        else:
            step_fetch.run()

        return step_fetch

    def active(self, target: TargetField) -> Optional[StepFetch]:
        with self._lock:
            return self._active.get(target)

    def abandon_all(self):
        """Abandon every open fetch"""
        with self._lock:
            fetches = list(self._active.values())
            self._active.clear()
        for step_fetch in fetches:
            step_fetch.close()
