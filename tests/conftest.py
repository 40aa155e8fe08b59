#!/usr/bin/env python3
"""
Shared fixtures for the stepguide test suite.
"""

import itertools
from contextlib import contextmanager

import pytest
from httpx_sse import ServerSentEvent

from stepguide.tutoring import TutorialSession


def message(data):
    """Unnamed stream event carrying a text fragment"""
    return ServerSentEvent(data=data)


def response_id(value):
    return ServerSentEvent(event='responseId', data=value)


DONE = ServerSentEvent(event='done')


class FakeTransport:
    """
    Stream transport playing back one scripted list of events per request.

    Callables in a script are invoked instead of yielded, which lets a test
    act (or raise) in the middle of a stream.
    """

    def __init__(self, *scripts):
        self.scripts = list(scripts)
        self.requests = []

    def add(self, *events):
        self.scripts.append(list(events))

    @contextmanager
    def open(self, params):
        self.requests.append(params)
        script = self.scripts.pop(0) if self.scripts else [DONE]
        yield ScriptedEventSource(script)


class ScriptedEventSource:
    """Stands in for an httpx_sse event source with no HTTP response behind it"""

    response = None

    def __init__(self, script):
        self.script = script

    def iter_sse(self):
        for item in self.script:
            if callable(item):
                item()
                continue
            yield item


def id_sequence(prefix='conv'):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def session(transport):
    return TutorialSession(transport, id_provider=id_sequence(), max_steps=5)
