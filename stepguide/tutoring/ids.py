#!/usr/bin/env python3
"""
Conversation identity generation.
"""

import uuid
from typing import Callable

IdentityProvider = Callable[[], str]


def new_id() -> str:
    """Return a new globally unique, opaque identifier"""
    return str(uuid.uuid4())
