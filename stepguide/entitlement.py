#!/usr/bin/env python3
"""
Subscription gate for step-by-step tutorials.
Tutorials are available to Plus subscribers when the feature is enabled.
"""

import logging
from typing import Callable, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

PLUS_TIER = 'PLUS'
FREE_TIER = 'FREE'

TIER_PATH = '/api/subscription/tier'

# UI event raised when a free user asks about Plus
SHOW_PLUS_DIALOG = 'showPlusDialog'

Dispatch = Callable[[str, Dict], None]


def fetch_user_tier(client: httpx.Client, path: str = TIER_PATH) -> Dict[str, str]:
    """
    Look up the caller's subscription tier.

    Returns:
        Dict with a 'tier' key, e.g. {'tier': 'PLUS'}

    Raises:
        httpx.HTTPError: if the lookup fails
    """
    response = client.get(path)
    response.raise_for_status()
    data = response.json()
    return {'tier': str(data.get('tier', FREE_TIER))}


class EntitlementGate:
    """Decides whether the tutorial session is reachable at all"""

    def __init__(
        self,
        tier_lookup: Callable[[], Dict[str, str]],
        enabled: bool = True,
        dispatch: Optional[Dispatch] = None,
    ):
        self.tier_lookup = tier_lookup
        self.enabled = enabled
        self.dispatch = dispatch
        self.tier = FREE_TIER
        self._checked = False

    def check(self) -> str:
        """Look up the tier once. Later calls reuse the first answer."""
        if self._checked or not self.enabled:
            return self.tier
        self._checked = True
        try:
            self.tier = self.tier_lookup()['tier']
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Subscription lookup failed, treating as %s: %s", FREE_TIER, e)
            self.tier = FREE_TIER
        return self.tier

    @property
    def is_entitled(self) -> bool:
        return self.tier == PLUS_TIER

    def status(self) -> str:
        """'disabled', 'locked' or 'available'"""
        if not self.enabled:
            return 'disabled'
        self.check()
        return 'available' if self.is_entitled else 'locked'

    def request_upgrade(self):
        """Fire-and-forget notification asking the UI to show the Plus dialog"""
        if self.dispatch is not None:
            self.dispatch(SHOW_PLUS_DIALOG, {})
