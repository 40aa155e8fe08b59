#!/usr/bin/env python3
"""
Test suite for the subscription gate.
"""

import httpx
from unittest.mock import Mock

from stepguide.entitlement import (
    EntitlementGate,
    fetch_user_tier,
    PLUS_TIER,
    FREE_TIER,
    SHOW_PLUS_DIALOG,
)


class TestFetchUserTier:
    """Tests for the tier lookup"""

    def test_reads_tier(self):
        def handler(request):
            assert request.url.path == '/api/subscription/tier'
            return httpx.Response(200, json={'tier': 'PLUS'})

        client = httpx.Client(base_url='http://tutor.test', transport=httpx.MockTransport(handler))
        assert fetch_user_tier(client) == {'tier': 'PLUS'}

    def test_missing_tier_is_free(self):
        client = httpx.Client(
            base_url='http://tutor.test',
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )
        assert fetch_user_tier(client) == {'tier': FREE_TIER}


class TestEntitlementGate:
    """Tests for gating the tutorial session"""

    def test_default_tier_is_free(self):
        gate = EntitlementGate(tier_lookup=Mock(return_value={'tier': PLUS_TIER}))
        assert gate.tier == FREE_TIER
        assert gate.is_entitled == False

    def test_plus_is_available(self):
        gate = EntitlementGate(tier_lookup=lambda: {'tier': PLUS_TIER})
        assert gate.status() == 'available'
        assert gate.is_entitled == True

    def test_free_is_locked(self):
        gate = EntitlementGate(tier_lookup=lambda: {'tier': FREE_TIER})
        assert gate.status() == 'locked'

    def test_lookup_happens_once(self):
        """Test the tier is checked a single time"""
        lookup = Mock(return_value={'tier': PLUS_TIER})
        gate = EntitlementGate(tier_lookup=lookup)

        gate.check()
        gate.check()
        gate.status()

        assert lookup.call_count == 1

    def test_disabled_feature_skips_lookup(self):
        lookup = Mock(return_value={'tier': PLUS_TIER})
        gate = EntitlementGate(tier_lookup=lookup, enabled=False)

        assert gate.status() == 'disabled'
        lookup.assert_not_called()

    def test_lookup_failure_stays_free(self):
        """Test a failed lookup leaves the gate locked"""
        lookup = Mock(side_effect=httpx.ConnectError("refused"))
        gate = EntitlementGate(tier_lookup=lookup)

        assert gate.check() == FREE_TIER
        assert gate.status() == 'locked'

    def test_request_upgrade_dispatches_event(self):
        dispatch = Mock()
        gate = EntitlementGate(tier_lookup=lambda: {'tier': FREE_TIER}, dispatch=dispatch)

        gate.request_upgrade()

        dispatch.assert_called_once_with(SHOW_PLUS_DIALOG, {})

    def test_request_upgrade_without_dispatch(self):
        gate = EntitlementGate(tier_lookup=lambda: {'tier': FREE_TIER})
        gate.request_upgrade()
