"""Tests for the config -> kernel bridges."""

import pytest

from escrow_config import parse_config
from escrow_config.bridges import open_ledger
from escrow_kernel.domain.custody import InMemoryCustody
from escrow_kernel.exceptions import PlatformFeeOutOfRangeError
from tests.support import CLIENT, OWNER


class TestOpenLedger:
    def test_fee_settings_applied(self, session, clock):
        config = parse_config({"default_platform_fee_pct": 2, "max_platform_fee_pct": 4})
        ledger = open_ledger(session, InMemoryCustody(), OWNER, config, clock=clock)

        assert ledger.get_platform_fee() == 2
        assert ledger.max_platform_fee_pct == 4
        with pytest.raises(PlatformFeeOutOfRangeError):
            ledger.update_platform_fee(OWNER, 5)

    def test_subscribers_wired(self, session, clock, event_log, deadline):
        ledger = open_ledger(
            session,
            InMemoryCustody(),
            OWNER,
            parse_config({}),
            clock=clock,
            subscribers=[event_log],
        )
        ledger.create_project(CLIENT, "Logo", "Vector logo", deadline, 100)
        assert len(event_log.events) == 1
