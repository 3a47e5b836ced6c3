"""
Tests for IntervalDriver, RewardsLedger and RewardsScheduler.
"""

import json
from unittest.mock import Mock

import pytest

from lprewards.driver import IntervalDriver
from lprewards.exceptions import UpstreamUnavailable
from lprewards.ledger import RewardsLedger
from lprewards.models import Position, Snapshot, WrapperHolderBalance
from lprewards.scheduler import RewardsScheduler

from tests.conftest import HOLDER_1, HOLDER_2, OWNER_A, OWNER_B, POOL, WRAPPER


class FakeLoader:
    """Returns a fixed snapshot per block, or raises for blocks listed in failing."""

    def __init__(self, snapshot, failing=()):
        self.snapshot = snapshot
        self.failing = set(failing)
        self.blocks = []

    def load(self, pool_address, block_number):
        self.blocks.append(block_number)
        if block_number in self.failing:
            raise UpstreamUnavailable(f"subgraph down at {block_number}")
        return self.snapshot


def _driver(loader, **kwargs):
    return IntervalDriver(loader, POOL, WRAPPER, scale=10**12, **kwargs)


class TestIntervalDriver:
    def test_steps_through_half_open_range(self, scenario_snapshot):
        loader = FakeLoader(scenario_snapshot)
        _driver(loader).run(100, 130, 10, 9)
        assert loader.blocks == [100, 110, 120]

    def test_accumulates_each_interval(self, scenario_snapshot):
        total = _driver(FakeLoader(scenario_snapshot)).run(100, 130, 10, 9)
        assert total.totals == {OWNER_A: 9, OWNER_B: 9, HOLDER_1: 3, HOLDER_2: 3}

    def test_range_end_not_aligned_to_step(self, scenario_snapshot):
        loader = FakeLoader(scenario_snapshot)
        _driver(loader).run(100, 125, 10, 9)
        assert loader.blocks == [100, 110, 120]

    def test_empty_range(self, scenario_snapshot):
        loader = FakeLoader(scenario_snapshot)
        total = _driver(loader).run(100, 100, 10, 9)
        assert loader.blocks == []
        assert len(total) == 0

    def test_each_run_starts_fresh(self, scenario_snapshot):
        driver = _driver(FakeLoader(scenario_snapshot))
        first = driver.run(100, 110, 10, 9)
        second = driver.run(100, 110, 10, 9)
        assert first is not second
        assert second.get(OWNER_A) == 3

    def test_summary(self, scenario_snapshot):
        driver = _driver(FakeLoader(scenario_snapshot))
        driver.run(0, 20, 10, 9)
        summary = driver.last_summary
        assert summary.intervals_processed == 2
        assert summary.total_credited == 16
        assert summary.total_truncation_loss == 2
        assert summary.total_unclaimed == 0

    def test_failed_interval_aborts_pass_by_default(self, scenario_snapshot):
        loader = FakeLoader(scenario_snapshot, failing={110})
        with pytest.raises(UpstreamUnavailable):
            _driver(loader, skip_failed_intervals=False).run(100, 130, 10, 9)
        assert loader.blocks == [100, 110]

    def test_failed_interval_can_be_skipped(self, scenario_snapshot):
        loader = FakeLoader(scenario_snapshot, failing={110})
        driver = _driver(loader, skip_failed_intervals=True)
        total = driver.run(100, 130, 10, 9)

        assert loader.blocks == [100, 110, 120]
        assert total.get(OWNER_A) == 6
        assert driver.last_summary.intervals_skipped == 1

    def test_wrapper_without_holders_is_unclaimed(self):
        snapshot = Snapshot(
            block_number=0,
            tick=0,
            positions=[Position("1", OWNER_A, 1), Position("2", WRAPPER, 1)],
            holders=[],
            wrapper_total_supply=0,
        )
        driver = _driver(FakeLoader(snapshot))
        total = driver.run(0, 10, 10, 10)

        assert total.totals == {OWNER_A: 5}
        assert total.unclaimed == 5
        assert driver.last_summary.total_unclaimed == 5

    def test_holder_balances_above_supply_fail_the_interval(self):
        snapshot = Snapshot(
            block_number=0,
            tick=0,
            positions=[Position("1", OWNER_A, 1), Position("2", WRAPPER, 1)],
            holders=[WrapperHolderBalance(HOLDER_1, 40), WrapperHolderBalance(HOLDER_2, 40)],
            wrapper_total_supply=50,
        )

        with pytest.raises(UpstreamUnavailable):
            _driver(FakeLoader(snapshot)).run(0, 10, 10, 10)

        driver = _driver(FakeLoader(snapshot), skip_failed_intervals=True)
        total = driver.run(0, 10, 10, 10)
        assert len(total) == 0
        assert driver.last_summary.intervals_skipped == 1

    @pytest.mark.parametrize("step,budget", [(0, 1), (-5, 1), (10, -1)])
    def test_invalid_arguments(self, scenario_snapshot, step, budget):
        with pytest.raises(ValueError):
            _driver(FakeLoader(scenario_snapshot)).run(0, 10, step, budget)


class TestRewardsLedger:
    def test_records_are_exact_decimal_strings(self, scenario_snapshot):
        total = _driver(FakeLoader(scenario_snapshot)).run(0, 10, 10, 3 * 10**30)
        ledger = RewardsLedger()
        ledger.publish(total, to_block=10)

        record = ledger.user(OWNER_A)
        assert record == {"id": OWNER_A, "deposits": "0", "rewards": str(10**30)}
        assert "e" not in record["rewards"]

    def test_users_lists_every_address(self, scenario_snapshot):
        total = _driver(FakeLoader(scenario_snapshot)).run(0, 10, 10, 9)
        ledger = RewardsLedger()
        ledger.publish(total)

        assert {r["id"] for r in ledger.users()} == {OWNER_A, OWNER_B, HOLDER_1, HOLDER_2}

    def test_lookup_is_case_insensitive(self, scenario_snapshot):
        total = _driver(FakeLoader(scenario_snapshot)).run(0, 10, 10, 9)
        ledger = RewardsLedger()
        ledger.publish(total)

        assert ledger.user(HOLDER_1.upper().replace("0X", "0x"))["rewards"] == "1"
        assert ledger.user("0x00000000000000000000000000000000000000ee") is None

    @pytest.mark.parametrize("padding", [" {} ", "\t{}\n"])
    def test_lookup_ignores_surrounding_whitespace(self, scenario_snapshot, padding):
        total = _driver(FakeLoader(scenario_snapshot)).run(0, 10, 10, 9)
        ledger = RewardsLedger()
        ledger.publish(total)

        address = padding.format(OWNER_A.upper().replace("0X", "0x"))
        assert ledger.user(address)["id"] == OWNER_A

    @pytest.mark.parametrize("address", ["", "   ", None])
    def test_blank_lookup_returns_none(self, scenario_snapshot, address):
        ledger = RewardsLedger()
        ledger.publish(_driver(FakeLoader(scenario_snapshot)).run(0, 10, 10, 9))
        assert ledger.user(address) is None

    def test_export_writes_published_records(self, scenario_snapshot, tmp_path):
        ledger = RewardsLedger()
        ledger.publish(_driver(FakeLoader(scenario_snapshot)).run(0, 10, 10, 9), to_block=10)
        path = tmp_path / "rewards.json"

        ledger.export(str(path))

        payload = json.loads(path.read_text())
        assert payload["block"] == 10
        assert payload["users"] == ledger.users()
        assert list(tmp_path.iterdir()) == [path]

    def test_export_replaces_previous_file(self, scenario_snapshot, tmp_path):
        driver = _driver(FakeLoader(scenario_snapshot))
        ledger = RewardsLedger()
        path = tmp_path / "rewards.json"

        ledger.publish(driver.run(0, 30, 10, 9), to_block=30)
        ledger.export(str(path))
        ledger.publish(driver.run(0, 10, 10, 9), to_block=10)
        ledger.export(str(path))

        payload = json.loads(path.read_text())
        assert payload["block"] == 10
        assert {r["id"]: r["rewards"] for r in payload["users"]}[OWNER_A] == "3"

    def test_publish_replaces_previous_pass(self, scenario_snapshot):
        driver = _driver(FakeLoader(scenario_snapshot))
        ledger = RewardsLedger()
        ledger.publish(driver.run(0, 30, 10, 9))
        ledger.publish(driver.run(0, 10, 10, 9))
        assert ledger.user(OWNER_A)["rewards"] == "3"


class TestRewardsScheduler:
    def test_range_follows_chain_head(self, scenario_snapshot):
        loader = FakeLoader(scenario_snapshot)
        chain_head = Mock()
        chain_head.get_latest_block.side_effect = [1001, 2001]
        scheduler = RewardsScheduler(
            _driver(loader), chain_head, lookback_blocks=100, step=50, budget_per_step=9
        )

        scheduler.recalculate()
        assert loader.blocks == [900, 950]

        loader.blocks.clear()
        scheduler.recalculate()
        assert loader.blocks == [1900, 1950]
        assert scheduler.ledger.published_at_block == 2000

    def test_failed_pass_keeps_previous_totals(self, scenario_snapshot):
        loader = FakeLoader(scenario_snapshot)
        chain_head = Mock()
        chain_head.get_latest_block.side_effect = [101, UpstreamUnavailable("rpc down")]
        sleep = Mock()
        scheduler = RewardsScheduler(
            _driver(loader), chain_head, lookback_blocks=10, step=10, budget_per_step=9
        )

        scheduler.run_forever(interval_seconds=60, iterations=2, sleep=sleep)

        assert scheduler.ledger.user(OWNER_A)["rewards"] == "3"
        sleep.assert_called_once_with(60)

    def test_on_pass_callback(self, scenario_snapshot):
        chain_head = Mock()
        chain_head.get_latest_block.return_value = 101
        seen = []
        scheduler = RewardsScheduler(
            _driver(FakeLoader(scenario_snapshot)), chain_head, lookback_blocks=10, step=10, budget_per_step=9
        )

        scheduler.run_forever(iterations=1, on_pass=seen.append, sleep=Mock())

        assert len(seen) == 1
        assert seen[0].get(HOLDER_2) == 1
