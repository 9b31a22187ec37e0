"""Tests for the maintenance cycle orchestrator."""

from datetime import timedelta
from typing import Dict, List, Tuple
from unittest.mock import MagicMock

import pytest

from restore_manager.errors import ProviderErrorKind, ProviderUnavailable
from restore_manager.models.checkpoint_models import EventType, Outcome
from restore_manager.notifications.base import Notifier
from restore_manager.providers.memory_provider import InMemoryProvider
from restore_manager.services.maintenance_service import MaintenanceService

from factories import NOW, interval_config, inventory_aged_days, make_checkpoint


class RecordingNotifier(Notifier):
    """Collects every notification."""

    name = "recording"

    def __init__(self):
        super().__init__()
        self.events: List[Tuple[EventType, Outcome, Dict[str, str]]] = []

    def _send(self, event, outcome, details):
        self.events.append((event, outcome, details))


@pytest.fixture
def notifier():
    return RecordingNotifier()


def make_service(config, provider, clock, notifier, log_path=None) -> MaintenanceService:
    return MaintenanceService(
        config=config,
        provider=provider,
        notifier=notifier,
        clock=clock,
        log_path=log_path,
    )


class TestRunCycle:
    """Tests for the Monitor cycle."""

    def test_bootstrap_creates_and_notifies(self, config, provider, clock, notifier):
        """Test an empty store gets its first checkpoint."""
        summary = make_service(config, provider, clock, notifier).run_cycle()

        assert summary.create_attempted == 1
        assert summary.create_succeeded == 1
        assert len(provider.checkpoint_ids) == 1
        assert notifier.events[0][0] == EventType.CREATE
        assert notifier.events[0][1] == Outcome.SUCCESS
        assert notifier.events[0][2]["id"] == "1"

    def test_prunes_oldest_to_minimum(self, config, clock, notifier):
        """Test scenario B executed end to end."""
        provider = InMemoryProvider(clock=clock, checkpoints=inventory_aged_days(range(0, 25)), creation_interval_minutes=0)

        summary = make_service(config, provider, clock, notifier).run_cycle()

        assert summary.delete_succeeded == 15
        assert summary.create_attempted == 0
        assert provider.checkpoint_ids == set(range(16, 26))

    def test_inventory_failure_aborts_without_notification(self, config, provider, clock, notifier):
        """Test ProviderUnavailable propagates and nothing is notified."""
        provider.unavailable = True

        with pytest.raises(ProviderUnavailable):
            make_service(config, provider, clock, notifier).run_cycle()

        assert notifier.events == []
        assert not any(call.startswith("create") for call in provider.calls)

    def test_create_failure_does_not_block_pruning(self, config, clock, notifier):
        """Test pruning still runs after a failed creation."""
        inventory = inventory_aged_days(range(2, 27))
        provider = InMemoryProvider(clock=clock, checkpoints=inventory, creation_interval_minutes=0)
        provider.create_error = ProviderErrorKind.PERMISSION_DENIED

        summary = make_service(config, provider, clock, notifier).run_cycle()

        assert summary.create_failed == 1
        assert summary.delete_succeeded == 15
        create_events = [e for e in notifier.events if e[0] == EventType.CREATE]
        assert create_events[0][1] == Outcome.FAILURE
        assert create_events[0][2]["error_kind"] == "permission_denied"

    def test_partial_delete_failure_isolated(self, clock, notifier):
        """Test deletion #3 of 5 failing leaves the other four attempted."""
        config = interval_config(minimum_count=5, maximum_count=9)
        provider = InMemoryProvider(clock=clock, checkpoints=inventory_aged_days(range(0, 10)), creation_interval_minutes=0)
        provider.delete_errors[3] = ProviderErrorKind.PERMISSION_DENIED

        summary = make_service(config, provider, clock, notifier).run_cycle()

        attempted = [call for call in provider.calls if call.startswith("delete_checkpoint")]
        assert attempted == [f"delete_checkpoint:{i}" for i in [1, 2, 3, 4, 5]]
        assert summary.delete_attempted == 5
        assert summary.delete_succeeded == 4
        assert summary.delete_failed == 1
        assert summary.failures[0].target == "3"
        assert provider.checkpoint_ids == {3, 6, 7, 8, 9, 10}
        delete_outcomes = [(e[2]["id"], e[1]) for e in notifier.events if e[0] == EventType.DELETE]
        assert ("3", Outcome.FAILURE) in delete_outcomes
        assert len(delete_outcomes) == 5

    def test_too_soon_is_not_retried(self, clock, notifier):
        """Test the subsystem refusing a creation is recorded once."""
        config = interval_config(min_interframe_minutes=0, creation_policy={"frequency": "interval", "interval_minutes": 60})
        provider = InMemoryProvider(
            clock=clock,
            checkpoints=[make_checkpoint(1, NOW - timedelta(hours=2))],
            creation_interval_minutes=0,
        )
        provider.create_error = ProviderErrorKind.TOO_SOON

        summary = make_service(config, provider, clock, notifier).run_cycle()

        assert summary.create_failed == 1
        assert summary.failures[0].error_kind == ProviderErrorKind.TOO_SOON
        assert len([c for c in provider.calls if c.startswith("create")]) == 1

    def test_frequency_floor_normalized_once(self, clock, notifier):
        """Test the subsystem frequency is only written when it differs."""
        config = interval_config(min_interframe_minutes=45)
        provider = InMemoryProvider(clock=clock, checkpoints=inventory_aged_days([0]), creation_interval_minutes=1440)
        service = make_service(config, provider, clock, notifier)

        service.run_cycle()
        service.run_cycle()

        assert provider.calls.count("set_interval:45") == 1
        assert provider.creation_interval_minutes == 45

    def test_frequency_failure_does_not_abort(self, config, clock, notifier):
        """Test a failing frequency write is logged and the cycle continues."""
        provider = InMemoryProvider(clock=clock, creation_interval_minutes=99)
        provider.apply_error = ProviderErrorKind.PERMISSION_DENIED

        summary = make_service(config, provider, clock, notifier).run_cycle()

        assert summary.create_attempted == 1

    def test_force_bypasses_floor_and_restores_frequency(self, clock, notifier):
        """Test --force creates inside the floor and restores the subsystem window."""
        config = interval_config(
            min_interframe_minutes=120,
            creation_policy={"frequency": "interval", "interval_minutes": 30},
        )
        provider = InMemoryProvider(
            clock=clock,
            checkpoints=[make_checkpoint(1, NOW - timedelta(minutes=60))],
            creation_interval_minutes=120,
        )

        summary = make_service(config, provider, clock, notifier).run_cycle(force=True)

        assert summary.create_succeeded == 1
        assert "set_interval:0" in provider.calls
        assert provider.creation_interval_minutes == 120

    def test_undatable_logged_as_warning(self, config, clock, notifier, caplog):
        """Test data-quality warnings for undatable checkpoints."""
        provider = InMemoryProvider(
            clock=clock,
            checkpoints=[make_checkpoint(4, None), make_checkpoint(5, NOW - timedelta(hours=1))],
            creation_interval_minutes=0,
        )

        with caplog.at_level("WARNING"):
            summary = make_service(config, provider, clock, notifier).run_cycle()

        assert summary.undatable_count == 1
        assert "Checkpoint #4 has unrecognized creation time" in caplog.text

    def test_notifier_failure_swallowed(self, config, provider, clock):
        """Test a broken notifier never breaks the cycle."""
        broken = RecordingNotifier()
        broken._send = MagicMock(side_effect=RuntimeError("smtp down"))

        summary = make_service(config, provider, clock, broken).run_cycle()

        assert summary.create_succeeded == 1
        broken._send.assert_called_once()

    def test_summary_line_logged(self, config, provider, clock, notifier, caplog):
        """Test one closing summary line per cycle."""
        with caplog.at_level("INFO"):
            make_service(config, provider, clock, notifier).run_cycle()

        lines = [r.message for r in caplog.records if r.message.startswith("Cycle complete")]
        assert len(lines) == 1
        assert "create attempted=1 succeeded=1 failed=0" in lines[0]

    def test_lock_file_released(self, config, provider, clock, notifier, tmp_path):
        """Test the log lock is held during the cycle and released after."""
        log_path = tmp_path / "restore.log"
        service = make_service(config, provider, clock, notifier, log_path=log_path)

        service.run_cycle()
        service.run_cycle()

        assert (tmp_path / "restore.log.lock").exists()

    def test_lock_released_on_error(self, config, provider, clock, notifier, tmp_path):
        """Test the lock is released when the cycle aborts."""
        from restore_manager.utils.file_lock import acquire_lock

        log_path = tmp_path / "restore.log"
        provider.unavailable = True

        with pytest.raises(ProviderUnavailable):
            make_service(config, provider, clock, notifier, log_path=log_path).run_cycle()

        acquire_lock(log_path, timeout=0).release()


class TestManualActions:
    """Tests for Create, Cleanup, List and Configure."""

    def test_create_now_respects_floor(self, clock, notifier):
        """Test a manual create inside the floor is refused without a provider call."""
        config = interval_config(min_interframe_minutes=60)
        provider = InMemoryProvider(clock=clock, checkpoints=[make_checkpoint(1, NOW - timedelta(minutes=10))], creation_interval_minutes=0)

        summary = make_service(config, provider, clock, notifier).create_now("Before driver update")

        assert summary.create_failed == 1
        assert summary.failures[0].error_kind == ProviderErrorKind.TOO_SOON
        assert not any(c.startswith("create_checkpoint") for c in provider.calls)

    def test_create_now_forced(self, clock, notifier):
        """Test --force creates regardless of the floor."""
        config = interval_config(min_interframe_minutes=60)
        provider = InMemoryProvider(clock=clock, checkpoints=[make_checkpoint(1, NOW - timedelta(minutes=10))], creation_interval_minutes=60)

        summary = make_service(config, provider, clock, notifier).create_now("Before driver update", force=True)

        assert summary.create_succeeded == 1
        assert "create_checkpoint:Before driver update" in provider.calls
        assert provider.creation_interval_minutes == 60

    def test_create_now_default_description(self, config, provider, clock, notifier):
        """Test a generated description when none is given."""
        make_service(config, provider, clock, notifier).create_now()

        created = provider.list_checkpoints()[0]
        assert created.description == f"{config.description_prefix} 2025-10-29 12:00"

    def test_cleanup_never_creates(self, config, clock, notifier):
        """Test the prune-only pass."""
        provider = InMemoryProvider(clock=clock, checkpoints=inventory_aged_days(range(5, 30)), creation_interval_minutes=0)

        summary = make_service(config, provider, clock, notifier).cleanup()

        assert summary.create_attempted == 0
        assert summary.delete_succeeded == 15
        assert summary.plan.should_create is False

    def test_list_sorted_oldest_first(self, config, clock, notifier):
        """Test listing puts undatable entries last."""
        provider = InMemoryProvider(
            clock=clock,
            checkpoints=[
                make_checkpoint(3, NOW - timedelta(days=1)),
                make_checkpoint(9, None),
                make_checkpoint(2, NOW - timedelta(days=2)),
            ],
        )

        listed = make_service(config, provider, clock, notifier).list_checkpoints()

        assert [cp.id for cp in listed] == [2, 3, 9]

    def test_apply_configuration(self, clock, notifier):
        """Test enabling restore with the clamped quota."""
        config = interval_config(disk_quota_percent=3, min_interframe_minutes=30)
        provider = InMemoryProvider(clock=clock)

        outcome = make_service(config, provider, clock, notifier).apply_configuration()

        assert outcome.succeeded
        assert provider.enabled is True
        assert provider.quota_percent == 8
        assert provider.creation_interval_minutes == 30
        assert notifier.events[-1][0] == EventType.APPLY

    def test_apply_configuration_failure(self, config, clock, notifier):
        """Test apply failures are reported, not raised."""
        provider = InMemoryProvider(clock=clock)
        provider.apply_error = ProviderErrorKind.PERMISSION_DENIED

        outcome = make_service(config, provider, clock, notifier).apply_configuration()

        assert outcome.outcome == Outcome.FAILURE
        assert notifier.events[-1][1] == Outcome.FAILURE
