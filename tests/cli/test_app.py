"""CLI tests against the in-memory provider."""

import io
import os

import pytest
import yaml
from click.testing import CliRunner
from rich.console import Console

from restore_manager.cli.app import (
    EXIT_CONFIG_ERROR,
    EXIT_OK,
    EXIT_PROVIDER_UNAVAILABLE,
    main,
    run,
)
from restore_manager.cli.output import OutputRenderer
from restore_manager.config.editor import ConfigEditor
from restore_manager.notifications import LogNotifier
from restore_manager.providers.memory_provider import InMemoryProvider


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("RESTORE_MANAGER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.yaml"


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def renderer(output):
    return OutputRenderer(console=Console(file=output, width=200))


class TestCommandLine:
    """Test the click entry point."""

    def test_monitor_simulated(self, config_path):
        """Test an unattended simulated Monitor run exits cleanly."""
        result = CliRunner().invoke(
            main, ["--action", "monitor", "--unattended", "--simulate", "--config", str(config_path)]
        )

        assert result.exit_code == EXIT_OK
        assert config_path.exists()
        log_text = (config_path.parent / "restore-points.log").read_text()
        assert "Cycle complete" in log_text

    def test_list_simulated(self, config_path):
        """Test the List action prints a table."""
        result = CliRunner().invoke(main, ["-a", "List", "--simulate", "--config", str(config_path)])

        assert result.exit_code == EXIT_OK
        assert "Restore points (0)" in result.output

    def test_invalid_config_exit_code(self, config_path):
        """Test an unreadable config exits with code 2."""
        config_path.write_text("minimum_count: [oops")

        result = CliRunner().invoke(main, ["--simulate", "--unattended", "--config", str(config_path)])

        assert result.exit_code == EXIT_CONFIG_ERROR

    def test_unknown_action_rejected(self, config_path):
        """Test click rejects unknown actions."""
        result = CliRunner().invoke(main, ["--action", "Explode", "--config", str(config_path)])

        assert result.exit_code != EXIT_OK


class TestRun:
    """Test run() with injected collaborators."""

    def test_provider_unavailable_exit_code(self, config_path, renderer, output):
        """Test a failed inventory fetch exits with code 1."""

        def unavailable(simulate):
            provider = InMemoryProvider()
            provider.unavailable = True
            return provider

        code = run("Monitor", str(config_path), provider_factory=unavailable, renderer=renderer)

        assert code == EXIT_PROVIDER_UNAVAILABLE
        assert "provider unavailable" in output.getvalue()

    def test_create_with_description(self, config_path, renderer):
        """Test Create stores the given description."""
        provider = InMemoryProvider(creation_interval_minutes=0)

        code = run(
            "Create",
            str(config_path),
            description="Before driver update",
            provider_factory=lambda simulate: provider,
            renderer=renderer,
        )

        assert code == EXIT_OK
        assert [cp.description for cp in provider.list_checkpoints()] == ["Before driver update"]

    def test_configure_unattended_saves_and_applies(self, config_path, renderer):
        """Test Configure writes the file and enables restore."""
        provider = InMemoryProvider()

        code = run(
            "Configure",
            str(config_path),
            unattended=True,
            register_task=False,
            provider_factory=lambda simulate: provider,
            renderer=renderer,
        )

        assert code == EXIT_OK
        assert provider.enabled is True
        assert provider.quota_percent == yaml.safe_load(config_path.read_text())["disk_quota_percent"]

    @pytest.mark.skipif(os.name == "nt", reason="Task Scheduler is available on Windows")
    def test_configure_reports_task_failure(self, config_path, renderer, output):
        """Test a failed task registration is reported without failing Configure."""
        code = run(
            "Configure",
            str(config_path),
            unattended=True,
            provider_factory=lambda simulate: InMemoryProvider(),
            renderer=renderer,
        )

        assert code == EXIT_OK
        assert "register scheduled task failed" in output.getvalue()

    def test_configure_interactive(self, config_path, renderer):
        """Test edited values are saved after review."""
        answers = iter([15, 3, 6, "daily", "04:30", 90])
        editor = ConfigEditor(
            prompt=lambda text, **kwargs: next(answers),
            confirm=lambda text, **kwargs: True,
            console=Console(file=io.StringIO()),
        )

        code = run(
            "Configure",
            str(config_path),
            register_task=False,
            provider_factory=lambda simulate: InMemoryProvider(),
            renderer=renderer,
            editor=editor,
        )

        saved = yaml.safe_load(config_path.read_text())
        assert code == EXIT_OK
        assert saved["disk_quota_percent"] == 15
        assert saved["maximum_count"] == 6
        assert saved["creation_policy"]["frequency"] == "daily"
        assert saved["min_interframe_minutes"] == 90

    def test_configure_registers_task_with_schedule_disabled(self, config_path, renderer, monkeypatch):
        """Test the Monitor task is registered even when creation is switched off."""
        config_path.write_text(yaml.safe_dump({"schedule_enabled": False}))
        registered = []
        monkeypatch.setattr(
            "restore_manager.cli.app.register_scheduled_task",
            lambda name, path, minutes: registered.append((name, path, minutes)),
        )

        code = run(
            "Configure",
            str(config_path),
            unattended=True,
            register_task=True,
            provider_factory=lambda simulate: InMemoryProvider(),
            renderer=renderer,
        )

        assert code == EXIT_OK
        assert registered == [("RestorePointsManager", str(config_path), 10)]
        assert yaml.safe_load(config_path.read_text())["schedule_enabled"] is False

    def test_notifiers_closed_after_run(self, config_path, renderer, monkeypatch):
        """Test notification channels are closed when the action ends."""
        built = []

        class ClosingNotifier(LogNotifier):
            closed = False

            def close(self):
                self.closed = True

        def build(settings):
            built.append(ClosingNotifier(settings))
            return built[-1]

        monkeypatch.setattr("restore_manager.cli.app.build_notifier", build)

        code = run(
            "Monitor",
            str(config_path),
            unattended=True,
            provider_factory=lambda simulate: InMemoryProvider(),
            renderer=renderer,
        )

        assert code == EXIT_OK
        assert len(built) == 1
        assert built[0].closed is True

    def test_notifiers_closed_when_provider_unavailable(self, config_path, renderer, monkeypatch):
        """Test channels are closed on the exit-code-1 path too."""
        built = []

        class ClosingNotifier(LogNotifier):
            closed = False

            def close(self):
                self.closed = True

        def build(settings):
            built.append(ClosingNotifier(settings))
            return built[-1]

        def unavailable(simulate):
            provider = InMemoryProvider()
            provider.unavailable = True
            return provider

        monkeypatch.setattr("restore_manager.cli.app.build_notifier", build)

        code = run("Cleanup", str(config_path), provider_factory=unavailable, renderer=renderer)

        assert code == EXIT_PROVIDER_UNAVAILABLE
        assert built[0].closed is True
