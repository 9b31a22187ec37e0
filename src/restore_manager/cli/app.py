"""Main CLI application entry point."""

import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

import click

from ..config.editor import ConfigEditor
from ..config.manager_config import ManagerConfig, default_config_path, load_config, save_config
from ..core.clock import SystemClock, resolve_zone
from ..errors import ConfigLoadError, ProviderActionError, ProviderUnavailable
from ..notifications import Notifier, build_notifier
from ..providers.base import CheckpointProvider
from ..providers.memory_provider import InMemoryProvider
from ..providers.powershell_provider import PowerShellProvider
from ..providers.task_scheduler import register_scheduled_task
from ..services.maintenance_service import MaintenanceService
from ..utils.logging_setup import configure_logging
from .output import OutputRenderer

logger = logging.getLogger(__name__)

ACTIONS = ["Configure", "Create", "List", "Cleanup", "Monitor"]

EXIT_OK = 0
EXIT_PROVIDER_UNAVAILABLE = 1
EXIT_CONFIG_ERROR = 2


def _default_provider_factory(simulate: bool) -> CheckpointProvider:
    if simulate:
        return InMemoryProvider(clock=SystemClock())
    return PowerShellProvider()


def _configure(
    config: ManagerConfig,
    config_path: Path,
    service_factory: Callable[[ManagerConfig], MaintenanceService],
    renderer: OutputRenderer,
    unattended: bool,
    register_task: bool,
    editor: Optional[ConfigEditor] = None,
) -> int:
    if not unattended:
        editor = editor or ConfigEditor(console=renderer.console)
        config = editor.edit(config)
        if not editor.review(config):
            renderer.render_info("Configuration not saved.")
            return EXIT_OK

    save_config(config, config_path)
    renderer.render_info(f"Saved configuration to {config_path}")

    service = service_factory(config)
    renderer.render_outcome(service.apply_configuration())

    if register_task:
        try:
            register_scheduled_task(
                config.scheduled_task_name,
                str(config_path),
                config.scheduled_task_interval_minutes,
            )
            renderer.render_info(
                f"Scheduled task '{config.scheduled_task_name}' runs every "
                f"{config.scheduled_task_interval_minutes} minutes"
            )
        except ProviderActionError as e:
            logger.error(f"Scheduled task registration failed: {e}")
            renderer.render_error(f"register scheduled task failed kind={e.kind.value}: {e}")
    return EXIT_OK


def run(
    action: str = "Monitor",
    config_path: Optional[str] = None,
    description: Optional[str] = None,
    force: bool = False,
    unattended: bool = False,
    simulate: bool = False,
    verbose: bool = False,
    register_task: bool = True,
    provider_factory: Callable[[bool], CheckpointProvider] = _default_provider_factory,
    renderer: Optional[OutputRenderer] = None,
    editor: Optional[ConfigEditor] = None,
) -> int:
    """
    Execute one CLI action.

    Returns:
        Process exit code: 0 when the action ran to completion (including
        individual action failures), 1 when the inventory could not be
        fetched, 2 when the configuration could not be loaded
    """
    renderer = renderer or OutputRenderer(quiet=unattended)
    path = Path(config_path) if config_path else default_config_path()

    try:
        config = load_config(path)
    except ConfigLoadError as e:
        configure_logging(None, verbose=verbose, quiet_console=unattended)
        logger.error(str(e))
        renderer.render_error(str(e))
        return EXIT_CONFIG_ERROR

    log_path = config.resolved_log_path(path)
    configure_logging(log_path, verbose=verbose, quiet_console=unattended)
    logger.info(f"Action {action} started (config={path}, force={force}, unattended={unattended})")

    provider = provider_factory(simulate)
    notifiers: List[Notifier] = []

    def service_factory(active: ManagerConfig) -> MaintenanceService:
        notifier = build_notifier(active.notifications)
        notifiers.append(notifier)
        return MaintenanceService(
            config=active,
            provider=provider,
            notifier=notifier,
            clock=SystemClock(resolve_zone(active.time_zone)),
            log_path=active.resolved_log_path(path),
        )

    try:
        if action == "Configure":
            return _configure(
                config,
                path,
                service_factory,
                renderer,
                unattended,
                register_task and not simulate,
                editor=editor,
            )

        service = service_factory(config)
        if action == "List":
            renderer.render_checkpoints(service.list_checkpoints())
        elif action == "Create":
            renderer.render_summary(service.create_now(description, force=force))
        elif action == "Cleanup":
            renderer.render_summary(service.cleanup())
        elif action == "Monitor":
            renderer.render_summary(service.run_cycle(force=force))
        else:
            raise click.BadParameter(f"Unknown action: {action}")
    except ProviderUnavailable as e:
        renderer.render_error(f"{action} aborted, checkpoint provider unavailable: {e}")
        return EXIT_PROVIDER_UNAVAILABLE
    finally:
        for notifier in notifiers:
            notifier.close()

    return EXIT_OK


@click.command()
@click.option(
    "--action", "-a",
    type=click.Choice(ACTIONS, case_sensitive=False),
    default="Monitor",
    show_default=True,
    help="Operation to perform",
)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False),
    help="Config file path",
)
@click.option(
    "--description", "-d",
    help="Description for a manually created checkpoint",
)
@click.option(
    "--force",
    is_flag=True,
    help="Bypass the minimum interval between checkpoints",
)
@click.option(
    "--unattended",
    is_flag=True,
    help="Skip interactive review steps and keep console output to failures",
)
@click.option(
    "--simulate",
    is_flag=True,
    help="Run against an in-memory store instead of System Restore",
)
@click.option(
    "--register-task/--no-register-task",
    default=True,
    help="Register the scheduled Monitor task during Configure",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose logging",
)
def main(
    action: str,
    config_path: Optional[str],
    description: Optional[str],
    force: bool,
    unattended: bool,
    simulate: bool,
    register_task: bool,
    verbose: bool,
) -> None:
    """
    Restore Points Manager - keeps System Restore checkpoints on schedule.

    Configure once interactively:
        restore-manager --action Configure

    Then let the scheduled task run:
        restore-manager --action Monitor --unattended

    Manual checkpoint:
        restore-manager --action Create -d "Before driver update" --force
    """
    try:
        code = run(
            action=action,
            config_path=config_path,
            description=description,
            force=force,
            unattended=unattended,
            simulate=simulate,
            verbose=verbose,
            register_task=register_task,
        )
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)
