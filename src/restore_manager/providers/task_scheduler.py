"""Registration of the unattended Monitor run with the Windows Task Scheduler."""

import logging
import os
import subprocess
import sys
from typing import Callable, List, Optional, Sequence

from ..errors import ProviderActionError, ProviderErrorKind

logger = logging.getLogger(__name__)

_SCHTASKS_EXECUTABLE = "schtasks.exe"


def build_monitor_command(config_path: str, executable: Optional[str] = None) -> str:
    """
    Command line the scheduled task runs.

    Args:
        config_path: Config file the task should use
        executable: Python interpreter (default: the running one)

    Returns:
        Quoted command line for /TR
    """
    python = executable or sys.executable
    return (
        f'"{python}" -m restore_manager --action Monitor --unattended '
        f'--config "{config_path}"'
    )


def build_schtasks_args(
    task_name: str,
    command: str,
    interval_minutes: int,
) -> List[str]:
    """Arguments for schtasks /Create running as SYSTEM every N minutes."""
    return [
        _SCHTASKS_EXECUTABLE,
        "/Create",
        "/F",
        "/TN",
        task_name,
        "/TR",
        command,
        "/SC",
        "MINUTE",
        "/MO",
        str(int(interval_minutes)),
        "/RU",
        "SYSTEM",
        "/RL",
        "HIGHEST",
    ]


def register_scheduled_task(
    task_name: str,
    config_path: str,
    interval_minutes: int = 10,
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    executable: Optional[str] = None,
) -> Sequence[str]:
    """
    Create or replace the scheduled task that runs Monitor unattended.

    Args:
        task_name: Task Scheduler name
        config_path: Config file passed to the task
        interval_minutes: Repetition period
        runner: subprocess.run compatible callable
        executable: Python interpreter for the task

    Returns:
        The argument list that was executed

    Raises:
        ProviderActionError: If schtasks fails or is unavailable
    """
    if os.name != "nt" and runner is subprocess.run:
        raise ProviderActionError(
            ProviderErrorKind.UNKNOWN,
            "Register scheduled task failed",
            "Task Scheduler is only available on Windows hosts",
        )

    args = build_schtasks_args(
        task_name,
        build_monitor_command(config_path, executable),
        interval_minutes,
    )
    try:
        result = runner(args, capture_output=True, text=True, timeout=60, check=False)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        raise ProviderActionError(
            ProviderErrorKind.UNKNOWN,
            "Register scheduled task failed",
            str(e),
        ) from e

    if result.returncode != 0:
        output = (result.stderr or result.stdout or "").strip()
        kind = (
            ProviderErrorKind.PERMISSION_DENIED
            if "access is denied" in output.lower()
            else ProviderErrorKind.UNKNOWN
        )
        raise ProviderActionError(kind, "Register scheduled task failed", output)

    logger.info(f"Registered scheduled task '{task_name}' every {interval_minutes} minutes")
    return args
