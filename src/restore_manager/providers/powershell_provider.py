"""Windows System Restore provider driven through PowerShell.

Every operation shells out to ``powershell.exe -NoProfile -ExecutionPolicy
Bypass -Command <script>``. Exit codes and error text are mapped onto
ProviderErrorKind so the orchestrator can report what went wrong.

GOTCHA: Checkpoint-Computer does not fail when a restore point was created
        inside the SystemRestorePointCreationFrequency window; it writes a
        warning and exits 0. Creation is therefore confirmed by waiting for
        the new sequence number to show up in the inventory.
"""

import json
import logging
import os
import subprocess
import textwrap
from datetime import tzinfo
from typing import Any, Callable, List, Optional, Sequence

from ..core.clock import LocalTimezone
from ..core.timestamps import try_normalize_timestamp
from ..errors import ProviderActionError, ProviderErrorKind, ProviderUnavailable
from ..models.checkpoint_models import Checkpoint
from ..utils.retry import RetryManager
from .base import CheckpointProvider

logger = logging.getLogger(__name__)

_POWERSHELL_EXECUTABLE = "powershell.exe"
_POWERSHELL_TIMEOUT_SECONDS = 180
_REGISTRY_PATH = r"HKLM:\Software\Microsoft\Windows NT\CurrentVersion\SystemRestore"
_FREQUENCY_VALUE = "SystemRestorePointCreationFrequency"

# Win32 error codes returned by SRRemoveRestorePoint
_NOT_FOUND_CODES = {2, 13, 1168}
_ACCESS_DENIED_CODES = {5}

# Win32 errors raised when starting a process that needs elevation
_ELEVATION_CODES = {5, 740}

_TOO_SOON_MARKERS = ("already been created within the past", "cannot be created because")
_PERMISSION_MARKERS = ("access is denied", "administrator", "requires elevation", "unauthorizedaccess")
_NOT_FOUND_MARKERS = ("not found", "cannot find", "does not exist")


def _classify(returncode: int, text: str) -> ProviderErrorKind:
    lowered = text.lower()
    if returncode in _ACCESS_DENIED_CODES or any(m in lowered for m in _PERMISSION_MARKERS):
        return ProviderErrorKind.PERMISSION_DENIED
    if any(m in lowered for m in _TOO_SOON_MARKERS):
        return ProviderErrorKind.TOO_SOON
    if returncode in _NOT_FOUND_CODES or any(m in lowered for m in _NOT_FOUND_MARKERS):
        return ProviderErrorKind.NOT_FOUND
    return ProviderErrorKind.UNKNOWN


def _ps_literal(value: str) -> str:
    """Single-quoted PowerShell string literal."""
    return "'" + value.replace("'", "''") + "'"


class PowerShellProvider(CheckpointProvider):
    """
    System Restore back end for Windows hosts.

    PATTERN: One PowerShell script per operation
    CRITICAL: Must run elevated; non-elevated calls map to permission_denied
    """

    name = "powershell"

    def __init__(
        self,
        drive: Optional[str] = None,
        timeout: int = _POWERSHELL_TIMEOUT_SECONDS,
        executable: str = _POWERSHELL_EXECUTABLE,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        retry: Optional[RetryManager] = None,
        local_tz: Optional[tzinfo] = None,
        require_windows: bool = True,
    ):
        """
        Initialize the provider.

        Args:
            drive: Drive to protect (default: %SystemDrive%)
            timeout: Seconds to wait for each PowerShell call
            executable: PowerShell executable name
            runner: subprocess.run compatible callable
            retry: Poller used to confirm creations
            local_tz: Zone for timestamps without an offset (default: host zone)
            require_windows: Refuse to run on non-Windows hosts
        """
        super().__init__()
        self.drive = (drive or os.environ.get("SystemDrive", "C:")).rstrip("\\")
        self.timeout = timeout
        self.executable = executable
        self._runner = runner
        self.retry = retry or RetryManager(max_attempts=6, initial_delay=2.0, max_delay=15.0)
        self.local_tz = local_tz or LocalTimezone()
        self.require_windows = require_windows

    def _build_command(self, script: str) -> Sequence[str]:
        return [
            self.executable,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy",
            "Bypass",
            "-Command",
            textwrap.dedent(script).strip(),
        ]

    def _run(self, script: str, operation: str) -> subprocess.CompletedProcess:
        """
        Execute a PowerShell script.

        Raises:
            ProviderActionError: If PowerShell is missing, times out, or the
                host is not Windows
        """
        if self.require_windows and os.name != "nt":
            raise ProviderActionError(
                ProviderErrorKind.UNKNOWN,
                f"{operation} failed",
                f"System Restore is only available on Windows hosts (os.name={os.name})",
            )

        self.logger.debug(f"Running PowerShell for {operation}")
        try:
            return self._runner(
                self._build_command(script),
                capture_output=True,
                text=True,
                timeout=max(1, int(self.timeout)),
                check=False,
            )
        except FileNotFoundError as e:
            raise ProviderActionError(
                ProviderErrorKind.UNKNOWN,
                f"{operation} failed",
                f"{self.executable} unavailable",
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ProviderActionError(
                ProviderErrorKind.UNKNOWN,
                f"{operation} failed",
                f"timed out after {self.timeout} seconds",
            ) from e
        except OSError as e:
            if isinstance(e, PermissionError) or getattr(e, "winerror", None) in _ELEVATION_CODES:
                kind = ProviderErrorKind.PERMISSION_DENIED
            else:
                kind = _classify(e.errno or 0, str(e))
            raise ProviderActionError(kind, f"{operation} failed", str(e)) from e

    def _check(self, result: subprocess.CompletedProcess, operation: str) -> str:
        stdout = (result.stdout or "").strip()
        stderr = (result.stderr or "").strip()
        if result.returncode != 0:
            detail = stderr or stdout or f"exit code {result.returncode}"
            raise ProviderActionError(
                _classify(result.returncode, f"{stderr}\n{stdout}"),
                f"{operation} failed",
                detail,
            )
        return stdout

    def _to_checkpoint(self, entry: dict) -> Checkpoint:
        raw = entry.get("CreationTime")
        created_at = try_normalize_timestamp(raw, assume_tz=self.local_tz)
        if created_at is None:
            self.logger.debug(f"Unparseable CreationTime for #{entry.get('SequenceNumber')}: {raw!r}")
        return Checkpoint(
            id=int(entry["SequenceNumber"]),
            description=entry.get("Description") or "",
            created_at=created_at,
            raw_created_at=None if raw is None else str(raw),
            restore_point_type=None if entry.get("RestorePointType") is None else str(entry.get("RestorePointType")),
        )

    def enable_restore(self, quota_percent: int) -> None:
        drive = self.drive
        drive_root = _ps_literal(drive + "\\")
        script = f"""
            $ErrorActionPreference = 'Stop'
            Enable-ComputerRestore -Drive {drive_root}
            vssadmin Resize ShadowStorage /For={drive} /On={drive} /MaxSize={int(quota_percent)}%
            exit $LASTEXITCODE
        """
        self._check(self._run(script, "Enable restore"), "Enable restore")
        logger.info(f"System Restore enabled on {drive} with {quota_percent}% quota")

    def list_checkpoints(self) -> List[Checkpoint]:
        script = """
            $ErrorActionPreference = 'Stop'
            $points = @(Get-CimInstance -Namespace root/default -ClassName SystemRestore |
                Select-Object SequenceNumber, Description, CreationTime, RestorePointType)
            ConvertTo-Json -InputObject $points -Compress -Depth 3
        """
        try:
            stdout = self._check(self._run(script, "List checkpoints"), "List checkpoints")
        except ProviderActionError as e:
            raise ProviderUnavailable(str(e)) from e

        if not stdout:
            return []
        try:
            payload: Any = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise ProviderUnavailable(f"Unreadable checkpoint inventory: {e}") from e

        if isinstance(payload, dict):
            payload = [payload]
        checkpoints = []
        for entry in payload or []:
            try:
                checkpoints.append(self._to_checkpoint(entry))
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning(f"Skipping malformed inventory entry {entry!r}: {e}")
        return checkpoints

    def create_checkpoint(self, description: str) -> Checkpoint:
        try:
            before = max((cp.id for cp in self.list_checkpoints()), default=0)
        except ProviderUnavailable as e:
            raise ProviderActionError(ProviderErrorKind.UNKNOWN, "Create checkpoint failed", str(e)) from e

        script = f"""
            $ErrorActionPreference = 'Stop'
            Checkpoint-Computer -Description {_ps_literal(description)} -RestorePointType MODIFY_SETTINGS -WarningVariable warn
            if ($warn) {{ Write-Output ($warn -join ' ') }}
        """
        stdout = self._check(self._run(script, "Create checkpoint"), "Create checkpoint")
        if any(marker in stdout.lower() for marker in _TOO_SOON_MARKERS):
            raise ProviderActionError(ProviderErrorKind.TOO_SOON, "Create checkpoint declined", stdout)

        def newest_after_before() -> Optional[Checkpoint]:
            try:
                inventory = self.list_checkpoints()
            except ProviderUnavailable:
                return None
            fresh = [cp for cp in inventory if cp.id > before]
            return max(fresh, key=lambda cp: cp.id) if fresh else None

        created = self.retry.poll(newest_after_before, description="new checkpoint to appear")
        if created is None:
            raise ProviderActionError(
                ProviderErrorKind.TOO_SOON,
                "Create checkpoint declined",
                "no new restore point appeared; the subsystem frequency window may still be active",
            )
        return created

    def delete_checkpoint(self, checkpoint_id: int) -> None:
        script = f"""
            $signature = '[DllImport("srclient.dll")] public static extern int SRRemoveRestorePoint(int index);'
            $client = Add-Type -MemberDefinition $signature -Name SRClient -Namespace RestoreManager -PassThru
            $rc = $client::SRRemoveRestorePoint({int(checkpoint_id)})
            exit $rc
        """
        self._check(self._run(script, f"Delete checkpoint #{checkpoint_id}"), f"Delete checkpoint #{checkpoint_id}")

    def set_minimum_creation_interval_minutes(self, minutes: int) -> None:
        script = f"""
            $ErrorActionPreference = 'Stop'
            New-ItemProperty -Path {_ps_literal(_REGISTRY_PATH)} -Name {_FREQUENCY_VALUE} -PropertyType DWord -Value {int(minutes)} -Force | Out-Null
        """
        self._check(self._run(script, "Set creation frequency"), "Set creation frequency")

    def get_minimum_creation_interval_minutes(self) -> Optional[int]:
        script = f"""
            $item = Get-ItemProperty -Path {_ps_literal(_REGISTRY_PATH)} -Name {_FREQUENCY_VALUE} -ErrorAction SilentlyContinue
            if ($item) {{ Write-Output $item.{_FREQUENCY_VALUE} }}
        """
        try:
            stdout = self._check(self._run(script, "Read creation frequency"), "Read creation frequency")
        except ProviderActionError as e:
            self.logger.debug(f"Could not read creation frequency: {e}")
            return None
        try:
            return int(stdout) if stdout else None
        except ValueError:
            return None
