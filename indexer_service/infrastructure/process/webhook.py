"""Process supervision for Webhook indexers."""

import asyncio
import os
import signal
import subprocess
from pathlib import Path

import logfire

from indexer_service.config import WebhookConfig
from indexer_service.domain.indexer.model.aggregate import Indexer
from indexer_service.domain.indexer.model.value import IndexerId, script_key
from indexer_service.domain.indexer.port.indexer_handler import IndexerHandler
from indexer_service.domain.indexer.port.script_store import ScriptStore
from indexer_service.domain.shared.error import NotFoundError, ProcessSpawnError, ProcessStopError

# Seconds between liveness checks while waiting for a foreign process to exit
_STOP_POLL_INTERVAL = 0.1


class WebhookIndexerHandler(IndexerHandler):
    """Runs each Webhook indexer as a detached OS process.

    The process is started from ``config.command`` in its own session, with
    stdout and stderr appended to ``{logs_dir}/{indexer_id}.log``. Processes
    spawned by this instance are tracked so their exit status is observed
    directly; a PID inherited from an earlier service run is probed and
    signalled by number.
    """

    def __init__(self, config: WebhookConfig, scripts: ScriptStore, logs_dir: Path) -> None:
        self._config = config
        self._scripts = scripts
        self._logs_dir = Path(logs_dir)
        self._processes: dict[int, asyncio.subprocess.Process] = {}

    def log_path(self, indexer_id: IndexerId) -> Path:
        return self._logs_dir / f"{indexer_id}.log"

    def build_command(self, indexer: Indexer, script_path: Path) -> list[str]:
        values = {
            "indexer_id": str(indexer.id),
            "script_path": str(script_path),
            "target_url": indexer.target_url,
        }
        return [part.format(**values) for part in self._config.command]

    def build_env(self, indexer: Indexer, script_path: Path) -> dict[str, str]:
        env = dict(os.environ)
        env.update(self._config.extra_env)
        env["INDEXER_ID"] = str(indexer.id)
        env["INDEXER_TARGET_URL"] = indexer.target_url
        env["INDEXER_SCRIPT_PATH"] = str(script_path)
        return env

    async def start(self, indexer: Indexer) -> int:
        try:
            script_path = self._scripts.locate(script_key(indexer.id))
        except NotFoundError as e:
            raise ProcessSpawnError(f"Script for indexer {indexer.id} is not available") from e

        argv = self.build_command(indexer, script_path)
        log_path = self.log_path(indexer.id)

        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            with log_path.open("ab") as log_file:
                process = await asyncio.create_subprocess_exec(
                    *argv,
                    stdin=subprocess.DEVNULL,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    env=self.build_env(indexer, script_path),
                    start_new_session=True,  # Detach from the service's process group
                )
        except OSError as e:
            raise ProcessSpawnError(f"Failed to launch {argv[0]!r}: {e}") from e

        # The process must survive the startup grace period
        if self._config.startup_grace > 0:
            try:
                await asyncio.wait_for(process.wait(), self._config.startup_grace)
            except TimeoutError:
                pass
        if process.returncode is not None:
            raise ProcessSpawnError(
                f"Indexer {indexer.id} exited during startup with code {process.returncode}; "
                f"see {log_path}"
            )

        self._processes[process.pid] = process
        logfire.info("Indexer process started", indexer_id=str(indexer.id), pid=process.pid)
        return process.pid

    async def stop(self, indexer: Indexer) -> None:
        pid = indexer.process_id
        if pid is None:
            raise ProcessStopError(f"Indexer {indexer.id} has no process")

        if not await self.is_running(indexer):
            self._processes.pop(pid, None)
            raise ProcessStopError(f"Process {pid} of indexer {indexer.id} is not running")

        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError as e:
            self._processes.pop(pid, None)
            raise ProcessStopError(f"Process {pid} of indexer {indexer.id} not found") from e
        except PermissionError as e:
            raise ProcessStopError(f"Not permitted to signal process {pid}") from e

        if await self._wait_for_exit(pid, self._config.stop_timeout):
            self._processes.pop(pid, None)
            logfire.info("Indexer process stopped", indexer_id=str(indexer.id), pid=pid)
            return

        logfire.warning(
            "Indexer process did not exit", indexer_id=str(indexer.id), pid=pid
        )
        raise ProcessStopError(
            f"Process {pid} of indexer {indexer.id} did not exit within "
            f"{self._config.stop_timeout}s"
        )

    async def is_running(self, indexer: Indexer) -> bool:
        pid = indexer.process_id
        if pid is None:
            return False

        process = self._processes.get(pid)
        if process is not None:
            if process.returncode is None:
                return True
            # Exited without stop()
            del self._processes[pid]
            logfire.info(
                "Indexer process exited",
                indexer_id=str(indexer.id),
                pid=pid,
                returncode=process.returncode,
            )
            return False
        return _pid_alive(pid)

    async def _wait_for_exit(self, pid: int, timeout: float) -> bool:
        process = self._processes.get(pid)
        if process is not None:
            try:
                await asyncio.wait_for(process.wait(), timeout)
                return True
            except TimeoutError:
                return False

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            if not _pid_alive(pid):
                return True
            await asyncio.sleep(_STOP_POLL_INTERVAL)
        return not _pid_alive(pid)


def _pid_alive(pid: int) -> bool:
    """Check if a process is running."""
    try:
        os.kill(pid, 0)  # Signal 0 just checks if process exists
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        # Process exists but we don't have permission to signal it
        return True
