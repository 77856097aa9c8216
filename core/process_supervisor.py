import os
import signal
import subprocess
import threading
from typing import Any, Dict, List, Optional
import psutil
from config.constants import VlessConstants
from core.exceptions import ProcessError
from core.logging_config import LoggerMixin
from core.types import ProcessState

class ProcessSupervisor(LoggerMixin):
    """Owns the single sing-box child process.

    ``start`` and ``stop`` are expected to be serialized by the caller. The
    only concurrent actor is the reaper thread spawned per process, which
    clears the handle when the child exits on its own. It compares process
    identity before clearing so a reaper for an old process can never drop
    the handle of its replacement.
    """

    def __init__(self, binary: str, log_path: str,
                 stop_grace_seconds: float = VlessConstants.STOP_GRACE_SECONDS):
        self.binary = binary
        self.log_path = log_path
        self.stop_grace_seconds = stop_grace_seconds
        self._lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None
        self._state = ProcessState.STOPPED

    @property
    def state(self) -> ProcessState:
        with self._lock:
            return self._state

    @property
    def pid(self) -> Optional[int]:
        with self._lock:
            return self._process.pid if self._process is not None else None

    def is_running(self) -> bool:
        with self._lock:
            return self._process is not None

    def build_command(self, config_path: str) -> List[str]:
        return [self.binary, "run", "-c", config_path]

    def start(self, config_path: str) -> int:
        """Spawn the data plane if it is not running. Returns its pid."""
        with self._lock:
            if self._process is not None:
                return self._process.pid
            self._state = ProcessState.STARTING

            command = self.build_command(config_path)
            try:
                log_file = self._open_log()
            except OSError as e:
                self._state = ProcessState.STOPPED
                raise ProcessError(f"Failed to open sing-box log '{self.log_path}': {e}")

            try:
                process = subprocess.Popen(
                    command,
                    stdin=subprocess.DEVNULL,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,
                )
            except OSError as e:
                self._state = ProcessState.STOPPED
                raise ProcessError(f"Failed to start sing-box: {e}", output=self.read_log_tail())
            finally:
                # The child holds its own descriptor.
                log_file.close()

            self._process = process
            self._state = ProcessState.RUNNING

        reaper = threading.Thread(
            target=self._reap,
            args=(process,),
            name=f"sing-box-reaper-{process.pid}",
            daemon=True,
        )
        reaper.start()
        self.logger.info("vless server started with sing-box", pid=process.pid, command=command)
        return process.pid

    def stop(self) -> bool:
        """Interrupt, wait for the grace period, then kill.

        Returns False when nothing was running. The handle is always cleared.
        """
        with self._lock:
            process = self._process
            if process is None:
                self._state = ProcessState.STOPPED
                return False
            self._state = ProcessState.STOPPING

        try:
            self._terminate(process)
        finally:
            with self._lock:
                if self._process is process:
                    self._process = None
                    self._state = ProcessState.STOPPED
        self.logger.info("vless server stopped", pid=process.pid, returncode=process.returncode)
        return True

    def _terminate(self, process: subprocess.Popen) -> None:
        if process.poll() is not None:
            return
        try:
            process.send_signal(signal.SIGINT)
        except ProcessLookupError:
            return
        try:
            process.wait(timeout=self.stop_grace_seconds)
            return
        except subprocess.TimeoutExpired:
            pass

        self.logger.warning("sing-box ignored interrupt, killing", pid=process.pid)
        try:
            process.kill()
        except ProcessLookupError:
            return
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired as e:
            raise ProcessError(f"sing-box (pid={process.pid}) did not exit after kill", output=self.read_log_tail()) from e

    def _reap(self, process: subprocess.Popen) -> None:
        returncode = process.wait()
        with self._lock:
            if self._process is process:
                self._process = None
                self._state = ProcessState.STOPPED
                cleared = True
            else:
                cleared = False

        if not cleared:
            return
        if returncode != 0:
            self.logger.error("sing-box exited with error", pid=process.pid, returncode=returncode)
        else:
            self.logger.info("sing-box exited", pid=process.pid)

    def _open_log(self):
        os.makedirs(os.path.dirname(self.log_path) or ".", mode=0o700, exist_ok=True)
        fd = os.open(self.log_path, os.O_CREAT | os.O_WRONLY | os.O_APPEND, 0o600)
        return os.fdopen(fd, "ab", buffering=0)

    def read_log_tail(self, max_bytes: int = VlessConstants.LOG_TAIL_BYTES) -> str:
        """Last ``max_bytes`` of the sing-box log, empty if there is none."""
        try:
            with open(self.log_path, "rb") as f:
                f.seek(0, os.SEEK_END)
                size = f.tell()
                f.seek(max(0, size - max_bytes))
                return f.read().decode("utf-8", errors="replace").strip()
        except FileNotFoundError:
            return ""

    def process_info(self) -> Optional[Dict[str, Any]]:
        """Runtime details of the live process, None when stopped."""
        pid = self.pid
        if pid is None:
            return None
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                return {
                    "pid": pid,
                    "status": proc.status(),
                    "create_time": proc.create_time(),
                    "memory_rss": proc.memory_info().rss,
                }
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return None
