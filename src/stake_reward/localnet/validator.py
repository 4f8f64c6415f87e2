"""
Local Test Validator

Owns one `solana-test-validator` child process:

    with TestValidator(artifact, PROGRAM_ID, config) as validator:
        client = RPCClient(validator.cluster_config())
        ...

Entering starts the process and blocks until its /health endpoint says
`ok` and the program account is served; leaving terminates it. The
process is started with --reset, so every launch begins from an empty
ledger with only the program loaded.
"""

import socket
import subprocess
import time
from pathlib import Path
from typing import IO, List, Optional

from ..config import ClusterConfig, LocalnetConfig
from ..errors import RPCError, ValidatorStartupError
from ..networking.rpc import RPCClient

VALIDATOR_BINARY = "solana-test-validator"


class TestValidator:
    """A single-node local cluster preloaded with one program."""

    # Keep pytest from collecting this as a test class
    __test__ = False

    def __init__(self, artifact_path: Path, program_id: str,
                 config: Optional[LocalnetConfig] = None,
                 binary: str = VALIDATOR_BINARY):
        self.artifact_path = Path(artifact_path)
        self.program_id = program_id
        self.config = config or LocalnetConfig()
        self.binary = binary
        self.process: Optional[subprocess.Popen] = None
        self._log_file: Optional[IO] = None

    @property
    def log_path(self) -> Path:
        return self.config.state_dir / "validator.log"

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    def command(self) -> List[str]:
        cmd = [
            self.binary,
            "--bpf-program", self.program_id, str(self.artifact_path),
            "--reset",
            "--slots-per-epoch", str(self.config.slots_per_epoch),
            "--ledger", str(self.config.ledger_dir),
            "--rpc-port", str(self.config.rpc_port),
        ]
        if self.config.quiet:
            cmd.append("--quiet")
        return cmd

    def cluster_config(self) -> ClusterConfig:
        return self.config.cluster_config()

    def is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def ensure_port_available(self) -> None:
        """
        Refuse to launch onto a port something else already listens on.

        Otherwise our child dies on bind while the other node answers
        /health in its place.
        """
        port = self.config.rpc_port
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
            # TIME_WAIT leftovers from a previous run are fine, listeners are not
            probe.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                probe.bind(("127.0.0.1", port))
            except OSError as e:
                raise ValidatorStartupError(
                    f"RPC port {port} is already in use ({e.strerror}); "
                    f"stop the other node or pick another --rpc-port"
                ) from e

    def start(self) -> "TestValidator":
        """
        Spawn the validator process.

        Raises:
            ValidatorStartupError: if already started, the artifact is
                                   missing, the RPC port is taken, or the
                                   binary cannot be run
        """
        if self.process is not None:
            raise ValidatorStartupError("Validator already started")
        if not self.artifact_path.exists():
            raise ValidatorStartupError(f"Program artifact not found: {self.artifact_path}")
        self.ensure_port_available()

        self.config.state_dir.mkdir(parents=True, exist_ok=True)
        self._log_file = open(self.log_path, "w")
        try:
            # Own session: a Ctrl-C in the terminal reaches us, not the validator
            self.process = subprocess.Popen(
                self.command(),
                stdout=self._log_file,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
        except OSError as e:
            self._close_log()
            raise ValidatorStartupError(f"Cannot launch {self.binary}: {e}") from e

        print(f"🚀 Started {self.binary} (pid: {self.process.pid}), log: {self.log_path}")
        return self

    def _program_loaded(self, client: RPCClient) -> bool:
        try:
            account = client.get_account_info(self.program_id)
        except RPCError:
            return False
        return account is not None and account.executable

    def _check_alive(self) -> None:
        returncode = self.process.poll()
        if returncode is not None:
            self.stop()
            raise ValidatorStartupError(
                f"Validator exited with code {returncode} during startup, see {self.log_path}"
            )

    def wait_until_ready(self) -> None:
        """
        Poll until the node reports `ok` and serves our program.

        Our child must still be running once health passes: a node that
        answers while the child has exited is someone else's.

        Raises:
            ValidatorStartupError: if the process exits or the startup
                                   timeout passes first; the process is
                                   stopped before raising
        """
        if self.process is None:
            raise ValidatorStartupError("Validator was never started")

        client = RPCClient(self.cluster_config(), timeout=min(2.0, self.config.poll_interval * 4))
        deadline = time.monotonic() + self.config.startup_timeout
        print(f"⏳ Waiting for validator at {self.config.rpc_url} ...")

        while True:
            self._check_alive()
            healthy = client.check_health()
            if healthy:
                self._check_alive()
                if self._program_loaded(client):
                    print(f"✅ Validator is healthy, program {self.program_id} loaded")
                    return
            if time.monotonic() >= deadline:
                self.stop()
                if healthy:
                    raise ValidatorStartupError(
                        f"Validator is healthy but program {self.program_id} is not loaded "
                        f"after {self.config.startup_timeout:.0f}s, see {self.log_path}"
                    )
                raise ValidatorStartupError(
                    f"Validator not healthy after {self.config.startup_timeout:.0f}s, see {self.log_path}"
                )
            time.sleep(self.config.poll_interval)

    def stop(self, grace_period: float = 10.0) -> Optional[int]:
        """Terminate the process (kill after the grace period); safe to call twice."""
        if self.process is None:
            return None

        if self.process.poll() is None:
            self.process.terminate()
            try:
                self.process.wait(timeout=grace_period)
            except subprocess.TimeoutExpired:
                self.process.kill()
                self.process.wait()
            print(f"🛑 Validator stopped (pid: {self.process.pid})")

        self._close_log()
        return self.process.returncode

    def _close_log(self):
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None

    def __enter__(self) -> "TestValidator":
        self.start()
        try:
            self.wait_until_ready()
        except BaseException:
            self.stop()
            raise
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
