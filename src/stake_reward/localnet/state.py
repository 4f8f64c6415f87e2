"""
Validator State Records

A detached validator outlives the command that launched it. The
launcher records the pid and the cluster settings in a small JSON file
so later commands (`status`, `stop`, `balance`, ...) can find it.
"""

import json
import os
import signal
import time
from pathlib import Path
from typing import Any, Dict, Optional


class ValidatorStateManager:
    """Manages validator state across different processes/terminals."""

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)
        self.state_file = self.state_dir / "validator.json"
        self.pid_file = self.state_dir / "validator.pid"

    def write_state(self, pid: int, rpc_url: str, commitment: str,
                    program_id: str, artifact_path: str, **extra) -> Dict[str, Any]:
        """Write validator state to file."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        state = {
            'pid': pid,
            'rpc_url': rpc_url,
            'commitment': commitment,
            'program_id': program_id,
            'artifact_path': str(artifact_path),
            'start_time': time.time(),
            'status': 'running',
        }
        state.update(extra)

        with open(self.state_file, 'w') as f:
            json.dump(state, f, indent=2)
        with open(self.pid_file, 'w') as f:
            f.write(str(pid))
        return state

    def read_state(self) -> Optional[Dict[str, Any]]:
        """Read validator state from file."""
        if not self.state_file.exists():
            return None
        try:
            with open(self.state_file, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return None

    def is_validator_running(self) -> bool:
        """Check the recorded pid is alive; stale records are removed."""
        state = self.read_state()
        if not state or not state.get('pid'):
            return False

        try:
            os.kill(state['pid'], 0)  # Signal 0 just checks if process exists
            return True
        except ProcessLookupError:
            self.cleanup_state()
            return False
        except PermissionError:
            # Exists, but belongs to someone else
            return True

    def cleanup_state(self):
        """Clean up state files."""
        for file_path in [self.state_file, self.pid_file]:
            if file_path.exists():
                file_path.unlink()

    def get_validator_info(self) -> Optional[Dict[str, Any]]:
        """Get running validator information."""
        if self.is_validator_running():
            return self.read_state()
        return None

    def stop_validator(self, timeout: float = 10.0) -> bool:
        """
        SIGTERM the recorded validator and wait for it to exit.

        Returns:
            True if a running validator was stopped, False if none was recorded
        """
        info = self.get_validator_info()
        if info is None:
            return False

        pid = info['pid']
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            self.cleanup_state()
            return False
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            try:
                os.kill(pid, 0)
            except ProcessLookupError:
                break
            time.sleep(0.2)
        else:
            try:
                os.kill(pid, signal.SIGKILL)
            except ProcessLookupError:
                pass

        self.cleanup_state()
        return True
