import os
import signal
from unittest.mock import patch

from stake_reward.localnet.state import ValidatorStateManager


def write(manager, pid):
    return manager.write_state(
        pid=pid,
        rpc_url="http://127.0.0.1:8899",
        commitment="confirmed",
        program_id="88gNHvxuPxaFTPELWBRYk59xCFqpjCt6MoBA1Lqk7qny",
        artifact_path="program/target/deploy/stake_reward.so",
        payer="Payer111",
    )


def test_write_and_read_state(tmp_path):
    manager = ValidatorStateManager(tmp_path / "state")
    written = write(manager, 1234)

    state = manager.read_state()
    assert state == written
    assert state["payer"] == "Payer111"
    assert manager.pid_file.read_text() == "1234"


def test_read_state_without_file_or_with_garbage(tmp_path):
    manager = ValidatorStateManager(tmp_path)
    assert manager.read_state() is None
    manager.state_file.write_text("{broken")
    assert manager.read_state() is None


def test_running_process_is_detected(tmp_path):
    manager = ValidatorStateManager(tmp_path)
    write(manager, os.getpid())
    assert manager.is_validator_running()
    assert manager.get_validator_info()["pid"] == os.getpid()


def test_stale_record_is_cleaned_up(tmp_path):
    manager = ValidatorStateManager(tmp_path)
    write(manager, 999999)
    with patch("stake_reward.localnet.state.os.kill", side_effect=ProcessLookupError):
        assert not manager.is_validator_running()
    assert not manager.state_file.exists()
    assert not manager.pid_file.exists()


def test_stop_validator_sends_sigterm(tmp_path):
    manager = ValidatorStateManager(tmp_path)
    write(manager, 5555)
    sent = []

    def fake_kill(pid, sig):
        sent.append((pid, sig))
        # alive for the liveness probe, gone after SIGTERM
        if sig == 0 and (5555, signal.SIGTERM) in sent:
            raise ProcessLookupError

    with patch("stake_reward.localnet.state.os.kill", side_effect=fake_kill):
        assert manager.stop_validator(timeout=1.0)

    assert (5555, signal.SIGTERM) in sent
    assert (5555, signal.SIGKILL) not in sent
    assert manager.read_state() is None


def test_stop_without_record(tmp_path):
    assert not ValidatorStateManager(tmp_path).stop_validator()
