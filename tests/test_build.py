import subprocess
from unittest.mock import patch

import pytest

from stake_reward.errors import BuildError
from stake_reward.localnet.build import ProgramBuilder


@pytest.fixture
def builder(tmp_path):
    program_dir = tmp_path / "program"
    program_dir.mkdir()
    (program_dir / "Cargo.toml").write_text("[package]\nname = \"stake-reward\"\n")
    return ProgramBuilder(program_dir)


def fake_cargo(builder, returncode=0, produce=True):
    def run(cmd, capture_output, text):
        if produce:
            builder.artifact_path.parent.mkdir(parents=True, exist_ok=True)
            builder.artifact_path.write_bytes(b"\x7fELF")
        return subprocess.CompletedProcess(cmd, returncode, stdout="Compiling\n", stderr="")
    return run


def test_command_points_at_manifest(builder):
    assert builder.command() == ["cargo", "build-bpf", "--manifest-path",
                                 str(builder.program_dir / "Cargo.toml")]


def test_repeated_builds_produce_same_artifact_path(builder):
    with patch("stake_reward.localnet.build.subprocess.run", side_effect=fake_cargo(builder)) as run:
        first = builder.build()
        second = builder.build()

    assert first == second == builder.program_dir / "target" / "deploy" / "stake_reward.so"
    assert first.exists()
    assert run.call_count == 2


def test_compiler_failure_propagates_exit_code(builder):
    failing = fake_cargo(builder, returncode=101, produce=False)
    with patch("stake_reward.localnet.build.subprocess.run", side_effect=failing):
        with pytest.raises(BuildError) as excinfo:
            builder.build()
    assert excinfo.value.returncode == 101
    assert "Compiling" in excinfo.value.output


def test_missing_toolchain(builder):
    with patch("stake_reward.localnet.build.subprocess.run", side_effect=FileNotFoundError("cargo")):
        with pytest.raises(BuildError, match="not found on PATH"):
            builder.build()


def test_success_without_artifact_is_an_error(builder):
    with patch("stake_reward.localnet.build.subprocess.run",
               side_effect=fake_cargo(builder, produce=False)):
        with pytest.raises(BuildError, match="no artifact"):
            builder.build()


def test_missing_manifest(tmp_path):
    with pytest.raises(BuildError, match="manifest not found"):
        ProgramBuilder(tmp_path / "nowhere").build()
