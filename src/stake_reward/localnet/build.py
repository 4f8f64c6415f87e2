"""
On-chain Program Build Step

Compiles the stake reward program with the Solana BPF toolchain. The
artifact always lands at <program_dir>/target/deploy/<artifact_name>, so
repeated builds hand the validator the same path. Incremental-build
correctness is cargo's job; we only report what it says.
"""

import subprocess
from pathlib import Path
from typing import List

from ..config import LocalnetConfig
from ..errors import BuildError


class ProgramBuilder:
    """Runs `cargo build-bpf` for one program manifest."""

    def __init__(self, program_dir: Path, artifact_name: str = "stake_reward.so",
                 toolchain: str = "cargo"):
        self.program_dir = Path(program_dir)
        self.artifact_name = artifact_name
        self.toolchain = toolchain

    @classmethod
    def from_config(cls, config: LocalnetConfig) -> "ProgramBuilder":
        return cls(config.program_dir, config.artifact_name)

    @property
    def manifest_path(self) -> Path:
        return self.program_dir / "Cargo.toml"

    @property
    def artifact_path(self) -> Path:
        return self.program_dir / "target" / "deploy" / self.artifact_name

    def command(self) -> List[str]:
        return [self.toolchain, "build-bpf", "--manifest-path", str(self.manifest_path)]

    def build(self) -> Path:
        """
        Compile the program and return the artifact path.

        Raises:
            BuildError: if the manifest or toolchain is missing, the
                        compiler exits nonzero, or no artifact was produced
        """
        if not self.manifest_path.exists():
            raise BuildError(f"Program manifest not found: {self.manifest_path}")

        print(f"🔨 Building on-chain program: {self.manifest_path}")
        try:
            result = subprocess.run(self.command(), capture_output=True, text=True)
        except FileNotFoundError as e:
            raise BuildError(f"Toolchain '{self.toolchain}' not found on PATH") from e

        output = (result.stdout or "") + (result.stderr or "")
        if result.returncode != 0:
            raise BuildError(
                f"Program build failed with exit code {result.returncode}",
                returncode=result.returncode,
                output=output,
            )
        if not self.artifact_path.exists():
            raise BuildError(f"Build succeeded but no artifact at {self.artifact_path}",
                             returncode=0, output=output)

        print(f"✅ Program artifact: {self.artifact_path}")
        return self.artifact_path
