"""Terraform CLI wrapper."""

import os
import shutil
import subprocess
from pathlib import Path

from stackctl.core.exceptions import TerraformError
from stackctl.core.logging import StructuredLogger

logger = StructuredLogger(__name__)


def find_terraform() -> str | None:
    """Return the terraform executable path, if installed."""
    return shutil.which("terraform")


def _check_terraform() -> str:
    tf_path = find_terraform()
    if not tf_path:
        raise TerraformError(
            "Terraform not found. Install from: https://www.terraform.io/downloads"
        )
    return tf_path


def run_terraform(
    args: list[str],
    cwd: str | Path | None = None,
) -> subprocess.CompletedProcess:
    """Run a terraform command with its output streamed to the terminal."""
    tf_path = _check_terraform()

    cmd = [tf_path] + args

    run_env = os.environ.copy()
    run_env["TF_IN_AUTOMATION"] = "1"

    logger.debug("Running terraform", args=" ".join(args), cwd=cwd)

    try:
        return subprocess.run(cmd, cwd=cwd, env=run_env)
    except (subprocess.SubprocessError, OSError) as e:
        raise TerraformError(f"Failed to run terraform: {e}")


class TerraformBundle:
    """A directory holding one Terraform root module."""

    def __init__(self, working_dir: str | Path):
        self.working_dir = Path(working_dir)

    def _run(self, args: list[str], action: str) -> None:
        if not self.working_dir.is_dir():
            raise TerraformError(f"Directory not found: {self.working_dir}")

        result = run_terraform(args, cwd=self.working_dir)
        if result.returncode != 0:
            raise TerraformError(
                f"Terraform {action} failed in {self.working_dir}",
                details={"exit_code": result.returncode},
            )

    def init(self) -> None:
        """Run ``terraform init``; safe to repeat."""
        self._run(["init", "-input=false"], "init")

    def apply(self) -> None:
        """Converge the bundle to its declared state."""
        self._run(["apply", "-auto-approve", "-input=false"], "apply")

    def destroy(self) -> None:
        """Tear down everything the bundle manages."""
        self._run(["destroy", "-auto-approve", "-input=false"], "destroy")
