"""Docker CLI wrapper for building and pushing images."""

import os
import subprocess
from pathlib import Path
from typing import Any

from stackctl.core.exceptions import DockerError
from stackctl.core.logging import StructuredLogger

logger = StructuredLogger(__name__)


class DockerClient:
    """Runs docker login, build and push."""

    def __init__(self, executable: str = "docker"):
        self.executable = executable

    def login(self, username: str, password: str, endpoint: str) -> None:
        """Authenticate to a registry, passing the password on stdin."""
        cmd = [self.executable, "login", "--username", username, "--password-stdin", endpoint]
        result = self._invoke(cmd, input=password, capture_output=True, text=True)
        if result.returncode != 0:
            raise DockerError(f"Docker authentication failed: {result.stderr.strip()}")

        logger.info("Logged in to registry", endpoint=endpoint)

    def build(
        self,
        image: str,
        context_dir: str | Path,
        dockerfile: str = "Dockerfile",
        secret_build_args: dict[str, str] | None = None,
    ) -> None:
        """Build ``image`` from ``context_dir``.

        Secret build args are handed to docker through the environment
        (``--build-arg NAME`` without a value) so they never appear on the
        command line.
        """
        cmd = [self.executable, "build", "-t", image, "-f", dockerfile]
        env = os.environ.copy()
        for name, value in (secret_build_args or {}).items():
            cmd.extend(["--build-arg", name])
            env[name] = value
        cmd.append(".")

        logger.debug("Building image", image=image, context=context_dir)
        self._run(cmd, cwd=context_dir, env=env, action="build")

    def push(self, image: str) -> None:
        """Push ``image`` to its registry."""
        self._run([self.executable, "push", image], action="push")

    def _run(
        self,
        cmd: list[str],
        action: str,
        cwd: str | Path | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        result = self._invoke(cmd, cwd=cwd, env=env)
        if result.returncode != 0:
            raise DockerError(
                f"Docker {action} failed",
                details={"exit_code": result.returncode},
            )

    def _invoke(self, cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(cmd, **kwargs)
        except FileNotFoundError:
            raise DockerError("Docker not found. Please install Docker for image builds.")
        except (subprocess.SubprocessError, OSError) as e:
            raise DockerError(f"Failed to run docker {cmd[1]}: {e}")
