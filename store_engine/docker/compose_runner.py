#store_engine\docker\compose_runner.py
"""Compose runner - invokes `docker compose` for a materialized stack."""

import logging
import os
import subprocess
import time
from typing import List, Sequence

from store_engine.core.errors import ComposeCommandError

logger = logging.getLogger(__name__)


class ComposeRunner:
    """
    Thin wrapper over the compose CLI plugin.

    Every command runs as:
        docker compose -f <compose> --env-file <env> -p <stack> <args...>
    with the stack directory as working directory.
    """

    def __init__(self, docker_binary: str = "docker", timeout: int = 600):
        self.docker_binary = docker_binary
        self.timeout = timeout

    def run(
        self,
        *,
        compose_path: str,
        env_path: str,
        stack_name: str,
        args: Sequence[str],
    ) -> str:
        command = [
            "compose",
            "-f", compose_path,
            "--env-file", env_path,
            "-p", stack_name,
            *args,
        ]

        started = time.monotonic()
        logger.info(f"[compose] {stack_name}: {' '.join(args)}")

        try:
            result = subprocess.run(
                [self.docker_binary, *command],
                cwd=os.path.dirname(compose_path) or None,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ComposeCommandError(command, -1, f"timed out after {self.timeout}s") from e
        except OSError as e:
            raise ComposeCommandError(command, -1, str(e)) from e

        elapsed_ms = int((time.monotonic() - started) * 1000)

        if result.returncode != 0:
            logger.error(
                f"[compose] {stack_name}: {' '.join(args)} failed "
                f"(exit={result.returncode}, {elapsed_ms}ms)"
            )
            raise ComposeCommandError(command, result.returncode, result.stderr or "")

        logger.debug(f"[compose] {stack_name}: {' '.join(args)} ok ({elapsed_ms}ms)")
        return result.stdout

    def config_images(self, compose_path: str, env_path: str, stack_name: str) -> List[str]:
        """Images of all services, deduplicated, in declared order."""
        stdout = self.run(
            compose_path=compose_path,
            env_path=env_path,
            stack_name=stack_name,
            args=["config", "--images"],
        )

        images: List[str] = []
        for line in stdout.splitlines():
            image = line.strip()
            if image and image not in images:
                images.append(image)
        return images

    def up(self, compose_path: str, env_path: str, stack_name: str) -> None:
        self.run(
            compose_path=compose_path,
            env_path=env_path,
            stack_name=stack_name,
            args=["up", "-d"],
        )

    def down(
        self,
        compose_path: str,
        env_path: str,
        stack_name: str,
        remove_volumes: bool = False,
    ) -> None:
        args = ["down"]
        if remove_volumes:
            args.append("-v")

        self.run(
            compose_path=compose_path,
            env_path=env_path,
            stack_name=stack_name,
            args=args,
        )
