#store_engine\docker\client.py
"""Docker container engine - image pulls, digests and compose via the local daemon."""

import logging
import subprocess
from typing import Any, List, Optional

import docker
from docker.errors import APIError, DockerException, ImageNotFound

from store_engine.core.engine import ContainerEngine, PullEventHandler
from store_engine.core.errors import ContainerEngineError, ImagePullError
from store_engine.core.models import ProgressDetail, PullEvent
from store_engine.docker.compose_runner import ComposeRunner

logger = logging.getLogger(__name__)


def _string_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def parse_pull_event(raw: Any) -> Optional[PullEvent]:
    """Normalize one decoded entry of the /images/create stream."""
    if not isinstance(raw, dict):
        return None

    status = raw.get("status")
    detail = raw.get("progressDetail")

    progress_detail = None
    if isinstance(detail, dict):
        progress_detail = ProgressDetail.from_counters(detail.get("current"), detail.get("total"))

    error = _string_or_none(raw.get("error"))
    if error is None and isinstance(raw.get("errorDetail"), dict):
        error = _string_or_none(raw["errorDetail"].get("message"))

    return PullEvent(
        status=status if isinstance(status, str) else "unknown",
        layer_id=_string_or_none(raw.get("id")),
        progress=_string_or_none(raw.get("progress")),
        progress_detail=progress_detail,
        error=error,
    )


class DockerContainerEngine(ContainerEngine):
    """
    ContainerEngine backed by the docker SDK (pulls, local digests) and the
    docker CLI (compose, registry manifests).
    """

    def __init__(
        self,
        compose: ComposeRunner,
        *,
        docker_binary: str = "docker",
        base_url: Optional[str] = None,
        manifest_timeout: int = 60,
        client: Optional[docker.DockerClient] = None,
    ):
        self._compose = compose
        self._docker_binary = docker_binary
        self._base_url = base_url
        self._manifest_timeout = manifest_timeout
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            try:
                if self._base_url:
                    self._client = docker.DockerClient(base_url=self._base_url)
                else:
                    self._client = docker.from_env()
                logger.info("✅ Connected to Docker daemon")
            except DockerException as e:
                raise ContainerEngineError(f"Failed to connect to Docker: {e}") from e
        return self._client

    # -------------------------
    # COMPOSE
    # -------------------------

    def resolve_images(self, compose_path: str, env_path: str, stack_name: str) -> List[str]:
        return self._compose.config_images(compose_path, env_path, stack_name)

    def compose_up(self, compose_path: str, env_path: str, stack_name: str) -> None:
        self._compose.up(compose_path, env_path, stack_name)

    def compose_down(
        self,
        compose_path: str,
        env_path: str,
        stack_name: str,
        remove_volumes: bool = False,
    ) -> None:
        self._compose.down(compose_path, env_path, stack_name, remove_volumes=remove_volumes)

    # -------------------------
    # IMAGES
    # -------------------------

    def pull_image(self, image: str, on_event: Optional[PullEventHandler] = None) -> None:
        """Stream a pull; an `error` entry in the stream aborts it."""
        logger.info(f"[docker] pulling {image}")

        try:
            for raw in self.client.api.pull(image, stream=True, decode=True):
                event = parse_pull_event(raw)
                if event is None:
                    continue

                if event.error:
                    raise ImagePullError(event.error)

                if on_event:
                    on_event(event)
        except APIError as e:
            raise ImagePullError(f"Docker pull failed for {image}: {e.explanation or e}") from e
        except DockerException as e:
            raise ImagePullError(f"Docker pull failed for {image}: {e}") from e

        logger.info(f"[docker] ✅ pulled {image}")

    def inspect_local_digests(self, image: str) -> List[str]:
        try:
            attrs = self.client.images.get(image).attrs
        except ImageNotFound:
            return []
        except DockerException as e:
            raise ContainerEngineError(f"Failed to inspect image {image}: {e}") from e

        repo_digests = attrs.get("RepoDigests") or []
        return [value for value in repo_digests if isinstance(value, str)]

    def inspect_remote_manifest(self, image: str, verbose: bool) -> str:
        args = [self._docker_binary, "manifest", "inspect"]
        if verbose:
            args.append("--verbose")
        args.append(image)

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self._manifest_timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ContainerEngineError(f"docker manifest inspect {image} failed: {e}") from e

        if result.returncode != 0:
            raise ContainerEngineError(
                f"docker manifest inspect {image} failed: {result.stderr.strip()}"
            )

        return result.stdout
