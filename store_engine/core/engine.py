#store_engine\core\engine.py

"""Container engine contract consumed by the orchestrator and digest resolver."""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from store_engine.core.models import PullEvent

PullEventHandler = Callable[[PullEvent], None]


class ContainerEngine(ABC):

    @abstractmethod
    def resolve_images(self, compose_path: str, env_path: str, stack_name: str) -> List[str]:
        """Images referenced by the compose stack, deduplicated, declared order."""
        raise NotImplementedError

    @abstractmethod
    def pull_image(self, image: str, on_event: Optional[PullEventHandler] = None) -> None:
        """Pull one image, calling on_event for every stream entry."""
        raise NotImplementedError

    @abstractmethod
    def compose_up(self, compose_path: str, env_path: str, stack_name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def compose_down(
        self,
        compose_path: str,
        env_path: str,
        stack_name: str,
        remove_volumes: bool = False,
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def inspect_local_digests(self, image: str) -> List[str]:
        """RepoDigests of the locally cached image (``name@sha256:...``)."""
        raise NotImplementedError

    @abstractmethod
    def inspect_remote_manifest(self, image: str, verbose: bool) -> str:
        """Raw JSON printed by the registry manifest introspection."""
        raise NotImplementedError
