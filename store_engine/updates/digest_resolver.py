#store_engine\updates\digest_resolver.py
"""
Digest resolver - compares local image digests with registry digests.

Best effort: every lookup failure degrades to None with a warning and never
raises into the caller.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional, Tuple

from store_engine.core.cache import TTLCache
from store_engine.core.engine import ContainerEngine
from store_engine.core.models import (
    ImageDigestState,
    InstalledStack,
    StoreAppUpdateState,
)

logger = logging.getLogger(__name__)

LOCAL_DIGEST_TTL_SECONDS = 30
REMOTE_DIGEST_TTL_SECONDS = 5 * 60


def extract_digest_from_repo_digest(repo_digest: str) -> Optional[str]:
    """`nginx@sha256:abc` -> `sha256:abc`"""
    if "@" not in repo_digest:
        return None
    digest = repo_digest.split("@", 1)[1].strip()
    return digest or None


def digest_from_image_reference(image: str) -> Optional[str]:
    """Digest pinned in the reference itself, if any."""
    if "@sha256:" not in image:
        return None
    return extract_digest_from_repo_digest(image)


def _digest_value(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _digest_from_manifest_object(manifest: Any) -> Optional[str]:
    if not isinstance(manifest, dict):
        return None

    descriptor = manifest.get("Descriptor")
    if isinstance(descriptor, dict):
        digest = _digest_value(descriptor.get("digest"))
        if digest:
            return digest

    digest = _digest_value(manifest.get("digest"))
    if digest:
        return digest

    # Manifest list: first platform entry
    for entry in manifest.get("manifests") or []:
        if isinstance(entry, dict):
            digest = _digest_value(entry.get("digest"))
            if digest:
                return digest

    return None


def parse_remote_digest_from_manifest_output(output: str) -> Optional[str]:
    if not output or not output.strip():
        return None

    try:
        parsed = json.loads(output)
    except ValueError:
        # CLI warnings or a non-JSON error body; callers fall back to another mode
        return None

    if isinstance(parsed, list):
        for item in parsed:
            digest = _digest_from_manifest_object(item)
            if digest:
                return digest
        return None

    return _digest_from_manifest_object(parsed)


class DigestResolver:
    """
    Resolves and caches image digests.

    Cache entries are stored as 1-tuples so a cached "unknown" (None) is
    distinguishable from a miss.
    """

    def __init__(
        self,
        engine: ContainerEngine,
        *,
        local_ttl: float = LOCAL_DIGEST_TTL_SECONDS,
        remote_ttl: float = REMOTE_DIGEST_TTL_SECONDS,
        max_entries: int = 1000,
    ):
        self._engine = engine
        self._local_cache: TTLCache[Tuple[Optional[str]]] = TTLCache(max_entries, local_ttl)
        self._remote_cache: TTLCache[Tuple[Optional[str]]] = TTLCache(max_entries, remote_ttl)
        self._pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="digest")

    # -------------------------
    # SINGLE DIGESTS
    # -------------------------

    def resolve_local_image_digest(self, image: str) -> Optional[str]:
        cached = self._local_cache.get(image)
        if cached is not None:
            return cached[0]

        digest = None
        try:
            for repo_digest in self._engine.inspect_local_digests(image):
                digest = extract_digest_from_repo_digest(repo_digest)
                if digest:
                    break
        except Exception as e:
            logger.warning(f"[digests] local digest lookup failed for {image}: {e}")
            digest = None

        self._local_cache.set(image, (digest,))
        return digest

    def resolve_remote_image_digest(self, image: str) -> Optional[str]:
        pinned = digest_from_image_reference(image)
        if pinned:
            return pinned

        cached = self._remote_cache.get(image)
        if cached is not None:
            return cached[0]

        digest = None
        try:
            digest = self._inspect_remote(image, verbose=True)
            if not digest:
                digest = self._inspect_remote(image, verbose=False)
        except Exception as e:
            logger.warning(f"[digests] remote digest lookup failed for {image}: {e}")
            digest = None

        self._remote_cache.set(image, (digest,))
        return digest

    def _inspect_remote(self, image: str, verbose: bool) -> Optional[str]:
        output = self._engine.inspect_remote_manifest(image, verbose)
        return parse_remote_digest_from_manifest_output(output)

    # -------------------------
    # STATES
    # -------------------------

    def resolve_image_digest_state(self, image: str) -> ImageDigestState:
        local_future = self._pool.submit(self.resolve_local_image_digest, image)
        remote_future = self._pool.submit(self.resolve_remote_image_digest, image)

        return ImageDigestState(
            image=image,
            local_digest=local_future.result(),
            remote_digest=remote_future.result(),
        )

    def resolve_store_app_update_state(self, stack: InstalledStack) -> StoreAppUpdateState:
        """
        First image with an update wins; otherwise the first image with any
        resolved digest is reported as up to date.
        """
        images: List[str] = self._engine.resolve_images(
            stack.compose_path,
            stack.env_path,
            stack.stack_name,
        )

        first_known: Optional[ImageDigestState] = None

        for image in images:
            state = self.resolve_image_digest_state(image)

            if state.update_available:
                return StoreAppUpdateState(
                    update_available=True,
                    local_digest=state.local_digest,
                    remote_digest=state.remote_digest,
                    image=image,
                )

            if first_known is None and (state.local_digest or state.remote_digest):
                first_known = state

        if first_known is not None:
            return StoreAppUpdateState(
                update_available=False,
                local_digest=first_known.local_digest,
                remote_digest=first_known.remote_digest,
                image=first_known.image,
            )

        return StoreAppUpdateState()

    def clear(self) -> None:
        self._local_cache.clear()
        self._remote_cache.clear()

    def close(self) -> None:
        self._pool.shutdown(wait=False)
