#store_engine\compose\materializer.py
"""Compose materializer - renders the compose document and env file of a stack."""

import logging
import os
import re
import time
from typing import Mapping, Optional
from urllib.parse import urlparse

import requests

from store_engine.core.errors import ComposeMaterializeError
from store_engine.core.models import MaterializedStack
from store_engine.core.templates import (
    InlineTemplateSource,
    RepositoryTemplateSource,
    TemplateSource,
)

logger = logging.getLogger(__name__)

COMPOSE_FILE_NAME = "docker-compose.yml"
ENV_FILE_NAME = ".env"

# "- 8080:80", - "8080:80/tcp", - '8080:80:81'
PUBLISHED_PORT_LINE = re.compile(
    r"""^(\s*-\s*["']?)(\d+)(:\d+(?::\d+)?(?:/[a-z]+)?["']?\s*)$""",
    re.IGNORECASE,
)


def _sanitize_segment(value: str) -> str:
    lowered = value.strip().lower()
    return re.sub(r"[^a-z0-9-]+", "-", lowered).strip("-")


def sanitize_stack_name(app_id: str, display_name: Optional[str] = None) -> str:
    """Compose project name derived from the display name, else the app id."""
    source = display_name if display_name and display_name.strip() else app_id
    sanitized = _sanitize_segment(source)

    if not sanitized:
        return f"app-{int(time.time() * 1000)}"

    return sanitized[:63]


def build_raw_stack_file_url(repository_url: str, stack_file: str) -> str:
    parsed = urlparse(repository_url)
    if parsed.hostname != "github.com":
        raise ComposeMaterializeError(f"Unsupported repository URL: {repository_url}")

    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) < 2:
        raise ComposeMaterializeError(f"Invalid repository URL: {repository_url}")

    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[:-4]

    return f"https://raw.githubusercontent.com/{owner}/{repo}/main/{stack_file}"


def serialize_env_file(env: Mapping[str, str]) -> str:
    return "\n".join(f"{key}={env[key] if env[key] is not None else ''}" for key in sorted(env))


def apply_web_ui_port_override(compose_content: str, web_ui_port: int) -> str:
    """
    Replace the host port of the first published port mapping.

    Positional: assumes the first numeric mapping belongs to the web UI service.
    """
    lines = compose_content.split("\n")

    for index, line in enumerate(lines):
        match = PUBLISHED_PORT_LINE.match(line)
        if not match:
            continue

        lines[index] = f"{match.group(1)}{web_ui_port}{match.group(3)}"
        return "\n".join(lines)

    raise ComposeMaterializeError(
        "Unable to override web UI port: no numeric published port mapping found"
    )


class ComposeMaterializer:
    """Writes <stacks_root>/<app_id>/docker-compose.yml and .env."""

    def __init__(
        self,
        stacks_root: str,
        *,
        http_session: Optional[requests.Session] = None,
        fetch_timeout: int = 30,
    ):
        self.stacks_root = os.path.abspath(stacks_root)
        self._http = http_session or requests.Session()
        self._fetch_timeout = fetch_timeout

    def stack_dir(self, app_id: str) -> str:
        return os.path.join(self.stacks_root, app_id)

    def materialize(
        self,
        *,
        app_id: str,
        stack_name: str,
        source: TemplateSource,
        env: Mapping[str, str],
        web_ui_port: Optional[int] = None,
    ) -> MaterializedStack:
        """
        Render and write the stack files.

        Steps:
        1. Load compose text (remote fetch or inline)
        2. Apply the web UI port override, if any
        3. Write compose file and sorted env file

        Writes are not atomic: a crash mid-way can leave a partial stack dir.
        """
        compose_content = self._load_compose(source)

        if web_ui_port is not None:
            compose_content = apply_web_ui_port_override(compose_content, web_ui_port)

        stack_dir = self.stack_dir(app_id)
        compose_path = os.path.join(stack_dir, COMPOSE_FILE_NAME)
        env_path = os.path.join(stack_dir, ENV_FILE_NAME)

        os.makedirs(stack_dir, exist_ok=True)
        with open(compose_path, "w", encoding="utf-8") as handle:
            handle.write(compose_content)
        with open(env_path, "w", encoding="utf-8") as handle:
            handle.write(serialize_env_file(env))

        logger.info(f"[materializer] {app_id} -> {compose_path} (port={web_ui_port})")

        return MaterializedStack(
            stack_dir=stack_dir,
            compose_path=compose_path,
            env_path=env_path,
            stack_name=stack_name,
            web_ui_port=web_ui_port,
        )

    def _load_compose(self, source: TemplateSource) -> str:
        if isinstance(source, InlineTemplateSource):
            return source.compose_content

        if isinstance(source, RepositoryTemplateSource):
            return self._fetch_stack_file(source)

        raise ComposeMaterializeError(f"Unsupported template source: {source!r}")

    def _fetch_stack_file(self, source: RepositoryTemplateSource) -> str:
        raw_url = build_raw_stack_file_url(source.repository_url, source.stack_file)

        try:
            response = self._http.get(
                raw_url,
                timeout=self._fetch_timeout,
                headers={"Cache-Control": "no-cache"},
            )
        except requests.exceptions.RequestException as e:
            raise ComposeMaterializeError(f"Failed to fetch stack file from {raw_url}: {e}") from e

        if not response.ok:
            raise ComposeMaterializeError(
                f"Failed to fetch stack file ({response.status_code}) from {raw_url}"
            )

        return response.text
