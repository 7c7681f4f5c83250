#store_engine\container.py

"""Dependency injection container - wires all services together."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from sqlalchemy.orm import sessionmaker

from store_engine.catalog.resolver import ChainedTemplateResolver, InMemoryTemplateResolver
from store_engine.catalog.templates import BUILTIN_TEMPLATES
from store_engine.compose.materializer import ComposeMaterializer
from store_engine.config import StoreSettings, settings as default_settings
from store_engine.core.engine import ContainerEngine
from store_engine.core.events import LoggingEventEmitter, OperationEventBus
from store_engine.core.repository import OperationRepository, StackRepository
from store_engine.core.templates import TemplateResolver
from store_engine.docker.client import DockerContainerEngine
from store_engine.docker.compose_runner import ComposeRunner
from store_engine.infrastructure.postgres.repository import (
    PostgresOperationRepository,
    PostgresStackRepository,
)
from store_engine.orchestrator.operations import StoreOperationOrchestrator
from store_engine.orchestrator.runner import OperationRunner
from store_engine.orchestrator.service import StoreService
from store_engine.updates.digest_resolver import DigestResolver


@dataclass
class StoreContainer:
    settings: StoreSettings
    templates: TemplateResolver
    custom_apps: InMemoryTemplateResolver
    operations: OperationRepository
    stacks: StackRepository
    engine: ContainerEngine
    bus: OperationEventBus
    runner: OperationRunner
    orchestrator: StoreOperationOrchestrator
    digest_resolver: DigestResolver
    service: StoreService


def build_container(
    settings: Optional[StoreSettings] = None,
    *,
    session_factory: Optional[sessionmaker] = None,
    templates: Optional[TemplateResolver] = None,
    operations: Optional[OperationRepository] = None,
    stacks: Optional[StackRepository] = None,
    engine: Optional[ContainerEngine] = None,
) -> StoreContainer:
    settings = settings or default_settings

    # ============================================
    # REPOSITORIES
    # ============================================

    operations = operations or PostgresOperationRepository(session_factory)
    stacks = stacks or PostgresStackRepository(session_factory)
    custom_apps = InMemoryTemplateResolver()
    templates = templates or ChainedTemplateResolver([
        InMemoryTemplateResolver(BUILTIN_TEMPLATES),
        custom_apps,
    ])

    # ============================================
    # CONTAINER ENGINE
    # ============================================

    engine = engine or DockerContainerEngine(
        ComposeRunner(settings.docker_binary, timeout=settings.compose_timeout_seconds),
        docker_binary=settings.docker_binary,
        base_url=settings.docker_base_url,
        manifest_timeout=settings.manifest_timeout_seconds,
    )

    # ============================================
    # EVENTS / RUNNER
    # ============================================

    bus = OperationEventBus(
        max_events=settings.latest_event_cache_size,
        ttl_seconds=settings.latest_event_ttl_seconds,
    )
    runner = OperationRunner(max_concurrent=settings.max_concurrent_operations)

    # ============================================
    # SERVICES
    # ============================================

    orchestrator = StoreOperationOrchestrator(
        templates=templates,
        stacks=stacks,
        operations=operations,
        materializer=ComposeMaterializer(
            settings.stacks_root,
            fetch_timeout=settings.stack_fetch_timeout_seconds,
        ),
        engine=engine,
        bus=bus,
        runner=runner,
        emitters=[LoggingEventEmitter()],
    )

    digest_resolver = DigestResolver(
        engine,
        local_ttl=settings.local_digest_ttl_seconds,
        remote_ttl=settings.remote_digest_ttl_seconds,
        max_entries=settings.digest_cache_size,
    )

    service = StoreService(orchestrator, stacks, digest_resolver)

    return StoreContainer(
        settings=settings,
        templates=templates,
        custom_apps=custom_apps,
        operations=operations,
        stacks=stacks,
        engine=engine,
        bus=bus,
        runner=runner,
        orchestrator=orchestrator,
        digest_resolver=digest_resolver,
        service=service,
    )


@lru_cache(maxsize=1)
def get_container() -> StoreContainer:
    """Process-wide container backed by Postgres and the local Docker daemon."""
    return build_container()
