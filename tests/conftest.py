#tests\conftest.py

"""Pytest configuration and fixtures."""

import threading
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from store_engine.catalog.resolver import InMemoryTemplateResolver
from store_engine.compose.materializer import ComposeMaterializer
from store_engine.core.engine import ContainerEngine
from store_engine.core.errors import ImagePullError
from store_engine.core.events import LoggingEventEmitter, OperationEventBus, RecordingEventEmitter
from store_engine.core.models import InstalledStack, ProgressDetail, PullEvent, StackStatus
from store_engine.core.templates import EnvDefinition, InlineTemplateSource, StoreTemplate
from store_engine.infrastructure.memory.repository import (
    InMemoryOperationRepository,
    InMemoryStackRepository,
)
from store_engine.infrastructure.postgres.database import drop_db, get_session_factory, init_db
from store_engine.infrastructure.postgres import models  # noqa: F401
from store_engine.orchestrator.operations import StoreOperationOrchestrator
from store_engine.orchestrator.runner import OperationRunner
from store_engine.orchestrator.service import StoreService
from store_engine.updates.digest_resolver import DigestResolver


ADGUARD_COMPOSE = """services:
  adguard:
    image: adguard/adguardhome:latest
    environment:
      - TZ=${TZ}
    ports:
      - "3000:3000"
      - "53:53/udp"
"""

NGINX_COMPOSE = """services:
  web:
    image: nginx:${NGINX_VERSION}
    ports:
      - "8080:80"
"""

NO_PORTS_COMPOSE = """services:
  worker:
    image: busybox:latest
"""


# ============================================
# Fake container engine
# ============================================

class FakeContainerEngine(ContainerEngine):
    """Records every call; behaviour is configured per test."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.images: List[str] = ["adguard/adguardhome:latest"]
        self.pull_events: Dict[str, List[PullEvent]] = {}
        self.pull_errors: Dict[str, Exception] = {}
        self.compose_up_error: Optional[Exception] = None
        self.compose_down_error: Optional[Exception] = None
        self.local_digests: Dict[str, List[str]] = {}
        self.remote_manifests: Dict[tuple, object] = {}
        self.up_gate: Optional[threading.Event] = None
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def calls_named(self, name: str) -> List[tuple]:
        with self._lock:
            return [call for call in self.calls if call[0] == name]

    def resolve_images(self, compose_path, env_path, stack_name):
        self._record("resolve_images", compose_path, env_path, stack_name)
        return list(self.images)

    def pull_image(self, image, on_event=None):
        self._record("pull_image", image)
        for event in self.pull_events.get(image, []):
            if on_event:
                on_event(event)
        if image in self.pull_errors:
            raise self.pull_errors[image]

    def compose_up(self, compose_path, env_path, stack_name):
        self._record("compose_up", compose_path, env_path, stack_name)
        if self.up_gate is not None:
            self.up_gate.wait(5)
        if self.compose_up_error:
            raise self.compose_up_error

    def compose_down(self, compose_path, env_path, stack_name, remove_volumes=False):
        self._record("compose_down", compose_path, env_path, stack_name, remove_volumes)
        if self.compose_down_error:
            raise self.compose_down_error

    def inspect_local_digests(self, image):
        self._record("inspect_local_digests", image)
        value = self.local_digests.get(image, [])
        if isinstance(value, Exception):
            raise value
        return list(value)

    def inspect_remote_manifest(self, image, verbose):
        self._record("inspect_remote_manifest", image, verbose)
        value = self.remote_manifests.get((image, verbose), "")
        if isinstance(value, Exception):
            raise value
        return value


def pull_event(status: str, current: int = 0, total: int = 0, layer: str = "layer1") -> PullEvent:
    detail = ProgressDetail.from_counters(current, total) if total else None
    return PullEvent(status=status, layer_id=layer, progress_detail=detail)


# ============================================
# Templates
# ============================================

@pytest.fixture
def adguard_template():
    return StoreTemplate(
        app_id="adguard-home",
        template_name="adguard-home",
        name="AdGuard Home",
        source=InlineTemplateSource(compose_content=ADGUARD_COMPOSE),
        env=[EnvDefinition(name="TZ", default="UTC")],
    )


@pytest.fixture
def nginx_template():
    return StoreTemplate(
        app_id="nginx",
        template_name="nginx",
        name="Nginx",
        source=InlineTemplateSource(compose_content=NGINX_COMPOSE),
        env=[
            EnvDefinition(name="NGINX_VERSION", default="alpine"),
            EnvDefinition(name="TZ", default="UTC"),
        ],
    )


@pytest.fixture
def templates(adguard_template, nginx_template):
    return InMemoryTemplateResolver([adguard_template, nginx_template])


# ============================================
# Repositories / collaborators
# ============================================

@pytest.fixture
def operation_repository():
    return InMemoryOperationRepository()


@pytest.fixture
def stack_repository():
    return InMemoryStackRepository()


@pytest.fixture
def engine():
    return FakeContainerEngine()


@pytest.fixture
def stacks_root(tmp_path):
    return tmp_path / "Apps"


@pytest.fixture
def materializer(stacks_root):
    return ComposeMaterializer(str(stacks_root))


@pytest.fixture
def recorder():
    return RecordingEventEmitter()


@pytest.fixture
def bus():
    return OperationEventBus(max_events=100)


@pytest.fixture
def orchestrator(templates, stack_repository, operation_repository, materializer, engine, bus, recorder):
    """Orchestrator wired with in-memory repositories and the fake engine."""
    runner = OperationRunner(max_concurrent=2)
    orchestrator = StoreOperationOrchestrator(
        templates=templates,
        stacks=stack_repository,
        operations=operation_repository,
        materializer=materializer,
        engine=engine,
        bus=bus,
        runner=runner,
        emitters=[recorder, LoggingEventEmitter()],
    )

    yield orchestrator

    runner.shutdown(wait=True, timeout=5)


@pytest.fixture
def run_operation(orchestrator):
    """Start an operation and block until its workflow returns."""

    def _run(app_id, action, **kwargs):
        started = orchestrator.start_operation(app_id, action, **kwargs)
        assert orchestrator.wait_for(started["operationId"], timeout=5)
        return orchestrator.get_operation(started["operationId"])

    return _run


@pytest.fixture
def digest_resolver(engine):
    resolver = DigestResolver(engine)
    yield resolver
    resolver.close()


@pytest.fixture
def store_service(orchestrator, stack_repository, digest_resolver):
    return StoreService(orchestrator, stack_repository, digest_resolver)


@pytest.fixture
def installed_stack(stack_repository, stacks_root):
    """An installed adguard-home stack on port 3001."""
    stack = InstalledStack(
        app_id="adguard-home",
        template_name="adguard-home",
        stack_name="adguard-home",
        compose_path=str(stacks_root / "adguard-home" / "docker-compose.yml"),
        status=StackStatus.INSTALLED,
        web_ui_port=3001,
        env={"TZ": "Europe/Paris"},
    )
    stack_repository.upsert(stack, mark_installed_at=True)
    return stack_repository.get("adguard-home")


# ============================================
# SQLite-backed SQLAlchemy repositories
# ============================================

@pytest.fixture
def sqlite_engine():
    """In-memory SQLite shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)

    yield engine

    drop_db(engine)
    engine.dispose()


@pytest.fixture
def test_session_factory(sqlite_engine):
    """Create session factory for tests."""
    return get_session_factory(sqlite_engine)
