#store_engine\orchestrator\operations.py
"""Store operation orchestrator - install, redeploy and uninstall workflows."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional

from store_engine.compose.materializer import ComposeMaterializer, sanitize_stack_name
from store_engine.core.engine import ContainerEngine
from store_engine.core.errors import (
    AppNotInstalledError,
    OperationRunnerUnavailableError,
    TemplateNotFoundError,
    WebUiPortConflictError,
)
from store_engine.core.events import (
    EventEmitter,
    LoggingEventEmitter,
    MultiEventEmitter,
    OperationEventBus,
    OperationSubscriber,
    Unsubscribe,
)
from store_engine.core.models import (
    InstalledStack,
    Operation,
    OperationAction,
    OperationEvent,
    OperationEventType,
    PullEvent,
    StackStatus,
    utcnow,
)
from store_engine.core.repository import OperationRepository, StackRepository
from store_engine.core.templates import TemplateResolver
from store_engine.core.validation import (
    assert_valid_port,
    merge_env,
    parse_action,
    validate_start_request,
)
from store_engine.orchestrator.pull_progress import PullProgressAggregator, operation_percent
from store_engine.orchestrator.runner import OperationRunner

logger = logging.getLogger(__name__)

# Guards the port re-check + stack write at finalize across all workflows
_port_lock = threading.Lock()


@dataclass(frozen=True)
class OperationRequest:
    app_id: str
    action: OperationAction
    display_name: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)
    web_ui_port: Optional[int] = None
    remove_volumes: bool = False


class StoreOperationOrchestrator:
    """
    Runs lifecycle operations for store apps.

    Install / Redeploy:
        start(1) -> resolve -> validate -> render(8) -> pull-images(15..80)
        -> compose-up(85) -> finalize(95) -> completed(100)

    Uninstall:
        start(1) -> compose-down(35) -> cleanup(80) -> completed(100)
        (or start -> noop(90) -> completed when nothing is installed)

    Every phase is persisted, then emitted. Any exception ends the operation
    in error; nothing already done is rolled back.
    """

    def __init__(
        self,
        *,
        templates: TemplateResolver,
        stacks: StackRepository,
        operations: OperationRepository,
        materializer: ComposeMaterializer,
        engine: ContainerEngine,
        bus: Optional[OperationEventBus] = None,
        runner: Optional[OperationRunner] = None,
        emitters: Optional[Iterable[EventEmitter]] = None,
    ):
        self._templates = templates
        self._stacks = stacks
        self._operations = operations
        self._materializer = materializer
        self._engine = engine

        self.bus = bus or OperationEventBus()
        self.runner = runner or OperationRunner()

        extra = list(emitters) if emitters is not None else [LoggingEventEmitter()]
        self._emitter = MultiEventEmitter([self.bus, *extra])
        self.runner.add_drop_listener(self._on_dropped)

    # ============================================
    # PUBLIC CONTRACT
    # ============================================

    def start_operation(
        self,
        app_id: str,
        action,
        display_name: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        web_ui_port: Optional[int] = None,
        remove_volumes: bool = False,
    ) -> Dict[str, str]:
        """
        Create a queued operation and hand it to the runner.

        Returns immediately with {"operationId": ...}. Only malformed input is
        rejected here; everything else ends up on the operation record.
        """
        parsed_action = parse_action(action)
        validate_start_request(app_id, env)

        if not self.runner.is_accepting():
            raise OperationRunnerUnavailableError("Operation runner is shut down")

        request = OperationRequest(
            app_id=app_id,
            action=parsed_action,
            display_name=display_name,
            env={key: str(value) for key, value in (env or {}).items()},
            web_ui_port=web_ui_port,
            remove_volumes=remove_volumes,
        )

        operation = Operation.new(app_id, parsed_action)
        self._operations.create(operation)

        logger.info(
            f"[orchestrator] queued {parsed_action.value} for {app_id} "
            f"(operation={operation.operation_id})"
        )

        try:
            self.runner.submit(
                operation.operation_id,
                app_id,
                lambda: self._run_operation(operation.operation_id, request),
            )
        except RuntimeError as e:
            # Runner shut down between the check above and submit
            self._fail(operation, OperationRunnerUnavailableError(str(e)))
            raise OperationRunnerUnavailableError(str(e)) from e

        return {"operationId": operation.operation_id}

    def get_operation(self, operation_id: str) -> Optional[Operation]:
        return self._operations.get(operation_id)

    def subscribe(self, operation_id: str, on_event: OperationSubscriber) -> Unsubscribe:
        return self.bus.subscribe(operation_id, on_event)

    def get_latest_event(self, operation_id: str) -> Optional[OperationEvent]:
        return self.bus.latest(operation_id)

    def wait_for(self, operation_id: str, timeout: Optional[float] = None) -> bool:
        return self.runner.wait_for(operation_id, timeout)

    # ============================================
    # WORKFLOW BOUNDARY
    # ============================================

    def _run_operation(self, operation_id: str, request: OperationRequest) -> None:
        operation = self._operations.get(operation_id)
        if operation is None:
            logger.error(f"[orchestrator] operation {operation_id} vanished before start")
            return

        try:
            operation.start()
            operation.advance("start", 1)
            self._save(operation)
            self._emit(
                operation,
                OperationEventType.STARTED,
                message=f"{request.action.value} started for {request.app_id}",
            )

            if request.action == OperationAction.UNINSTALL:
                self._run_uninstall(operation, request)
            else:
                self._run_deploy(operation, request)

            operation.succeed()
            self._save(operation)
            self._emit(operation, OperationEventType.COMPLETED, message=f"{request.action.value} completed")

        except Exception as e:
            logger.error(
                f"[orchestrator] [{operation_id}] ❌ {request.action.value} failed for "
                f"{request.app_id} at step '{operation.current_step}': {e}",
                exc_info=True,
            )
            self._fail(operation, e)

    def _on_dropped(self, operation_id: str) -> None:
        operation = self._operations.get(operation_id)
        if operation is None or operation.is_terminal():
            return

        logger.warning(f"[orchestrator] [{operation_id}] dropped by runner shutdown before start")
        self._fail(
            operation,
            OperationRunnerUnavailableError("Operation runner shut down before the operation started"),
        )

    def _fail(self, operation: Operation, error: Exception) -> None:
        message = str(error) or error.__class__.__name__

        try:
            operation.fail(message)
            self._save(operation)
            self._emit(operation, OperationEventType.FAILED, message=message)
        except Exception as persist_error:
            logger.error(
                f"[orchestrator] [{operation.operation_id}] failed to record error state: {persist_error}",
                exc_info=True,
            )

    # ============================================
    # INSTALL / REDEPLOY
    # ============================================

    def _run_deploy(self, operation: Operation, request: OperationRequest) -> None:
        app_id = request.app_id
        is_redeploy = request.action == OperationAction.REDEPLOY

        # -------------------------
        # Resolve
        # -------------------------
        template = self._templates.find_template(app_id)
        if template is None:
            raise TemplateNotFoundError(app_id)

        existing = self._stacks.get(app_id)
        if is_redeploy and (existing is None or not existing.is_active()):
            raise AppNotInstalledError(f'App "{app_id}" is not installed')

        # -------------------------
        # Validate (before any write)
        # -------------------------
        env = merge_env(
            template.env_names,
            template.env_defaults,
            existing.env if is_redeploy else {},
            request.env,
        )

        web_ui_port = request.web_ui_port
        if web_ui_port is None and is_redeploy:
            web_ui_port = existing.web_ui_port

        if web_ui_port is not None:
            assert_valid_port(web_ui_port)
            self._assert_port_available(web_ui_port, app_id)

        if existing is not None:
            stack_name = existing.stack_name
        else:
            stack_name = sanitize_stack_name(app_id, request.display_name or template.name)

        # -------------------------
        # Render
        # -------------------------
        self._step(operation, "render", 8, message="Rendering compose stack")
        materialized = self._materializer.materialize(
            app_id=app_id,
            stack_name=stack_name,
            source=template.source,
            env=env,
            web_ui_port=web_ui_port,
        )

        # -------------------------
        # Pull images
        # -------------------------
        self._step(operation, "pull-images", operation_percent(0), message="Pulling images")
        images = self._engine.resolve_images(
            materialized.compose_path,
            materialized.env_path,
            materialized.stack_name,
        )
        self._pull_images(operation, images)

        # -------------------------
        # Compose up
        # -------------------------
        self._step(operation, "compose-up", 85, message="Starting containers")
        self._engine.compose_up(
            materialized.compose_path,
            materialized.env_path,
            materialized.stack_name,
        )

        # -------------------------
        # Finalize
        # -------------------------
        self._step(operation, "finalize", 95, message="Saving installed stack")

        stack = InstalledStack(
            app_id=app_id,
            template_name=template.template_name,
            stack_name=materialized.stack_name,
            compose_path=materialized.compose_path,
            status=StackStatus.INSTALLED,
            web_ui_port=materialized.web_ui_port,
            env=env,
            display_name=request.display_name or (existing.display_name if existing else None),
            icon_url=existing.icon_url if existing else None,
            installed_at=existing.installed_at if existing else None,
            updated_at=utcnow(),
            is_up_to_date=True,
            local_digest=existing.local_digest if existing else None,
            remote_digest=existing.remote_digest if existing else None,
            last_update_check=existing.last_update_check if existing else None,
        )

        with _port_lock:
            if stack.web_ui_port is not None:
                self._assert_port_available(stack.web_ui_port, app_id)
            self._stacks.upsert(stack, mark_installed_at=True)

    def _pull_images(self, operation: Operation, images) -> None:
        aggregator = PullProgressAggregator(images)

        for image in images:

            def on_event(event: PullEvent, image=image) -> None:
                self._on_pull_event(operation, aggregator, image, event)

            self._engine.pull_image(image, on_event=on_event)

            percent = operation_percent(aggregator.complete(image))
            self._step(operation, "pull-images", percent, message=f"Pulled {image}", image=image)

    def _on_pull_event(
        self,
        operation: Operation,
        aggregator: PullProgressAggregator,
        image: str,
        event: PullEvent,
    ) -> None:
        before = operation.progress_percent
        operation.advance("pull-images", operation_percent(aggregator.update(image, event)))

        # Layer events are chatty; persist only when the integer percent moves
        if operation.progress_percent != before:
            self._save(operation)

        self._emit(
            operation,
            OperationEventType.PULL_PROGRESS,
            image=image,
            docker_status=event.status,
            progress_detail=event.progress_detail,
        )

    # ============================================
    # UNINSTALL
    # ============================================

    def _run_uninstall(self, operation: Operation, request: OperationRequest) -> None:
        stack = self._stacks.get(request.app_id)

        if stack is None or not stack.is_active():
            self._step(operation, "noop", 90, message="App is not installed, nothing to do")
            return

        self._step(operation, "compose-down", 35, message="Stopping containers")
        self._engine.compose_down(
            stack.compose_path,
            stack.env_path,
            stack.stack_name,
            remove_volumes=request.remove_volumes,
        )

        self._step(operation, "cleanup", 80, message="Marking app as not installed")
        self._stacks.mark_not_installed(request.app_id)

    # ============================================
    # HELPERS
    # ============================================

    def _assert_port_available(self, port: int, app_id: str) -> None:
        owner = self._stacks.find_by_web_ui_port(port, exclude_app_id=app_id)
        if owner is not None:
            raise WebUiPortConflictError(port, owner.app_id)

    def _step(self, operation: Operation, step: str, percent: float, **event_fields) -> None:
        operation.advance(step, percent)
        self._save(operation)
        self._emit(operation, OperationEventType.STEP, **event_fields)

    def _save(self, operation: Operation) -> None:
        self._operations.update(operation)

    def _emit(self, operation: Operation, event_type: OperationEventType, **event_fields) -> None:
        self._emitter.emit(OperationEvent.from_operation(operation, event_type, **event_fields))
