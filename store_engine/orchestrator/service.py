#store_engine\orchestrator\service.py
"""Store service - app lifecycle, settings and update checks."""

import logging
from typing import Any, Dict, List, Mapping, Optional

from store_engine.core.errors import AppNotInstalledError, WebUiPortConflictError
from store_engine.core.models import (
    InstalledStack,
    Operation,
    OperationAction,
    UpdateCheckResult,
)
from store_engine.core.repository import StackRepository
from store_engine.core.validation import assert_valid_port
from store_engine.orchestrator.operations import StoreOperationOrchestrator
from store_engine.updates.digest_resolver import DigestResolver

logger = logging.getLogger(__name__)


class StoreService:
    """Application-facing facade over the orchestrator and the stack table."""

    def __init__(
        self,
        orchestrator: StoreOperationOrchestrator,
        stacks: StackRepository,
        digest_resolver: DigestResolver,
    ):
        self._orchestrator = orchestrator
        self._stacks = stacks
        self._digests = digest_resolver

    # -------------------------
    # LIFECYCLE
    # -------------------------

    def start_app_lifecycle_action(
        self,
        app_id: str,
        action,
        *,
        display_name: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        web_ui_port: Optional[int] = None,
        remove_volumes: bool = False,
    ) -> Dict[str, str]:
        return self._orchestrator.start_operation(
            app_id,
            action,
            display_name=display_name,
            env=env,
            web_ui_port=web_ui_port,
            remove_volumes=remove_volumes,
        )

    def get_operation(self, operation_id: str) -> Optional[Operation]:
        return self._orchestrator.get_operation(operation_id)

    def list_installed_apps(self) -> List[InstalledStack]:
        return [stack for stack in self._stacks.list_all() if stack.is_active()]

    # -------------------------
    # SETTINGS
    # -------------------------

    def save_app_settings(
        self,
        app_id: str,
        *,
        display_name: Optional[str] = None,
        icon_url: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        web_ui_port: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Patch display metadata right away; env or port changes trigger a
        redeploy operation.

        An empty string clears a metadata field; None leaves it untouched.
        """
        stack = self._stacks.get(app_id)
        if stack is None or not stack.is_active():
            raise AppNotInstalledError(f'App "{app_id}" is not installed')

        meta: Dict[str, Optional[str]] = {}
        if display_name is not None:
            meta["display_name"] = display_name.strip() or None
        if icon_url is not None:
            meta["icon_url"] = icon_url.strip() or None
        if meta:
            self._stacks.patch_meta(app_id, meta)

        env_changed = bool(env) and any(
            stack.env.get(key) != str(value) for key, value in env.items()
        )
        port_changed = web_ui_port is not None and web_ui_port != stack.web_ui_port

        if port_changed:
            assert_valid_port(web_ui_port)
            owner = self._stacks.find_by_web_ui_port(web_ui_port, exclude_app_id=app_id)
            if owner is not None:
                raise WebUiPortConflictError(web_ui_port, owner.app_id)

        if not (env_changed or port_changed):
            return {"appId": app_id, "redeployed": False, "operationId": None}

        logger.info(
            f"[store] settings changed for {app_id} "
            f"(env={env_changed}, port={port_changed}), redeploying"
        )
        started = self._orchestrator.start_operation(
            app_id,
            OperationAction.REDEPLOY,
            env=env,
            web_ui_port=web_ui_port,
        )
        return {"appId": app_id, "redeployed": True, "operationId": started["operationId"]}

    # -------------------------
    # UPDATE CHECKS
    # -------------------------

    def check_app_for_updates(self, stack: InstalledStack) -> UpdateCheckResult:
        state = self._digests.resolve_store_app_update_state(stack)

        self._stacks.update_update_status(
            stack.app_id,
            is_up_to_date=not state.update_available,
            local_digest=state.local_digest,
            remote_digest=state.remote_digest,
        )

        return UpdateCheckResult(
            app_id=stack.app_id,
            update_available=state.update_available,
            local_digest=state.local_digest,
            remote_digest=state.remote_digest,
        )

    def check_all_apps_for_updates(self) -> List[UpdateCheckResult]:
        """Check every installed app; one failing app never stops the others."""
        results: List[UpdateCheckResult] = []

        for stack in self.list_installed_apps():
            try:
                result = self.check_app_for_updates(stack)
            except Exception as e:
                logger.error(f"[updates] check failed for {stack.app_id}: {e}")
                continue

            if result.update_available:
                logger.info(f"[updates] ⬆️ update available for {stack.app_id}")
            results.append(result)

        return results
