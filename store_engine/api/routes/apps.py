#store_engine\api\routes\apps.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from store_engine.api.container import get_store_service
from store_engine.api.schemas.store import (
    AppSettingsRequest,
    AppSettingsResponse,
    InstalledAppResponse,
    InstallRequest,
    OperationStartedResponse,
    RedeployRequest,
    UninstallRequest,
    UpdateCheckResponse,
)
from store_engine.core.errors import (
    AppNotInstalledError,
    OperationRunnerUnavailableError,
    StoreError,
    StoreValidationError,
    WebUiPortConflictError,
)
from store_engine.core.models import OperationAction

router = APIRouter(prefix="/store", tags=["store"])


def _raise_http(error: StoreError):
    if isinstance(error, OperationRunnerUnavailableError):
        raise HTTPException(status_code=503, detail=str(error)) from error
    if isinstance(error, AppNotInstalledError):
        raise HTTPException(status_code=404, detail=str(error)) from error
    if isinstance(error, WebUiPortConflictError):
        raise HTTPException(status_code=409, detail=str(error)) from error
    raise HTTPException(status_code=400, detail=str(error)) from error


@router.get("/apps", response_model=List[InstalledAppResponse])
def list_installed_apps(service=Depends(get_store_service)):
    return [
        InstalledAppResponse(
            app_id=stack.app_id,
            template_name=stack.template_name,
            stack_name=stack.stack_name,
            status=stack.status.value,
            display_name=stack.display_name,
            icon_url=stack.icon_url,
            web_ui_port=stack.web_ui_port,
            is_up_to_date=stack.is_up_to_date,
            installed_at=stack.installed_at,
            last_update_check=stack.last_update_check,
        )
        for stack in service.list_installed_apps()
    ]


@router.post(
    "/apps/{app_id}/install",
    status_code=202,
    response_model=OperationStartedResponse,
)
def install_app(
    app_id: str,
    request: Optional[InstallRequest] = None,
    service=Depends(get_store_service),
):
    request = request or InstallRequest()
    try:
        started = service.start_app_lifecycle_action(
            app_id,
            OperationAction.INSTALL,
            display_name=request.display_name,
            env=request.env,
            web_ui_port=request.web_ui_port,
        )
    except (StoreValidationError, OperationRunnerUnavailableError) as e:
        _raise_http(e)

    return OperationStartedResponse(operation_id=started["operationId"])


@router.post(
    "/apps/{app_id}/redeploy",
    status_code=202,
    response_model=OperationStartedResponse,
)
def redeploy_app(
    app_id: str,
    request: Optional[RedeployRequest] = None,
    service=Depends(get_store_service),
):
    request = request or RedeployRequest()
    try:
        started = service.start_app_lifecycle_action(
            app_id,
            OperationAction.REDEPLOY,
            env=request.env,
            web_ui_port=request.web_ui_port,
        )
    except (StoreValidationError, OperationRunnerUnavailableError) as e:
        _raise_http(e)

    return OperationStartedResponse(operation_id=started["operationId"])


@router.post(
    "/apps/{app_id}/uninstall",
    status_code=202,
    response_model=OperationStartedResponse,
)
def uninstall_app(
    app_id: str,
    request: Optional[UninstallRequest] = None,
    service=Depends(get_store_service),
):
    request = request or UninstallRequest()
    try:
        started = service.start_app_lifecycle_action(
            app_id,
            OperationAction.UNINSTALL,
            remove_volumes=request.remove_volumes,
        )
    except (StoreValidationError, OperationRunnerUnavailableError) as e:
        _raise_http(e)

    return OperationStartedResponse(operation_id=started["operationId"])


@router.patch("/apps/{app_id}/settings", response_model=AppSettingsResponse)
def save_app_settings(
    app_id: str,
    request: AppSettingsRequest,
    service=Depends(get_store_service),
):
    try:
        result = service.save_app_settings(
            app_id,
            display_name=request.display_name,
            icon_url=request.icon_url,
            env=request.env,
            web_ui_port=request.web_ui_port,
        )
    except (StoreValidationError, OperationRunnerUnavailableError) as e:
        _raise_http(e)

    return AppSettingsResponse(
        app_id=result["appId"],
        redeployed=result["redeployed"],
        operation_id=result["operationId"],
    )


@router.post("/check-updates", response_model=List[UpdateCheckResponse])
def check_updates(service=Depends(get_store_service)):
    return [
        UpdateCheckResponse(
            app_id=result.app_id,
            update_available=result.update_available,
            local_digest=result.local_digest,
            remote_digest=result.remote_digest,
        )
        for result in service.check_all_apps_for_updates()
    ]
