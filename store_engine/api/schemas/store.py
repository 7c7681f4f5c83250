#store_engine\api\schemas\store.py

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -------------------------
# Requests
# -------------------------

class InstallRequest(CamelModel):
    display_name: Optional[str] = None
    env: Dict[str, str] = Field(default_factory=dict)
    web_ui_port: Optional[int] = None


class RedeployRequest(CamelModel):
    env: Dict[str, str] = Field(default_factory=dict)
    web_ui_port: Optional[int] = None


class UninstallRequest(CamelModel):
    remove_volumes: bool = False


class AppSettingsRequest(CamelModel):
    display_name: Optional[str] = None
    icon_url: Optional[str] = None
    env: Optional[Dict[str, str]] = None
    web_ui_port: Optional[int] = None


# -------------------------
# Responses
# -------------------------

class OperationStartedResponse(CamelModel):
    operation_id: str


class OperationResponse(CamelModel):
    id: str
    app_id: str
    action: str
    status: str
    progress_percent: int
    current_step: str
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppSettingsResponse(CamelModel):
    app_id: str
    redeployed: bool
    operation_id: Optional[str] = None


class InstalledAppResponse(CamelModel):
    app_id: str
    template_name: str
    stack_name: str
    status: str
    display_name: Optional[str] = None
    icon_url: Optional[str] = None
    web_ui_port: Optional[int] = None
    is_up_to_date: bool
    installed_at: Optional[datetime] = None
    last_update_check: Optional[datetime] = None


class UpdateCheckResponse(CamelModel):
    app_id: str
    update_available: bool
    local_digest: Optional[str] = None
    remote_digest: Optional[str] = None
