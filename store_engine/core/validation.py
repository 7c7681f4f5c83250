#store_engine\core\validation.py
from typing import Dict, Iterable, Mapping, Optional

from store_engine.core.errors import (
    InvalidWebUiPortError,
    StoreValidationError,
    UnsupportedEnvKeyError,
)
from store_engine.core.models import OperationAction

MIN_WEB_UI_PORT = 1024
MAX_WEB_UI_PORT = 65535


def parse_action(action) -> OperationAction:
    if isinstance(action, OperationAction):
        return action

    try:
        return OperationAction(action)
    except ValueError:
        raise StoreValidationError(f"Unsupported action: {action!r}") from None


def validate_start_request(app_id: str, env: Optional[Mapping[str, str]]) -> None:
    # -------------------------
    # Identity
    # -------------------------
    if not app_id or not app_id.strip():
        raise StoreValidationError("appId is required")

    # -------------------------
    # Env overrides
    # -------------------------
    if env is not None and not isinstance(env, Mapping):
        raise StoreValidationError("env must be a mapping of strings")


def assert_valid_port(port) -> None:
    if isinstance(port, bool) or not isinstance(port, int):
        raise InvalidWebUiPortError("webUiPort must be an integer")

    if port < MIN_WEB_UI_PORT or port > MAX_WEB_UI_PORT:
        raise InvalidWebUiPortError(
            f"webUiPort must be between {MIN_WEB_UI_PORT} and {MAX_WEB_UI_PORT}"
        )


def merge_env(
    allowed_keys: Iterable[str],
    defaults: Mapping[str, str],
    existing: Mapping[str, str],
    overrides: Mapping[str, str],
) -> Dict[str, str]:
    """
    defaults, then existing values, then overrides.

    Override keys outside allowed_keys are rejected; stored values from an
    older template version are carried as-is.
    """
    allowed = set(allowed_keys)
    unknown = [key for key in overrides if key not in allowed]
    if unknown:
        raise UnsupportedEnvKeyError(unknown)

    merged = {**defaults, **existing}
    for key, value in overrides.items():
        merged[key] = str(value)

    return merged
