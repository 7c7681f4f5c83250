#store_engine\core\errors.py

# -----------------------------
# Base Errors
# -----------------------------

class StoreError(Exception):
    """Base class for all store engine errors."""
    pass


# -----------------------------
# Validation Errors
# -----------------------------

class StoreValidationError(StoreError):
    """Invalid input, detected before any external mutation."""
    pass


class UnsupportedEnvKeyError(StoreValidationError):
    """Env override names a key the template does not declare."""

    def __init__(self, keys):
        self.keys = sorted(keys)
        super().__init__(
            f"Unsupported env key(s): {', '.join(self.keys)}. "
            "Only template-defined env keys are allowed."
        )


class InvalidWebUiPortError(StoreValidationError):
    pass


class WebUiPortConflictError(StoreValidationError):
    def __init__(self, port: int, owner_app_id: str):
        self.port = port
        self.owner_app_id = owner_app_id
        super().__init__(f'webUiPort {port} is already used by "{owner_app_id}"')


class AppNotInstalledError(StoreValidationError):
    pass


# -----------------------------
# Lookup Errors
# -----------------------------

class TemplateNotFoundError(StoreError):
    def __init__(self, app_id: str):
        self.app_id = app_id
        super().__init__(f'Template not found for appId "{app_id}"')


# -----------------------------
# External Command Errors
# -----------------------------

class ComposeMaterializeError(StoreError):
    """Compose document could not be fetched or rendered."""
    pass


class ContainerEngineError(StoreError):
    """Container engine call failed."""
    pass


class ComposeCommandError(ContainerEngineError):
    def __init__(self, args, returncode: int, stderr: str):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f"exit code {returncode}"
        super().__init__(f"docker {' '.join(self.args_list)} failed: {detail}")


class ImagePullError(ContainerEngineError):
    pass


# -----------------------------
# Persistence Errors
# -----------------------------

class StorePersistenceError(StoreError):
    pass


class OperationAlreadyExists(StorePersistenceError):
    pass


class OperationNotFound(StorePersistenceError):
    pass


# -----------------------------
# Runtime Errors
# -----------------------------

class OperationRunnerUnavailableError(StoreError):
    """The runner no longer accepts work (process shutting down)."""
    pass
