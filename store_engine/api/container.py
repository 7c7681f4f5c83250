#store_engine\api\container.py
from fastapi import Depends

from store_engine.container import StoreContainer, get_container
from store_engine.orchestrator.operations import StoreOperationOrchestrator
from store_engine.orchestrator.service import StoreService


def get_store_container() -> StoreContainer:
    return get_container()


def get_store_service(container: StoreContainer = Depends(get_store_container)) -> StoreService:
    return container.service


def get_orchestrator(
    container: StoreContainer = Depends(get_store_container),
) -> StoreOperationOrchestrator:
    return container.orchestrator
