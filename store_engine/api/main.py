#store_engine\api\main.py

from fastapi import FastAPI

from store_engine.api.routes.apps import router as apps_router
from store_engine.api.routes.operations import router as operations_router

app = FastAPI(title="Store Engine API")


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(apps_router)
app.include_router(operations_router)
