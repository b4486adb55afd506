import uvicorn
from fastapi import FastAPI
from evacuation_api.middlewares import setup_middlewares
from evacuation_api.exceptions import setup_exception_handlers
from evacuation_api.routers import evacuees
from evacuation_api.logging_config import logger

app = FastAPI(title="Evacuation API", version="1.0.0")

setup_middlewares(app)
setup_exception_handlers(app)

@app.on_event("startup")
async def startup_event():
    logger.info("Application starting", extra={"version": "1.0.0"})

app.include_router(evacuees.router)


@app.get("/")
def root():
    return {"ok": True, "docs": "/docs"}


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("main:app", reload=True, port=8001)
