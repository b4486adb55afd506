from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from evacuation_api.config import settings
import time
import logging

def setup_middlewares(app: FastAPI):
    # GZIP Compression - comprime respuestas > 1KB (listados por evento)
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger = logging.getLogger("uvicorn.error")

    @app.middleware("http")
    async def request_timing(request: Request, call_next):
        start = time.time()
        resp = await call_next(request)
        dur = (time.time() - start) * 1000
        resp.headers["X-Process-Time-Ms"] = f"{dur:.1f}"
        if resp.status_code >= 500:
            logger.error("%s %s -> %s (%.1f ms)", request.method, request.url.path, resp.status_code, dur)
        else:
            logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, resp.status_code, dur)
        return resp
