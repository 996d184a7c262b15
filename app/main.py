import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from routers.router import router
from core.lifespan import lifespan
from core.config import settings
from core.logger import logger
from core.rate_limiter import limiter

# Browser uploads come from the configured frontend; everything else is open
origins = [settings.FRONTEND_ENDPOINT, settings.BACKEND_ENDPOINT] if settings.ENABLE_CORS else ["*"]

app = FastAPI(
    title="Video Upload Ingress",
    description="""
    Accepts video uploads and stores them in object storage, where a bucket
    notification queues them for transcoding.

    **POST /api/v1/upload** - multipart form with a `video` file field.
    Responds in plain text: `Uploaded as upload-<uuid>.mp4`.

    **GET /api/v1/health** - object storage and queue connectivity.
    """,
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid4().hex
    started = time.perf_counter()
    response = await call_next(request)
    response.headers["x-request-id"] = request_id

    if not request.url.path.endswith("/health"):
        logger.info(
            "Request: %s",
            {
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "content_length": request.headers.get("content-length"),
                "duration_ms": int((time.perf_counter() - started) * 1000),
                "client": request.client.host if request.client else "unknown",
            },
        )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/", tags=["Root"])
async def root():
    return {
        "service": "Video Upload Ingress",
        "version": "1.0.0",
        "status": "running",
        "upload_bucket": settings.UPLOAD_BUCKET,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8080)
