from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from hazardbot.api.routes import router
from hazardbot.api.admin_routes import router as admin_router
from hazardbot.observability.logging import log
from hazardbot.settings import settings

app = FastAPI(title="Hazard Report Intake Bot")

origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(admin_router)


@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "Hazard intake bot is running. POST /api/turn with {conversationId, text}."
    }


@app.get("/health")
def health():
    return {"status": "ok", "store": settings.STORE_BACKEND}


@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    # A turn that crashed has not been acknowledged; the caller retries it.
    log(event="unhandled_exception", path=str(request.url.path), error=repr(exc))
    return JSONResponse(
        status_code=500,
        content={"status": "error", "outcome": "FAILED", "error": "internal error"},
    )
