import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bride_buddy.api.routes import router
from bride_buddy.errors import BrideBuddyError

app = FastAPI(title="bride-buddy", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@app.exception_handler(BrideBuddyError)
async def _bride_buddy_error_handler(request: Request, exc: BrideBuddyError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "bride-buddy", "version": "0.1.0"}
