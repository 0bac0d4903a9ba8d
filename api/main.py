from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes.jobs import router as jobs_router
from api.routes.scenarios import router as scenarios_router
from api.services.config import get_settings
from api.services.validation import InputValidationError

settings = get_settings()
# Inconsistent ratios in the environment should stop the app, not every request.
settings.business_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Paint Ops Financials API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url, "http://127.0.0.1:5173", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(jobs_router)
app.include_router(scenarios_router)


@app.exception_handler(InputValidationError)
async def input_validation_error(request: Request, exc: InputValidationError) -> JSONResponse:
    logger.warning("Rejected input on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": exc.message, "field": exc.field})


@app.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
