# api/main.py
# FastAPI app for the discount popup: takes an email and upserts the Shopify customer.
# - POST /api/webhook (and /api/subscribe, the old duplicate endpoint) run the same flow
# - OPTIONS answers preflight with an empty 200, other methods get a JSON 405
# - Every response carries permissive CORS + no-cache headers
# - Errors are returned as {"success": false, "error": ...} JSON, never as HTML

import json
import time
from typing import Any, Dict, Optional, Union

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, ValidationError
from starlette.concurrency import run_in_threadpool

from app.config import Settings, get_settings
from app.errors import ClientInputError, SubscribeError
from app.logging_setup import configure_logging, get_logger
from app.observability import REQUEST_COUNT, REQUEST_LATENCY, configure_tracer, metrics_app
from app.subscriptions import SubscriptionUpserter, request_from_payload

configure_logging()
configure_tracer()
log = get_logger()

APP_NAME = "Popup Subscribe API"

CORS_ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, Authorization, X-Requested-With, Accept, Origin"
CORS_MAX_AGE = "86400"  # 24 hours

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


app = FastAPI(title=APP_NAME)
app.mount("/metrics", metrics_app)


class SubscribePayload(BaseModel):
    # Unknown keys are kept so they can be echoed back in "received"
    model_config = ConfigDict(extra="allow")

    email: Optional[str] = None
    source: Optional[str] = None
    discount_code: Optional[str] = None
    tags: Optional[str] = None
    marketing_consent: Optional[Any] = None


class SubscribeResponse(BaseModel):
    success: bool
    message: str
    customer_id: Optional[Union[int, str]] = None
    email: str
    existing_customer: bool


def get_upserter(settings: Settings = Depends(get_settings)) -> SubscriptionUpserter:
    return SubscriptionUpserter(settings)


def _apply_common_headers(request: Request, response: Response) -> None:
    settings = get_settings()
    origin = settings.CORS_ALLOW_ORIGIN or request.headers.get("origin") or "*"
    response.headers["Access-Control-Allow-Origin"] = origin
    response.headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS
    response.headers["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS
    response.headers["Access-Control-Allow-Credentials"] = "true"
    response.headers["Access-Control-Max-Age"] = CORS_MAX_AGE
    for k, v in NO_CACHE_HEADERS.items():
        response.headers[k] = v


@app.middleware("http")
async def common_headers_and_metrics(request: Request, call_next):
    t0 = time.time()
    # Every log line of this request carries path + method
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(path=request.url.path, method=request.method)
    response = await call_next(request)
    _apply_common_headers(request, response)
    path = request.url.path
    REQUEST_COUNT.labels(endpoint=path, method=request.method, status=str(response.status_code)).inc()
    REQUEST_LATENCY.labels(endpoint=path, method=request.method).observe(time.time() - t0)
    return response


@app.exception_handler(SubscribeError)
async def subscribe_error_handler(request: Request, exc: SubscribeError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("subscribe_failed", error=exc.error, details=exc.details)
    else:
        log.info("subscribe_rejected", error=exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def _internal_error(exc: Exception) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error": "Internal server error"}
    if get_settings().is_development:
        content["details"] = str(exc)
    return JSONResponse(status_code=500, content=content)


async def _read_json_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError as e:
        raise ClientInputError("Invalid JSON in request body", details=str(e))
    if not isinstance(body, dict):
        raise ClientInputError("Invalid request body", details="Expected a JSON object")
    return body


def _validation_details(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


@app.get("/healthz")
def health() -> str:
    return "ok"


@app.options("/api/webhook")
@app.options("/api/subscribe")
def preflight() -> Response:
    return Response(status_code=200)


@app.api_route("/api/webhook", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "TRACE"])
@app.api_route("/api/subscribe", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "TRACE"])
def method_not_allowed(request: Request) -> JSONResponse:
    log.info("method_not_allowed")
    return JSONResponse(
        status_code=405,
        content={"error": "Method not allowed", "allowed": "POST", "received": request.method},
    )


@app.post("/api/webhook", response_model=SubscribeResponse)
@app.post("/api/subscribe", response_model=SubscribeResponse)
async def subscribe(
    request: Request,
    upserter: SubscriptionUpserter = Depends(get_upserter),
):
    log.info("subscribe_request", origin=request.headers.get("origin"))
    try:
        body = await _read_json_body(request)
        try:
            payload = SubscribePayload.model_validate(body)
        except ValidationError as e:
            raise ClientInputError("Invalid request body", details=_validation_details(e))

        sub = request_from_payload(payload.model_dump(exclude_none=True))
        # Shopify calls are blocking httpx; keep them off the event loop
        result = await run_in_threadpool(upserter.upsert, sub)
    except SubscribeError:
        raise
    except Exception as e:
        # Catch everything so the caller always gets JSON (and the CORS headers)
        log.exception("subscribe_unexpected_error", err=str(e))
        return _internal_error(e)

    return SubscribeResponse(
        success=True,
        message=result.message,
        customer_id=result.customer_id,
        email=result.email,
        existing_customer=result.existing_customer,
    )
