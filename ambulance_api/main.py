from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

from ambulance_api.core.config import settings
from ambulance_api.db.session import close_client, get_patient_store, ping_database
from ambulance_api.logging_utils import _request_id_ctx_var, configure_logging
from ambulance_api.models import Condition, Patient, PatientInput
from ambulance_api.services import PatientStore, PersistenceError, list_conditions

configure_logging(logging.INFO if settings.is_production else logging.DEBUG)
logging.getLogger("pymongo").setLevel(logging.INFO)

logger = logging.getLogger(__name__)

REQUEST_COUNTER = Counter(
    "ambulance_api_requests_total",
    "Total number of processed HTTP requests.",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "ambulance_api_request_duration_seconds",
    "HTTP request latency in seconds.",
    ["method", "path"],
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info(
        "starting %s",
        settings.app_name,
        extra={"environment": settings.environment, "base_path": settings.base_path},
    )
    ping_database()
    try:
        yield
    finally:
        close_client()
        logger.info("MongoDB connection closed")


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    openapi_url=f"{settings.base_path}/openapi",
    lifespan=lifespan,
)


def _route_path(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path_format", None) or request.url.path


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the logging context."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        request_id_token = _request_id_ctx_var.set(request_id)

        try:
            response = await call_next(request)
        finally:
            _request_id_ctx_var.reset(request_id_token)

        response.headers["X-Request-ID"] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Emit structured access logs and feed metrics."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        start_time = time.perf_counter()
        method = request.method

        try:
            response = await call_next(request)
        except Exception:
            elapsed = time.perf_counter() - start_time
            path = _route_path(request)
            REQUEST_COUNTER.labels(method=method, path=path, status="500").inc()
            REQUEST_LATENCY.labels(method=method, path=path).observe(elapsed)
            logger.exception(
                "request failed",
                extra={
                    "method": method,
                    "path": path,
                    "duration_ms": round(elapsed * 1000, 2),
                },
            )
            raise

        elapsed = time.perf_counter() - start_time
        path = _route_path(request)
        status_code = response.status_code

        REQUEST_COUNTER.labels(method=method, path=path, status=str(status_code)).inc()
        REQUEST_LATENCY.labels(method=method, path=path).observe(elapsed)

        logger.info(
            "request completed",
            extra={
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(elapsed * 1000, 2),
            },
        )

        return response


app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Origin", "Content-Type", "Accept", "Authorization"],
    expose_headers=["Content-Length"],
)
app.add_middleware(AccessLogMiddleware)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 instead of FastAPI's 422."""

    logger.debug("rejected invalid request body", extra={"errors": exc.errors()})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "Invalid request payload",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


def require_patient_id(patient_id: str) -> str:
    if not patient_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Patient ID is required",
        )
    return patient_id


def require_patient_fields(payload: PatientInput) -> None:
    if payload.missing_required_fields():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name and condition are required",
        )


def persistence_failure(exc: PersistenceError) -> HTTPException:
    """Log a store failure and build the opaque 500 returned to the client."""

    logger.error(
        "persistence operation failed",
        exc_info=exc,
        extra={"operation": exc.operation},
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=exc.public_message,
    )


router = APIRouter(prefix=settings.base_path)


@router.get("/patients", response_model=list[Patient])
def list_patients(store: PatientStore = Depends(get_patient_store)) -> list[Patient]:
    """Return every stored patient."""

    try:
        return store.get_all_patients()
    except PersistenceError as exc:
        raise persistence_failure(exc) from exc


@router.get(
    "/patients/{patient_id}",
    response_model=Patient,
    responses={status.HTTP_404_NOT_FOUND: {"description": "Patient not found"}},
)
def get_patient(
    patient_id: str,
    store: PatientStore = Depends(get_patient_store),
):
    """Fetch a patient by sequence number or ObjectId."""

    require_patient_id(patient_id)
    try:
        patient = store.get_patient_by_id(patient_id)
    except PersistenceError as exc:
        raise persistence_failure(exc) from exc

    if patient is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return patient


@router.post("/patients", response_model=Patient, status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: PatientInput,
    store: PatientStore = Depends(get_patient_store),
) -> Patient:
    """Register a new patient with status ``new``."""

    require_patient_fields(payload)
    try:
        return store.create_patient(payload)
    except PersistenceError as exc:
        raise persistence_failure(exc) from exc


@router.put(
    "/patients/{patient_id}",
    response_model=Patient,
    responses={status.HTTP_404_NOT_FOUND: {"description": "Patient not found"}},
)
def update_patient(
    patient_id: str,
    payload: PatientInput,
    store: PatientStore = Depends(get_patient_store),
):
    """Replace a patient's details, keeping its id and assigned doctor."""

    require_patient_id(patient_id)
    require_patient_fields(payload)
    try:
        patient = store.update_patient(patient_id, payload)
    except PersistenceError as exc:
        raise persistence_failure(exc) from exc

    if patient is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return patient


@router.delete(
    "/patients/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def archive_patient(
    patient_id: str,
    store: PatientStore = Depends(get_patient_store),
) -> Response:
    """Archive a patient. Unknown ids are accepted as a no-op."""

    require_patient_id(patient_id)
    try:
        store.archive_patient(patient_id)
    except PersistenceError as exc:
        raise persistence_failure(exc) from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/conditions",
    response_model=list[Condition],
    response_model_exclude_none=True,
)
def get_conditions() -> list[Condition]:
    """List the medical conditions known to the service."""

    return list_conditions()


app.include_router(router)


@app.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics for scraping."""

    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint used by infrastructure probes."""

    return {"status": "ok"}


def run() -> None:
    """Serve the application with uvicorn on the configured port."""

    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)
