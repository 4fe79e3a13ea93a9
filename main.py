import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from customer_service import CustomerService
from database import MongoRepository, get_database, utcnow
from errors import ServiceError
from logging_config import setup_logging
from medicine_service import MedicineService
from routes import customers, medicines

logger = logging.getLogger(__name__)

MEDICINE_INDEXES = [(("name",), False), (("name", "expiryDate"), False)]
CUSTOMER_INDEXES = [
    (("name",), False),
    (("name", "contact"), False),
    (("gstin",), True),
    (("dlNo",), True),
]


def envelope(status_code: int, message: str, error=None) -> JSONResponse:
    content = {"success": False, "message": message}
    if error is not None:
        content["error"] = error
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def create_app(medicine_repository=None, customer_repository=None, clock=None) -> FastAPI:
    """Build the API.

    Repositories default to the MongoDB collections ``medicine`` and
    ``customer``; tests pass in-memory stand-ins instead.
    """
    setup_logging()

    if medicine_repository is None:
        medicine_repository = MongoRepository(get_database()["medicine"], MEDICINE_INDEXES)
    if customer_repository is None:
        customer_repository = MongoRepository(get_database()["customer"], CUSTOMER_INDEXES)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        medicine_repository.ensure_indexes()
        customer_repository.ensure_indexes()
        yield

    app = FastAPI(title=settings.project_name, version=settings.api_version, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.medicine_service = MedicineService(medicine_repository, clock or utcnow)
    app.state.customer_service = CustomerService(customer_repository)

    @app.get("/")
    def read_root():
        return {
            "message": settings.project_name,
            "version": settings.api_version,
            "endpoints": {
                "medicines": "/api/medicines",
                "customers": "/api/customers",
            },
        }

    @app.get("/test")
    def test_database():
        response = {"backend": "✅ Running", "database": "❌ Not Available"}
        if medicine_repository.ping() and customer_repository.ping():
            response["database"] = "✅ Connected"
        return response

    app.include_router(medicines, prefix="/api/medicines", tags=["medicines"])
    app.include_router(customers, prefix="/api/customers", tags=["customers"])

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return envelope(exc.status_code, exc.message, exc.error)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return envelope(400, "Invalid request parameters", detail)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return envelope(404, "Route not found")
        return envelope(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return envelope(500, "Something went wrong!", str(exc))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
