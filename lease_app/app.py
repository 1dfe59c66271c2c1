import logging

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from core.catch_error_middleware import ErrorHandlerMiddleware
from core.errors import LeaseEngineError
from core.exception_handler import LeaseEngineErrorHandler, ValidationErrorHandler
from core.lifespan import lifespan
from core.settings import settings
from routes.checkout_routes import router as checkout_router
from routes.lease_routes import router as lease_router
from routes.payment_routes import router as payment_router

logging.basicConfig(level=settings.LOG_LEVEL)

app = FastAPI(
    lifespan=lifespan,
    title=settings.PROJECT_NAME,
    version="1.0.0",
)

app.include_router(checkout_router, prefix="/v1/checkout")
app.include_router(payment_router, prefix="/v1/payments")
app.include_router(lease_router, prefix="/v1/leases")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "ok"}


app.add_exception_handler(
    RequestValidationError,
    ValidationErrorHandler(),
)
app.add_exception_handler(LeaseEngineError, LeaseEngineErrorHandler())

app.add_middleware(ErrorHandlerMiddleware)


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8001)
