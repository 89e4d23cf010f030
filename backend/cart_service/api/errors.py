from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cart_service.exceptions import CartServiceException
from cart_service.utils.logging import get_logger

log = get_logger(__name__)


def setup_error_handlers(app: FastAPI):
    @app.exception_handler(CartServiceException)
    async def cart_error_handler(request: Request, exc: CartServiceException):
        if exc.status_code >= 500:
            log.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": str(exc), "code": exc.code},
        )
