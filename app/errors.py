from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.logging import get_logger
from app.services.crm.errors import CrmError

logger = get_logger(__name__)


async def crm_error_handler(request: Request, exc: CrmError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("crm_error path=%s code=%s detail=%s", request.url.path, exc.code, exc.detail)
    else:
        logger.info("crm_error path=%s code=%s status=%s", request.url.path, exc.code, exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.detail},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CrmError, crm_error_handler)
