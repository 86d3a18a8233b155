import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel

from .config import settings
from .dependencies import Services, get_services
from .exceptions import StorefrontError, ValidationError
from .license_routes import router
from .logging_config import configure_logging
from .models import ContactRequest, ContactResponse, HealthResponse
from .utils import client_ip, iso_now

configure_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(title="EVS Storefront API")

app.include_router(router)


def error_body(exc: StorefrontError) -> dict:
    body = {"success": False, "error": exc.message, "reason": exc.reason}
    if exc.expose_details:
        body.update({to_camel(k): v for k, v in exc.details.items()})
    if settings.is_development:
        body["errorType"] = exc.code
    return body


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.code, exc.__cause__ or exc.message)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("%s %s invalid body: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content=error_body(ValidationError()))


# ✅ Contact form
@app.post("/api/contact", response_model=ContactResponse, response_model_exclude_none=True)
def contact(
    req: ContactRequest,
    request: Request,
    services: Services = Depends(get_services),
):
    return services.contact.submit(req, client_ip(request))


# ✅ Health check route for uptime monitoring
@app.get("/api/health", response_model=HealthResponse)
def health_check(services: Services = Depends(get_services)):
    try:
        return HealthResponse(
            status="ok",
            timestamp=iso_now(),
            environment=services.settings.ENVIRONMENT,
            service=services.settings.SERVICE_NAME,
            version=services.settings.SERVICE_VERSION,
        )
    except Exception as e:
        logger.exception("Health check failed")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "timestamp": iso_now(), "error": str(e)},
        )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("storefront.main:app", host=settings.HOST, port=settings.PORT)
