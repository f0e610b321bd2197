"""HTTP surface for the edge functions.

Every response carries permissive CORS headers and every ``OPTIONS``
request is answered with ``ok``. Each route catches all failures and
converts them to its JSON error shape.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from .. import __version__
from ..config.settings import Settings, get_settings
from ..utils.logging import get_logger
from . import handlers
from .email import ResendClient
from .exceptions import EdgeFunctionError, UnauthorizedError
from .supabase import SupabaseClient

logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

router = APIRouter(tags=["edge"])


class NotificationEmailRequest(BaseModel):
    notification_id: Optional[str] = None
    user_id: Optional[str] = None
    type: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None


class MagicLinkTokenRequest(BaseModel):
    token: Optional[str] = None


class CreateMagicLinkRequest(BaseModel):
    evidence_id: Optional[str] = None
    recipient_email: Optional[str] = None
    recipient_gmc: Optional[str] = None
    form_type: Optional[str] = None


class SubmitMagicLinkFormRequest(BaseModel):
    token: Optional[str] = None
    evidenceId: Optional[str] = None
    updates: Optional[dict[str, Any]] = None
    complete: bool = False


def get_supabase(request: Request) -> SupabaseClient:
    return request.app.state.supabase


def get_mailer(request: Request) -> ResendClient:
    return request.app.state.mailer


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _json(content: dict[str, Any], status_code: int = 200) -> JSONResponse:
    return JSONResponse(content, status_code=status_code)


@router.post("/send-notification-email")
def send_notification_email(
    payload: NotificationEmailRequest,
    supabase: SupabaseClient = Depends(get_supabase),
    mailer: ResendClient = Depends(get_mailer),
    settings: Settings = Depends(get_app_settings),
):
    try:
        handlers.send_notification_email(
            supabase,
            mailer,
            user_id=payload.user_id,
            notification_type=payload.type,
            title=payload.title or "",
            body=payload.body or "",
            notification_id=payload.notification_id,
            app_url=settings.magic_link.app_url,
        )
    except Exception as e:
        logger.error("Email sending failed: %s", e)
        return _json({"error": str(e)}, 500)
    return _json({"success": True})


@router.post("/validate-magic-link")
def validate_magic_link(
    payload: MagicLinkTokenRequest,
    supabase: SupabaseClient = Depends(get_supabase),
):
    try:
        return _json(handlers.validate_magic_link(supabase, payload.token))
    except EdgeFunctionError as e:
        if 400 <= e.status_code < 500:
            return _json({"valid": False, "reason": e.message}, e.status_code)
        logger.error("Magic link validation failed: %s", e)
        return _json({"valid": False, "error": e.message}, 500)
    except Exception as e:
        logger.exception("Magic link validation failed")
        return _json({"valid": False, "error": str(e)}, 500)


@router.post("/create-magic-link")
def create_magic_link(
    payload: CreateMagicLinkRequest,
    authorization: Optional[str] = Header(default=None),
    supabase: SupabaseClient = Depends(get_supabase),
    mailer: ResendClient = Depends(get_mailer),
    settings: Settings = Depends(get_app_settings),
):
    try:
        return _json(
            handlers.create_magic_link(
                supabase,
                mailer,
                authorization=authorization,
                evidence_id=payload.evidence_id,
                recipient_email=payload.recipient_email,
                form_type=payload.form_type,
                recipient_gmc=payload.recipient_gmc,
                app_url=settings.magic_link.app_url,
            )
        )
    except UnauthorizedError as e:
        body = {"error": e.message}
        if e.details:
            body["details"] = e.details
        return _json(body, e.status_code)
    except EdgeFunctionError as e:
        logger.error("Magic link creation failed: %s", e)
        return _json({"error": e.message}, e.status_code)
    except Exception as e:
        logger.exception("Magic link creation failed")
        return _json({"error": str(e)}, 500)


@router.post("/submit-magic-link-form")
def submit_magic_link_form(
    payload: SubmitMagicLinkFormRequest,
    supabase: SupabaseClient = Depends(get_supabase),
    settings: Settings = Depends(get_app_settings),
):
    try:
        return _json(
            handlers.submit_magic_link_form(
                supabase,
                token=payload.token,
                evidence_id=payload.evidenceId,
                updates=payload.updates,
                complete=payload.complete,
                expiry_hours=settings.magic_link.expiry_hours,
            )
        )
    except EdgeFunctionError as e:
        if e.status_code >= 500:
            logger.error("Submit failed: %s", e)
        return _json({"success": False, "error": e.message}, e.status_code)
    except Exception as e:
        logger.exception("Submit failed")
        return _json({"success": False, "error": str(e)}, 500)


def create_app(
    settings: Optional[Settings] = None,
    supabase: Optional[SupabaseClient] = None,
    mailer: Optional[ResendClient] = None,
) -> FastAPI:
    """
    Build the edge function application.

    Args:
        settings: Settings to use (global settings by default)
        supabase: Database client (built from settings by default)
        mailer: Email client (built from settings by default)

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()

    app = FastAPI(title="Eye Portfolio edge functions", version=__version__)
    app.state.settings = settings
    app.state.supabase = supabase or SupabaseClient(
        url=settings.supabase.url,
        service_role_key=settings.supabase.service_role_key,
        timeout=settings.supabase.timeout,
    )
    app.state.mailer = mailer or ResendClient(
        api_key=settings.email.api_key,
        from_email=settings.email.from_email,
        api_url=settings.email.api_url,
        timeout=settings.email.timeout,
    )

    if not settings.supabase.is_configured:
        logger.warning("SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is not set")

    @app.middleware("http")
    async def cors(request: Request, call_next):
        if request.method == "OPTIONS":
            return PlainTextResponse("ok", headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        # Keep each function's own error shape for unparseable bodies
        path = request.url.path
        if path.endswith("/validate-magic-link"):
            return _json({"valid": False, "reason": "Invalid request body"}, 400)
        if path.endswith("/submit-magic-link-form"):
            return _json({"success": False, "error": "Invalid request body"}, 400)
        return _json({"error": "Invalid request body"}, 400)

    app.include_router(router)
    return app
