import hmac
import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Header, Request, status
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from core.base.exception import (
    ConfigurationError,
    ServiceLevelError,
    TokenVerificationError,
)
from core.base.models import ResubscribeRequest, SubscribeRequest, UnsubscribeLink
from core.clients.mongo_client import MongoClient
from core.handlers.env_handler import env
from core.repositories.subscriber_repository import SubscriberRepository
from core.services.email_service import EmailService, new_email_service, build_link
from core.services.subscriber_service import SubscriberService, new_subscriber_service
from core.services.token_service import TokenService, TokenPurpose, new_token_service
from core.utils.str import get_random_rate_limit_warning, normalize_email

logging.basicConfig(
    level=logging.DEBUG if env.state["node_env"] == "development" else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

NEWSLETTER_SECRET = env.newsletter["secret"]
NEWSLETTER_TTL_DAYS = env.newsletter["ttl_days"]
ADMIN_API_KEY = env.auth["admin_api_key"]
CLIENT_LOCAL = env.state["client_local"]
CLIENT_PROD = env.state["client_prod"]
ALLOW_HEADERS = env.auth["allow_headers"]

INVALID_TOKEN_DETAIL = "Invalid or expired token"

@lru_cache
def get_token_service() -> TokenService:
    return new_token_service(NEWSLETTER_SECRET)

@lru_cache
def get_email_service() -> EmailService:
    return new_email_service()

def get_subscriber_service() -> SubscriberService:
    repository = SubscriberRepository(app.db["mailing_list_subscribers"])
    return new_subscriber_service(repository)

def require_admin(x_admin_key: Optional[str] = Header(None)) -> None:
    """Gate for admin-only endpoints, keyed on the X-Admin-Key header."""
    if not ADMIN_API_KEY:
        raise ConfigurationError("ADMIN_API_KEY")
    if not x_admin_key or not hmac.compare_digest(x_admin_key.encode(), ADMIN_API_KEY.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

@asynccontextmanager
async def lifespan(app: FastAPI):
    mongo_client = MongoClient()
    db = await mongo_client.ping()
    await mongo_client.ensure_indexes(db)
    app.db = db
    yield
    await mongo_client.close()


app = FastAPI(title="Elevate(Her) Newsletter API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[CLIENT_LOCAL, CLIENT_PROD],
    allow_headers=ALLOW_HEADERS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
)

# Rate limiting configuration
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": get_random_rate_limit_warning()},
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

@app.exception_handler(TokenVerificationError)
async def token_error_handler(request: Request, exc: TokenVerificationError):
    # Which check failed stays in the logs
    logger.warning("Rejected token on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": INVALID_TOKEN_DETAIL})

@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Internal server error"})

@app.exception_handler(ServiceLevelError)
async def service_error_handler(request: Request, exc: ServiceLevelError):
    logger.error("Service error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Failed to update subscription"})


@app.get("/")
@limiter.limit("3/minute")
async def root_endpoint(request: Request):
    return JSONResponse(content={
        "ping": "pong",
        "message": "Elevate(Her) newsletter server pinged successfully",
    })

@app.get("/api/admin/newsletter/generate-unsubscribe", response_model=UnsubscribeLink, dependencies=[Depends(require_admin)])
@limiter.limit("30/minute")
async def generate_unsubscribe_link(
    request: Request,
    email: str = "",
    token_service: TokenService = Depends(get_token_service),
):
    """Mint a signed unsubscribe link for a subscriber (admin only)."""
    email = normalize_email(email)
    if not email:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Missing email"})

    token = token_service.sign(email, TokenPurpose.Newsletter, NEWSLETTER_TTL_DAYS)
    return UnsubscribeLink(url=build_link("unsubscribe", token), token=token, email=email)

@app.get("/api/newsletter/unsubscribe")
@limiter.limit("10/minute")
async def unsubscribe(
    request: Request,
    token: Optional[str] = None,
    id: Optional[str] = None,
    token_service: TokenService = Depends(get_token_service),
    subscriber_service: SubscriberService = Depends(get_subscriber_service),
    email_service: EmailService = Depends(get_email_service),
):
    """Unsubscribe by public id, or by a signed newsletter token."""
    if id:
        await subscriber_service.unsubscribe_by_public_id(id)
        return JSONResponse(content={"success": True})
    if not token:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Missing token or id"})

    verified = token_service.verify(token, TokenPurpose.Newsletter)
    subscriber = await subscriber_service.unsubscribe(verified["email"])

    resubscribe_token = token_service.sign(subscriber.email, TokenPurpose.Newsletter, NEWSLETTER_TTL_DAYS)
    await email_service.send_unsubscribe_confirmation_email(
        email=subscriber.email,
        resubscribe_token=resubscribe_token,
        name=subscriber.name,
    )
    return JSONResponse(content={"success": True, "email": subscriber.email})

@app.post("/api/newsletter/resubscribe")
@limiter.limit("10/minute")
async def resubscribe(
    request: Request,
    body: ResubscribeRequest,
    token_service: TokenService = Depends(get_token_service),
    subscriber_service: SubscriberService = Depends(get_subscriber_service),
):
    """Resubscribe by public id, or by a signed newsletter token."""
    if body.id:
        await subscriber_service.resubscribe_by_public_id(body.id)
        return JSONResponse(content={"success": True})
    if not body.token:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Missing token or id"})

    verified = token_service.verify(body.token, TokenPurpose.Newsletter)
    subscriber = await subscriber_service.resubscribe(verified["email"])
    return JSONResponse(content={"success": True, "email": subscriber.email})

@app.post("/api/newsletter/subscribe")
@limiter.limit("5/minute")
async def subscribe(
    request: Request,
    body: SubscribeRequest,
    subscriber_service: SubscriberService = Depends(get_subscriber_service),
):
    """Add an email to the mailing list, or re-activate it."""
    await subscriber_service.subscribe(body.email, body.name, body.source)
    return JSONResponse(content={"success": True})

@app.get("/template/unsubscribe", response_class=HTMLResponse)
@limiter.limit("3/minute")
async def preview_unsubscribe_email(
    request: Request,
    email_service: EmailService = Depends(get_email_service),
):
    """Preview the unsubscribe confirmation email with mock data"""
    return HTMLResponse(email_service.render_unsubscribe_email(
        name="Penelope",
        resubscribe_url=build_link("resubscribe", "foo_token"),
        banner_text="See you again soon",
    ))
