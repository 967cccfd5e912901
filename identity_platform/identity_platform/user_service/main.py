"""
User Service - credential verification and session token issuance
"""
from fastapi import FastAPI, Depends, HTTPException, status, Header, Request
from fastapi.concurrency import run_in_threadpool
from contextlib import asynccontextmanager
from typing import Optional
import logging

from .auth import hash_password
from .config import Settings, get_settings
from .db import Database, connect
from .errors import (
    AuthenticationFailed,
    InvalidToken,
    StoreUnavailable,
    TokenExpired,
    UsernameTaken,
)
from .models import TokenClaims
from .routes import health
from .schemas import (
    ClaimsResponse,
    ErrorResponse,
    RegistrationResponse,
    SessionResult,
    UserCreate,
    UserLogin,
)
from .sessions import LoginService
from .store import CredentialStore
from .tokens import TokenIssuer
from .verifier import CredentialVerifier

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def open_database(settings: Settings) -> Database:
    """Connect using the configured startup retry policy."""
    database = connect(
        settings.DATABASE_URI,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        connect_timeout=settings.DB_CONNECT_TIMEOUT,
        query_timeout=settings.DB_QUERY_TIMEOUT,
        attempts=settings.DB_CONNECT_ATTEMPTS,
        backoff_seconds=settings.DB_CONNECT_BACKOFF_SECONDS,
    )
    if settings.DB_CREATE_TABLES:
        try:
            database.create_tables()
        except StoreUnavailable:
            database.dispose()
            raise
    return database


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    issuer: Optional[TokenIssuer] = None,
) -> FastAPI:
    """
    Compose the service.

    Injected ``database`` and ``issuer`` are used as-is and left open on
    shutdown; otherwise both are built from ``settings`` during startup, and
    SigningUnavailable or StoreUnavailable abort startup.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        token_issuer = issuer or TokenIssuer(
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        )
        owns_database = database is None
        # Startup retries sleep between attempts, keep them off the event loop
        db = database or await run_in_threadpool(open_database, settings)

        store = CredentialStore(db)
        app.state.database = db
        app.state.store = store
        app.state.issuer = token_issuer
        app.state.login_service = LoginService(CredentialVerifier(store), token_issuer)
        logger.info("User service started")
        try:
            yield
        finally:
            if owns_database:
                db.dispose()
            logger.info("User service stopped")

    app = FastAPI(
        title="User Service",
        description="Credential verification and session token issuance",
        version="1.0.0",
        lifespan=lifespan
    )
    app.include_router(health.router)

    @app.post(
        "/login",
        response_model=SessionResult,
        responses={401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    )
    def login(credentials: UserLogin, service: LoginService = Depends(get_login_service)):
        try:
            return service.login(credentials.username, credentials.password)
        except AuthenticationFailed as exc:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=exc.public_message) from exc
        except StoreUnavailable as exc:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.public_message) from exc

    @app.post(
        "/register",
        response_model=RegistrationResponse,
        status_code=status.HTTP_201_CREATED,
        responses={409: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    )
    def register(user: UserCreate, store: CredentialStore = Depends(get_store)):
        try:
            created = store.add(user.username, hash_password(user.password))
        except UsernameTaken as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.public_message) from exc
        except StoreUnavailable as exc:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.public_message) from exc
        return RegistrationResponse(id=created.id, username=created.username)

    @app.get("/users/me", response_model=ClaimsResponse, responses={401: {"model": ErrorResponse}})
    def read_current_user(claims: TokenClaims = Depends(get_current_claims)):
        return ClaimsResponse(
            id=claims.subject,
            username=claims.username,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
        )

    return app


def get_login_service(request: Request) -> LoginService:
    return request.app.state.login_service


def get_store(request: Request) -> CredentialStore:
    return request.app.state.store


def get_issuer(request: Request) -> TokenIssuer:
    return request.app.state.issuer


def get_current_claims(
    issuer: TokenIssuer = Depends(get_issuer),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> TokenClaims:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    token = authorization.split(" ", 1)[1].strip()
    try:
        return issuer.verify(token)
    except (InvalidToken, TokenExpired) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.public_message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
