import logging
from typing import List, Optional, Type

from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

import crud
from config import Settings, get_settings
from database import build_engine, build_sessionmaker, init_db
from errors import AppError, InvalidCredentials, Unauthorized, ValidationFailed
from models import User as DBUser
from schemas import (
    CurrentSessionResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    SessionOut,
    SessionUser,
    TaskCreate,
    TaskOut,
    TaskUpdate,
    UserOut,
    field_errors,
    validate_payload,
)
from security import TokenSigner, configure_hashing

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

router = APIRouter()


# Dependencies
def get_db(request: Request):
    db = request.app.state.sessionmaker()
    try:
        yield db
    finally:
        db.close()


def get_signer(request: Request) -> TokenSigner:
    return request.app.state.signer


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    signer: TokenSigner = Depends(get_signer),
    db: Session = Depends(get_db),
) -> DBUser:
    identity = signer.resolve(token or request.cookies.get(SESSION_COOKIE))
    if identity is None:
        raise Unauthorized()

    user = crud.get_user(db, identity.user_id)
    if user is None:
        raise Unauthorized()
    return user


def validated_body(schema: Type[BaseModel]):
    """Build a dependency that parses the JSON body and validates it against `schema`."""

    async def dependency(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            raise ValidationFailed({"body": ["Request body must be valid JSON"]})
        result = validate_payload(schema, payload)
        if not result.ok:
            raise ValidationFailed(result.errors)
        return result.data

    return dependency


# Authentication endpoints, routed by `create_app` with the rate limit applied
def register(
    request: Request,
    data: RegisterRequest = Depends(validated_body(RegisterRequest)),
    db: Session = Depends(get_db),
):
    user = crud.register_user(db, email=data.email, password=data.password, name=data.name)
    return RegisterResponse(user=UserOut.model_validate(user))


def login(
    request: Request,
    response: Response,
    data: LoginRequest = Depends(validated_body(LoginRequest)),
    signer: TokenSigner = Depends(get_signer),
    db: Session = Depends(get_db),
):
    user = crud.verify_credentials(db, data.email, data.password)
    if user is None:
        logger.warning("Failed login for %s", data.email)
        raise InvalidCredentials()

    issued = signer.issue(user)
    settings: Settings = request.app.state.settings
    response.set_cookie(
        key=SESSION_COOKIE,
        value=issued.access_token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return LoginResponse(
        message="Login successful",
        session=SessionOut(
            access_token=issued.access_token,
            token_type=issued.token_type,
            expires_at=issued.expires_at,
            user=SessionUser.model_validate(user),
        ),
    )


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout():
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/auth/session", response_model=CurrentSessionResponse)
def current_session(current_user: DBUser = Depends(get_current_user)):
    return CurrentSessionResponse(user=SessionUser.model_validate(current_user))


# Task endpoints
@router.get("/tasks", response_model=List[TaskOut])
def list_tasks(current_user: DBUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return [TaskOut.model_validate(t) for t in crud.list_tasks(db, current_user.id)]


@router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    current_user: DBUser = Depends(get_current_user),
    data: TaskCreate = Depends(validated_body(TaskCreate)),
    db: Session = Depends(get_db),
):
    return TaskOut.model_validate(crud.create_task(db, current_user.id, data.title))


@router.get("/tasks/{task_id}", response_model=TaskOut)
def get_task(
    task_id: int,
    current_user: DBUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TaskOut.model_validate(crud.get_task(db, task_id, current_user.id))


@router.put("/tasks/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    current_user: DBUser = Depends(get_current_user),
    patch: TaskUpdate = Depends(validated_body(TaskUpdate)),
    db: Session = Depends(get_db),
):
    task = crud.update_task(db, task_id, current_user.id, patch.changes())
    return TaskOut.model_validate(task)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    current_user: DBUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    crud.delete_task(db, task_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Error handlers
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = field_errors(exc.errors(), skip_loc_prefix=1)
    return JSONResponse(
        {"message": ValidationFailed.message, "errors": errors},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        {"message": "Too many requests"},
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        {"message": "Internal Server Error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    configure_hashing(settings.bcrypt_rounds)

    engine = build_engine(settings.database_url)
    init_db(engine)

    app = FastAPI(title="TaskFlow")
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)
    app.state.signer = TokenSigner(
        settings.secret_key,
        algorithm=settings.algorithm,
        expire_minutes=settings.access_token_expire_minutes,
    )
    app.state.limiter = Limiter(key_func=get_remote_address)

    # Add security middlewares
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    auth_limit = app.state.limiter.limit(settings.auth_rate_limit)
    app.add_api_route(
        "/auth/register",
        auth_limit(register),
        methods=["POST"],
        response_model=RegisterResponse,
        status_code=status.HTTP_201_CREATED,
    )
    app.add_api_route("/auth/login", auth_limit(login), methods=["POST"], response_model=LoginResponse)
    app.include_router(router)
    return app
