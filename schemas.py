"""
Request/response schemas and the per-operation payload validator.

`validate_payload` never raises on bad input: it returns a tagged
`ValidationResult` so callers (the HTTP layer, tests) decide what to do
with the field-level messages.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    StrictBool,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

TITLE_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 6
NAME_MIN_LENGTH = 2

SchemaT = TypeVar("SchemaT", bound=BaseModel)


# Request payloads
class RegisterRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    password: str

    @field_validator("name")
    @classmethod
    def name_validator(cls, v):
        if v is not None and len(v) < NAME_MIN_LENGTH:
            raise ValueError(f"Name must be at least {NAME_MIN_LENGTH} characters")
        return v

    @field_validator("password")
    @classmethod
    def password_validator(cls, v):
        if len(v) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def password_validator(cls, v):
        if not v:
            raise ValueError("Password is required")
        return v


def _clean_title(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Task title cannot be empty")
    if len(v) > TITLE_MAX_LENGTH:
        raise ValueError(f"Task title must be at most {TITLE_MAX_LENGTH} characters")
    return v


class TaskCreate(BaseModel):
    title: str

    @field_validator("title")
    @classmethod
    def title_validator(cls, v):
        return _clean_title(v)


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    completed: Optional[StrictBool] = None

    @field_validator("title")
    @classmethod
    def title_validator(cls, v):
        if v is None:
            return v
        return _clean_title(v)

    @model_validator(mode="after")
    def require_one_field(self):
        if self.title is None and self.completed is None:
            raise ValueError("No update data provided")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# Response payloads
class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class UserOut(_Out):
    id: int
    email: str
    name: Optional[str] = None
    created_at: datetime


class SessionUser(_Out):
    id: int
    email: Optional[str] = None
    name: Optional[str] = None


class TaskOut(_Out):
    id: int
    title: str
    completed: bool
    created_at: datetime
    updated_at: datetime
    user_id: int


class RegisterResponse(_Out):
    user: UserOut


class SessionOut(_Out):
    access_token: str
    token_type: str
    expires_at: datetime
    user: SessionUser


class LoginResponse(_Out):
    message: str
    session: SessionOut


class CurrentSessionResponse(_Out):
    user: SessionUser


# Validation
@dataclass
class ValidationResult(Generic[SchemaT]):
    ok: bool
    data: Optional[SchemaT] = None
    errors: Dict[str, List[str]] = field(default_factory=dict)


def field_errors(errors: List[dict], skip_loc_prefix: int = 0) -> Dict[str, List[str]]:
    """
    Flatten pydantic error dicts into `{field: [message, ...]}`.

    Errors without a location (model-level checks, wrong payload type) are
    reported under `body`.
    """
    flat: Dict[str, List[str]] = {}
    for err in errors:
        loc = err.get("loc", ())[skip_loc_prefix:]
        key = str(loc[0]) if loc else "body"
        if err.get("type") == "value_error" and "error" in err.get("ctx", {}):
            message = str(err["ctx"]["error"])
        else:
            message = err.get("msg", "Invalid value")
        flat.setdefault(key, []).append(message)
    return flat


def validate_payload(schema: Type[SchemaT], payload: Any) -> ValidationResult[SchemaT]:
    try:
        data = schema.model_validate(payload)
    except ValidationError as e:
        return ValidationResult(ok=False, errors=field_errors(e.errors()))
    return ValidationResult(ok=True, data=data)
