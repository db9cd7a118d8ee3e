from schemas import (
    LoginRequest,
    RegisterRequest,
    TaskCreate,
    TaskUpdate,
    validate_payload,
)


def test_register_payload_accepts_valid_input() -> None:
    result = validate_payload(
        RegisterRequest, {"email": "ada@taskflow.io", "name": "Ada", "password": "secret1"}
    )
    assert result.ok
    assert result.errors == {}
    assert result.data.email == "ada@taskflow.io"
    assert result.data.name == "Ada"


def test_register_payload_name_is_optional() -> None:
    result = validate_payload(RegisterRequest, {"email": "ada@taskflow.io", "password": "secret1"})
    assert result.ok
    assert result.data.name is None


def test_register_payload_reports_every_bad_field() -> None:
    result = validate_payload(
        RegisterRequest, {"email": "not-an-email", "name": "A", "password": "12345"}
    )
    assert not result.ok
    assert result.data is None
    assert set(result.errors) == {"email", "name", "password"}
    assert result.errors["password"] == ["Password must be at least 6 characters"]
    assert result.errors["name"] == ["Name must be at least 2 characters"]


def test_missing_fields_are_reported() -> None:
    result = validate_payload(LoginRequest, {})
    assert not result.ok
    assert set(result.errors) == {"email", "password"}


def test_login_requires_password() -> None:
    result = validate_payload(LoginRequest, {"email": "ada@taskflow.io", "password": ""})
    assert result.errors == {"password": ["Password is required"]}


def test_task_title_is_stripped() -> None:
    result = validate_payload(TaskCreate, {"title": "  Buy milk  "})
    assert result.ok
    assert result.data.title == "Buy milk"


def test_task_title_bounds() -> None:
    assert validate_payload(TaskCreate, {"title": "x" * 255}).ok

    too_long = validate_payload(TaskCreate, {"title": "x" * 256})
    assert not too_long.ok
    assert "title" in too_long.errors

    blank = validate_payload(TaskCreate, {"title": "   "})
    assert blank.errors == {"title": ["Task title cannot be empty"]}


def test_update_needs_at_least_one_field() -> None:
    result = validate_payload(TaskUpdate, {})
    assert not result.ok
    assert result.errors == {"body": ["No update data provided"]}

    nulls = validate_payload(TaskUpdate, {"title": None, "completed": None})
    assert nulls.errors == {"body": ["No update data provided"]}


def test_update_changes_only_include_given_fields() -> None:
    result = validate_payload(TaskUpdate, {"completed": True})
    assert result.ok
    assert result.data.changes() == {"completed": True}


def test_update_completed_must_be_boolean() -> None:
    result = validate_payload(TaskUpdate, {"completed": "yes"})
    assert not result.ok
    assert "completed" in result.errors


def test_non_object_payload_is_reported_on_body() -> None:
    result = validate_payload(TaskCreate, ["Buy milk"])
    assert not result.ok
    assert "body" in result.errors
