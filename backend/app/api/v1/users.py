"""User endpoints: list, create, view, update, delete, self signup and dev seeding."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from app.api.deps import get_current_user, get_user_service
from app.config import settings
from app.core.auth import UserClaims
from app.core.errors import NotFound, ValidationError
from app.core.validation import parse_payload
from app.schemas.common import ApiResponse, respond
from app.schemas.pagination import PaginationParams
from app.schemas.user import UserCreate, UserUpdate
from app.services import storage
from app.services.users import UserService

router = APIRouter(tags=["users"])

DEV_SEED_NAME = "admin"
DEV_SEED_EMAIL = "admin@accounts.local"
DEV_SEED_PASSWORD = "Admin@123"


async def _receive_avatar(avatar: UploadFile | None) -> storage.UploadedFile | None:
    if avatar is None or not avatar.filename:
        return None
    return await storage.save_temp_upload(avatar)


async def _create(
    service: UserService,
    name: str | None,
    email: str | None,
    status: str | None,
    dob: str | None,
    password: str | None,
    confirm_password: str | None,
    avatar: UploadFile | None,
):
    uploaded = await _receive_avatar(avatar)
    try:
        data = parse_payload(
            UserCreate,
            {
                "name": name,
                "email": email,
                "status": status,
                "dob": dob,
                "password": password,
                "confirmPassword": confirm_password,
                "avatar": uploaded,
            },
        )
    except ValidationError:
        storage.discard(uploaded)
        raise
    await service.create(data)
    return respond("User created")


@router.get(
    "/users",
    response_model=ApiResponse,
    summary="List users",
    responses={
        401: {"description": "Token is required"},
        403: {"description": "Invalid access token"},
        404: {"description": "No users"},
    },
)
async def list_users(
    service: Annotated[UserService, Depends(get_user_service)],
    _: Annotated[UserClaims, Depends(get_current_user)],
    page: Annotated[PaginationParams, Query()],
):
    users = await service.list_users(limit=page.limit, offset=page.offset)
    return respond("User found", users)


@router.post(
    "/user",
    response_model=ApiResponse,
    summary="Create a user (multipart form, optional avatar)",
    responses={
        400: {"description": "Validation error or email already exists"},
        401: {"description": "Token is required"},
        403: {"description": "Invalid access token"},
    },
)
async def create_user(
    service: Annotated[UserService, Depends(get_user_service)],
    _: Annotated[UserClaims, Depends(get_current_user)],
    name: Annotated[str | None, Form()] = None,
    email: Annotated[str | None, Form()] = None,
    status: Annotated[str | None, Form()] = None,
    dob: Annotated[str | None, Form()] = None,
    password: Annotated[str | None, Form()] = None,
    confirm_password: Annotated[str | None, Form(alias="confirmPassword")] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
):
    return await _create(service, name, email, status, dob, password, confirm_password, avatar)


@router.post(
    "/signup",
    response_model=ApiResponse,
    summary="Register a new account",
    responses={400: {"description": "Validation error or email already exists"}},
)
async def signup(
    service: Annotated[UserService, Depends(get_user_service)],
    name: Annotated[str | None, Form()] = None,
    email: Annotated[str | None, Form()] = None,
    dob: Annotated[str | None, Form()] = None,
    password: Annotated[str | None, Form()] = None,
    confirm_password: Annotated[str | None, Form(alias="confirmPassword")] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
):
    """Self registration: same rules as POST /user, status is always active."""
    return await _create(service, name, email, None, dob, password, confirm_password, avatar)


@router.get(
    "/user/{user_id}",
    response_model=ApiResponse,
    summary="Get a user by encrypted id",
    responses={404: {"description": "User not found"}},
)
async def view_user(
    user_id: str,
    service: Annotated[UserService, Depends(get_user_service)],
    _: Annotated[UserClaims, Depends(get_current_user)],
):
    user = await service.view(user_id)
    return respond("User found", user)


@router.put(
    "/user/{user_id}",
    response_model=ApiResponse,
    summary="Update a user (multipart form, optional avatar)",
    responses={
        400: {"description": "Validation error or email already exists"},
        404: {"description": "User not updated"},
    },
)
async def update_user(
    user_id: str,
    service: Annotated[UserService, Depends(get_user_service)],
    _: Annotated[UserClaims, Depends(get_current_user)],
    name: Annotated[str | None, Form()] = None,
    email: Annotated[str | None, Form()] = None,
    status: Annotated[str | None, Form()] = None,
    dob: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
):
    uploaded = await _receive_avatar(avatar)
    try:
        data = parse_payload(
            UserUpdate,
            {"name": name, "email": email, "status": status, "dob": dob, "avatar": uploaded},
        )
    except ValidationError:
        storage.discard(uploaded)
        raise
    await service.update(user_id, data)
    return respond("User updated")


@router.delete(
    "/user/{user_id}",
    response_model=ApiResponse,
    summary="Delete a user",
    responses={404: {"description": "User not deleted"}},
)
async def delete_user(
    user_id: str,
    service: Annotated[UserService, Depends(get_user_service)],
    _: Annotated[UserClaims, Depends(get_current_user)],
):
    await service.delete(user_id)
    return respond("User deleted")


@router.post(
    "/users/seed",
    response_model=ApiResponse,
    summary="Seed default user (debug only)",
    responses={404: {"description": "Only when debug=True"}},
)
async def seed_default_user(service: Annotated[UserService, Depends(get_user_service)]):
    """Create the default admin account only when debug=True and it does not exist yet."""
    if not settings.debug:
        raise NotFound("Not found")
    if await service.users.find_by_email(DEV_SEED_EMAIL) is not None:
        return respond("User already exists")
    await service.users.create(
        name=DEV_SEED_NAME,
        email=DEV_SEED_EMAIL,
        password=DEV_SEED_PASSWORD,
    )
    await service.users.commit()
    return respond(
        "Default user created",
        {"email": DEV_SEED_EMAIL, "password": DEV_SEED_PASSWORD},
    )
