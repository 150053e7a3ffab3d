"""
Registration and login endpoints.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.auth import create_access_token
from api.dependencies import get_config, get_user_service
from api.models import AuthResponse, LoginRequest, RegisterRequest, UserSummary
from library.users import UserService
from utilities.config import LibraryConfig

router = APIRouter(prefix="/api/users", tags=["Users"])


def _auth_response(user: dict, config: LibraryConfig, status_code: int) -> JSONResponse:
    body = AuthResponse(
        access_token=create_access_token(user, config),
        user=UserSummary(name=user["name"], email=user["email"], role=user["role"]),
    )
    return JSONResponse(status_code=status_code, content=body.to_response())


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    users: UserService = Depends(get_user_service),
    config: LibraryConfig = Depends(get_config)
):
    """Create an account and return an access token."""
    user = await users.register(payload.name, payload.email, payload.password, payload.role)
    return _auth_response(user, config, status.HTTP_201_CREATED)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    users: UserService = Depends(get_user_service),
    config: LibraryConfig = Depends(get_config)
):
    """Exchange email and password for an access token."""
    user = await users.authenticate(payload.email, payload.password)
    return _auth_response(user, config, status.HTTP_200_OK)
