"""Authentication endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.core.config import settings
from parts_inventory.core.dependencies import get_current_user, get_db
from parts_inventory.core.security import create_access_token
from parts_inventory.models.user import User
from parts_inventory.schemas.user import LoginRequest, TokenResponse, UserResponse
from parts_inventory.services.users import authenticate

router = APIRouter()


@router.post("/token", response_model=TokenResponse)
async def issue_token(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Exchange username and password for a bearer access token."""
    user = await authenticate(db, body.username, body.password)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    expires_in = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    return TokenResponse(
        access_token=create_access_token(user.username, user.role, expires_in=expires_in),
        expires_in=expires_in,
    )


@router.get("/me", response_model=UserResponse)
async def read_current_user(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)
