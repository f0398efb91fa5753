#  /auth/login: the exam client posts email and password here and keeps the
#  returned token and user in its SessionContext
import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi_users.password import PasswordHelper

from ..db import get_user_db
from ..models.user_model import User
from ..schemas.user_schema import LoginRequest, LoginResponse, UserRead
from ..security import get_jwt_strategy

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/auth', tags=['auth'])

password_helper = PasswordHelper()


async def _issue_token(user: User) -> str:
    token = get_jwt_strategy().write_token(user)
    if asyncio.iscoroutine(token):
        token = await token
    return token


def _invalid_credentials() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, user_db=Depends(get_user_db)):
    user = await user_db.get_by_email(payload.email)
    if user is None or not user.is_active:
        raise _invalid_credentials()

    valid, upgraded_hash = password_helper.verify_and_update(payload.password, user.hashed_password)
    if not valid:
        logger.info("Rejected login for %s", payload.email)
        raise _invalid_credentials()
    if upgraded_hash:
        user = await user_db.update(user, {"hashed_password": upgraded_hash})

    return LoginResponse(user=UserRead.model_validate(user, from_attributes=True), token=await _issue_token(user))
