from fastapi_users import schemas
from examportal.models.user_model import UserRole
import uuid
from pydantic import BaseModel

class UserRead(schemas.BaseUser[uuid.UUID]):
    full_name: str
    role: UserRole
    class_name: str | None = None

class UserCreate(schemas.BaseUserCreate):
    full_name: str
    role: UserRole = UserRole.STUDENT # Default role on creation
    class_name: str | None = None

class UserUpdate(schemas.BaseUserUpdate):
    full_name : str | None = None
    role: UserRole | None = None
    class_name: str | None = None

class LoginRequest(BaseModel):
    email: str
    password: str

class LoginResponse(BaseModel):
    user: UserRead
    token: str
