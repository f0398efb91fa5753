from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from .errors import AuthError, TransientNetworkError


@dataclass
class SessionContext:
    """
    Identity of the logged in user, passed explicitly to every client component.

    Created by ``login`` and emptied by ``destroy`` on logout; a destroyed
    context has no token and any request made with it fails with AuthError.
    """
    token: Optional[str]
    user_id: str
    role: str
    class_name: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return bool(self.token)

    def auth_headers(self) -> Dict[str, str]:
        if not self.token:
            raise AuthError("Not logged in")
        return {"Authorization": f"Bearer {self.token}"}

    def destroy(self) -> None:
        self.token = None


async def login(http: httpx.AsyncClient, email: str, password: str) -> SessionContext:
    try:
        res = await http.post("/auth/login", json={"email": email, "password": password})
    except httpx.TransportError as e:
        raise TransientNetworkError(f"Login request failed: {e}") from e
    if res.status_code >= 500:
        raise TransientNetworkError("Server error during login", res.status_code)
    if res.status_code != 200:
        raise AuthError("Invalid credentials", res.status_code)

    data = res.json()
    user = data.get("user") or {}
    return SessionContext(
        token=data.get("token"),
        user_id=str(user.get("id")),
        role=user.get("role", "student"),
        class_name=user.get("class_name"),
        full_name=user.get("full_name"),
    )
