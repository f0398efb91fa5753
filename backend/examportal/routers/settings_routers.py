from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import current_admin
from ..schemas.settings_schema import PortalSettingRead, PortalSettingUpdate
from ..security import current_active_user
from ..services.settings_service import is_exam_portal_enabled, set_exam_portal_enabled

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("/exam-portal", response_model=PortalSettingRead, dependencies=[Depends(current_active_user)])
async def get_exam_portal(session: AsyncSession = Depends(get_async_session)):
    return {"enabled": await is_exam_portal_enabled(session)}


@router.put("/exam-portal", response_model=PortalSettingRead, dependencies=[Depends(current_admin)])
async def update_exam_portal(payload: PortalSettingUpdate, session: AsyncSession = Depends(get_async_session)):
    return {"enabled": await set_exam_portal_enabled(session, payload.enabled)}
