from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import EXAM_PORTAL_ENABLED as DEFAULT_PORTAL_ENABLED
from ..models.settings_model import PortalSetting, EXAM_PORTAL_ENABLED


async def is_exam_portal_enabled(session: AsyncSession) -> bool:
    res = await session.execute(select(PortalSetting).where(PortalSetting.key == EXAM_PORTAL_ENABLED))
    row = res.scalar_one_or_none()
    if row is None:
        return DEFAULT_PORTAL_ENABLED
    return bool(row.value)


async def set_exam_portal_enabled(session: AsyncSession, enabled: bool) -> bool:
    row = await session.get(PortalSetting, EXAM_PORTAL_ENABLED)
    if row is None:
        row = PortalSetting(key=EXAM_PORTAL_ENABLED, value=enabled)
        session.add(row)
    else:
        row.value = enabled
    await session.commit()
    return enabled
