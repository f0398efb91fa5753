from examportal.db import Base
from sqlalchemy import Column, String, JSON


EXAM_PORTAL_ENABLED = "exam_portal_enabled"


class PortalSetting(Base):
    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=True)
