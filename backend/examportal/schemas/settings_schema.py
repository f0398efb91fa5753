from .base import CamelModel


class PortalSettingRead(CamelModel):
    enabled: bool


class PortalSettingUpdate(CamelModel):
    enabled: bool
