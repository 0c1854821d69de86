from datetime import datetime
from typing import Optional

from .common import ApiModel


class SiteSettingUpdate(ApiModel):
    value: Optional[str] = None


class SiteSetting(ApiModel):
    setting_key: str
    setting_value: Optional[str] = None
    updated_at: Optional[datetime] = None
