"""SQLAlchemy models package.

from pinkdiary.models import Diary, AppSetting
"""

from .diaries import Diary, year_from_date  # noqa: F401
from .settings import AppSetting  # noqa: F401
