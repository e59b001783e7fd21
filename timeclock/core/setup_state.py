import logging
from typing import Optional

from sqlalchemy.orm import Session

from timeclock.core.roles import UserRole
from timeclock.models.user import User

logger = logging.getLogger(__name__)


class AdminSetupState:
    """
    In-memory cache of "an admin account exists".

    Starts unknown; the first status check queries the database once and
    remembers the answer. ``mark_admin_created`` sets it to True right after
    the admin insert and nothing ever resets it. This only saves queries:
    the unique username constraint is what stops concurrent setups.
    """

    def __init__(self):
        self.admin_exists: Optional[bool] = None

    @property
    def checked(self) -> bool:
        return self.admin_exists is not None

    def needs_setup(self, db: Session) -> bool:
        if self.admin_exists:
            return False
        count = db.query(User).filter(
            User.role.in_([UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value])
        ).count()
        self.admin_exists = count > 0
        logger.info("Admin setup check: admin_exists=%s", self.admin_exists)
        return not self.admin_exists

    def mark_admin_created(self):
        self.admin_exists = True
