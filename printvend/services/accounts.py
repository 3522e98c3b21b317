# printvend/services/accounts.py
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from printvend.models import Profile, Role
from printvend.services.wallet import ensure_wallet

logger = logging.getLogger(__name__)


def is_vip(db: Session, user_id: str) -> bool:
    profile = db.get(Profile, user_id)
    return bool(profile and profile.role == Role.VIP)


def ensure_profile(
    db: Session, user_id: str, email: Optional[str] = None, full_name: Optional[str] = None
) -> Profile:
    """First sign-in creates a USER profile and an empty wallet."""
    profile = db.get(Profile, user_id)
    if not profile:
        db.add(Profile(id=user_id, email=email, full_name=full_name, role=Role.USER))
        try:
            db.commit()
            logger.info("Created profile for %s", user_id)
        except IntegrityError:
            db.rollback()
        profile = db.get(Profile, user_id)
    ensure_wallet(db, user_id)
    return profile
