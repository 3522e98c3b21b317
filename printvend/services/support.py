# printvend/services/support.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from printvend.errors import ValidationError
from printvend.models import SupportTicket

logger = logging.getLogger(__name__)


def open_ticket(db: Session, user_id: str, message: str, order_id: Optional[str] = None) -> SupportTicket:
    message = (message or "").strip()
    if not message:
        raise ValidationError("Message is required")
    ticket = SupportTicket(user_id=user_id, order_id=order_id, message=message)
    db.add(ticket)
    db.commit()
    logger.info("Support ticket %s opened by %s (order=%s)", ticket.id, user_id, order_id)
    return ticket
