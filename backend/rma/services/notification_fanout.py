"""Insert-only notification fan-out for enquiry events."""
from __future__ import annotations

from sqlalchemy.orm import Session

from ..auth import SUPER_ADMIN
from ..models import Enquiry, Notification, User

ENQUIRY_CREATED = "enquiry_created"
ENQUIRY_REPLY = "enquiry_reply"
ENQUIRY_STATUS = "enquiry_status"


def enquiry_link(enquiry: Enquiry) -> str:
    return f"/enquiries/{enquiry.id}"


def notify_counterpart(
    db: Session,
    *,
    actor: User,
    enquiry: Enquiry,
    type: str,
    title: str,
    message: str,
) -> list[Notification]:
    """Add notification rows for the side of the conversation that did not act.

    Operations (SuperAdmin) actions target the enquiry's business; business-side
    actions target every SuperAdmin user individually. Rows are added to the
    session only; the caller commits.
    """
    common = {
        "type": type,
        "title": title,
        "message": message,
        "link": enquiry_link(enquiry),
        "enquiry_id": enquiry.id,
        "order_number": enquiry.order_number,
    }
    if actor.role_id == SUPER_ADMIN:
        rows = [Notification(business_id=enquiry.business_id, **common)]
    else:
        operators = db.query(User.id).filter(User.role_id == SUPER_ADMIN).all()
        rows = [Notification(user_id=operator_id, **common) for (operator_id,) in operators]
    for row in rows:
        db.add(row)
    return rows
