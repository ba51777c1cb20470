"""Message-related API routes."""
import time
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional

from fastapi import APIRouter, Depends, Form
from fastapi.responses import JSONResponse
from sqlalchemy import or_
from sqlalchemy.orm import Session

from . import schemas
from .auth import check_csrf_token, get_current_session, get_current_user_id
from .config import SEND_RATE_LIMIT, SEND_RATE_WINDOW_SECONDS
from .database import get_db
from .logging_config import configure_logging
from .models import Mentorship, Message, User
from ..shared.utils import validate_message_text

router = APIRouter(prefix="/messages", tags=["messages"])
logger = configure_logging()

# In-memory send history: user_id -> timestamps of recent sends
RATE_LIMITS: Dict[int, Deque[float]] = defaultdict(deque)


def error_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def check_rate_limit(
    user_id: int,
    limit: int = SEND_RATE_LIMIT,
    window: int = SEND_RATE_WINDOW_SECONDS,
    history: Optional[Dict[int, Deque[float]]] = None,
) -> bool:
    now = time.monotonic()
    sent = (RATE_LIMITS if history is None else history)[user_id]
    while sent and now - sent[0] >= window:
        sent.popleft()
    if len(sent) >= limit:
        return False
    sent.append(now)
    return True


def get_active_mentorship(db: Session, mentorship_id: int, user_id: int) -> Optional[Mentorship]:
    return (
        db.query(Mentorship)
        .filter(
            Mentorship.id == mentorship_id,
            Mentorship.active.is_(True),
            or_(Mentorship.student_id == user_id, Mentorship.alumni_id == user_id),
        )
        .first()
    )


def count_unread(db: Session, user_id: int, mentorship_id: Optional[int] = None) -> int:
    query = (
        db.query(Message)
        .join(Mentorship, Message.mentorship_id == Mentorship.id)
        .filter(Message.receiver_id == user_id, Message.is_read.is_(False), Mentorship.active.is_(True))
    )
    if mentorship_id is not None:
        query = query.filter(Message.mentorship_id == mentorship_id)
    return query.count()


def _message_out(msg: Message, current_user_id: int) -> schemas.MessageOut:
    return schemas.MessageOut(
        message_id=msg.id,
        sender_id=msg.sender_id,
        receiver_id=msg.receiver_id,
        sender_name=msg.sender.name if msg.sender else "Unknown",
        text=msg.message_text,
        created_at=msg.sent_at,
        is_read=msg.is_read,
        is_own_message=msg.sender_id == current_user_id,
    )


@router.get("/fetch_messages.php")
def fetch_messages(
    mentorship_id: int = 0,
    last_message_id: int = 0,
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    if mentorship_id <= 0:
        return error_response(400, "Invalid mentorship ID")
    if not get_active_mentorship(db, mentorship_id, current_user_id):
        logger.warning("FETCH_DENIED user_id=%s mentorship_id=%s", current_user_id, mentorship_id)
        return error_response(403, "Access denied - mentorship not found or inactive")

    messages: List[Message] = (
        db.query(Message)
        .filter(Message.mentorship_id == mentorship_id, Message.id > last_message_id)
        .order_by(Message.id)
        .all()
    )
    results = [_message_out(msg, current_user_id) for msg in messages]

    unread_ids = [msg.id for msg in messages if msg.receiver_id == current_user_id and not msg.is_read]
    if unread_ids:
        db.query(Message).filter(Message.id.in_(unread_ids)).update({Message.is_read: True}, synchronize_session=False)
        db.commit()

    return schemas.FetchMessagesResponse(
        has_new_messages=bool(results),
        messages=results,
        total_unread=count_unread(db, current_user_id),
    )


@router.post("/send_message.php")
def send_message(
    mentorship_id: int = Form(0),
    message_text: str = Form(""),
    csrf_token: str = Form(""),
    db: Session = Depends(get_db),
    session: Dict[str, Any] = Depends(get_current_session),
):
    current_user_id = int(session["user_id"])
    if not check_csrf_token(session, csrf_token):
        logger.warning("CSRF_REJECTED user_id=%s action=send_message", current_user_id)
        return error_response(403, "Invalid security token")
    if not check_rate_limit(current_user_id):
        logger.warning("RATE_LIMITED user_id=%s action=send_message", current_user_id)
        return error_response(429, "Too many messages sent. Please wait before sending another.")
    if mentorship_id <= 0:
        return error_response(200, "Invalid mentorship ID")

    text = message_text.strip()
    errors = validate_message_text(text)
    if errors:
        return error_response(200, errors[0])

    mentorship = get_active_mentorship(db, mentorship_id, current_user_id)
    if not mentorship:
        logger.warning("SEND_DENIED user_id=%s mentorship_id=%s", current_user_id, mentorship_id)
        return error_response(403, "You do not have permission to send messages in this mentorship")

    message = Message(
        mentorship_id=mentorship.id,
        sender_id=current_user_id,
        receiver_id=mentorship.partner_of(current_user_id),
        message_text=text,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info(
        "MESSAGE_SENT sender_id=%s receiver_id=%s mentorship_id=%s message_id=%s",
        message.sender_id,
        message.receiver_id,
        mentorship.id,
        message.id,
    )
    return schemas.SendMessageResponse(message_id=message.id, message=_message_out(message, current_user_id))


@router.get("/inbox.php", response_model=schemas.InboxResponse)
def inbox(db: Session = Depends(get_db), current_user_id: int = Depends(get_current_user_id)):
    mentorships = (
        db.query(Mentorship)
        .filter(
            Mentorship.active.is_(True),
            or_(Mentorship.student_id == current_user_id, Mentorship.alumni_id == current_user_id),
        )
        .all()
    )
    conversations: List[schemas.ConversationOut] = []
    for mentorship in mentorships:
        partner_id = mentorship.partner_of(current_user_id)
        partner = db.query(User).filter(User.id == partner_id).first()
        last = (
            db.query(Message).filter(Message.mentorship_id == mentorship.id).order_by(Message.id.desc()).first()
        )
        conversations.append(
            schemas.ConversationOut(
                mentorship_id=mentorship.id,
                partner_id=partner_id,
                partner_name=partner.name if partner else "Unknown",
                last_message_text=last.message_text if last else None,
                last_message_at=last.sent_at if last else None,
                unread_count=count_unread(db, current_user_id, mentorship.id),
            )
        )
    conversations.sort(key=lambda c: c.last_message_at.timestamp() if c.last_message_at else 0, reverse=True)
    return schemas.InboxResponse(conversations=conversations, total_unread=count_unread(db, current_user_id))
