"""Mentorship request routes: students ask, alumni accept or decline."""
from collections import defaultdict, deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from fastapi import APIRouter, Depends, Form
from sqlalchemy import or_
from sqlalchemy.orm import Session

from . import schemas
from .auth import check_csrf_token, get_current_session, get_current_user_id
from .config import (
    REQUEST_MESSAGE_MAX_LENGTH,
    REQUEST_MESSAGE_MIN_LENGTH,
    REQUEST_RATE_LIMIT,
    REQUEST_RATE_WINDOW_SECONDS,
)
from .database import get_db
from .logging_config import configure_logging
from .messages import check_rate_limit, error_response
from .models import REQUEST_ACCEPTED, REQUEST_DECLINED, REQUEST_PENDING, Mentorship, MentorshipRequest, User

router = APIRouter(prefix="/mentorship", tags=["mentorship"])
logger = configure_logging()

# In-memory request history: student_id -> timestamps of recent requests
REQUEST_RATE_LIMITS: Dict[int, Deque[float]] = defaultdict(deque)


def _get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def _request_out(request: MentorshipRequest) -> schemas.MentorshipRequestOut:
    return schemas.MentorshipRequestOut(
        request_id=request.id,
        student_id=request.student_id,
        student_name=request.student.name if request.student else "Unknown",
        alumni_id=request.alumni_id,
        alumni_name=request.alumni.name if request.alumni else "Unknown",
        message=request.message,
        status=request.status,
        requested_at=request.requested_at,
        responded_at=request.responded_at,
    )


def validate_request_message(message: str) -> List[str]:
    if not message:
        return ["Please provide a message explaining why you want mentorship."]
    if len(message) < REQUEST_MESSAGE_MIN_LENGTH:
        return [f"Message must be at least {REQUEST_MESSAGE_MIN_LENGTH} characters long."]
    if len(message) > REQUEST_MESSAGE_MAX_LENGTH:
        return [f"Message must not exceed {REQUEST_MESSAGE_MAX_LENGTH} characters."]
    return []


@router.get("/send_request.php", response_model=schemas.AlumniListResponse)
def list_alumni(db: Session = Depends(get_db), _: int = Depends(get_current_user_id)):
    alumni = db.query(User).filter(User.role == "alumni").order_by(User.name).all()
    return schemas.AlumniListResponse(alumni=[schemas.AlumniOut(id=a.id, name=a.name) for a in alumni])


@router.post("/send_request.php")
def send_request(
    alumni_id: int = Form(0),
    message: str = Form(""),
    csrf_token: str = Form(""),
    db: Session = Depends(get_db),
    session: Dict[str, Any] = Depends(get_current_session),
):
    current_user_id = int(session["user_id"])
    if not check_csrf_token(session, csrf_token):
        logger.warning("CSRF_REJECTED user_id=%s action=send_request", current_user_id)
        return error_response(403, "Invalid security token")
    student = _get_user(db, current_user_id)
    if not student or student.role != "student":
        return error_response(403, "Only students can send mentorship requests")

    if alumni_id <= 0:
        return error_response(200, "Please select an alumni mentor.")
    message = message.strip()
    errors = validate_request_message(message)
    if errors:
        return error_response(200, errors[0])

    alumni = _get_user(db, alumni_id)
    if not alumni or alumni.role != "alumni":
        return error_response(200, "Selected alumni is not available for mentorship.")

    existing = (
        db.query(MentorshipRequest)
        .filter(
            MentorshipRequest.student_id == current_user_id,
            MentorshipRequest.alumni_id == alumni_id,
            MentorshipRequest.status.in_((REQUEST_PENDING, REQUEST_ACCEPTED)),
        )
        .first()
    )
    if existing:
        return error_response(200, "You already have a pending or accepted mentorship request with this alumni.")

    if not check_rate_limit(
        current_user_id, REQUEST_RATE_LIMIT, REQUEST_RATE_WINDOW_SECONDS, history=REQUEST_RATE_LIMITS
    ):
        logger.warning("RATE_LIMITED user_id=%s action=send_request", current_user_id)
        return error_response(429, f"You can only send {REQUEST_RATE_LIMIT} mentorship requests per hour. Please try again later.")

    request = MentorshipRequest(student_id=current_user_id, alumni_id=alumni_id, message=message)
    db.add(request)
    db.commit()
    db.refresh(request)
    logger.info(
        "MENTORSHIP_REQUESTED request_id=%s student_id=%s alumni_id=%s", request.id, current_user_id, alumni_id
    )
    return schemas.SendRequestResponse(request=_request_out(request))


@router.get("/requests.php", response_model=schemas.MentorshipRequestsResponse)
def list_requests(db: Session = Depends(get_db), current_user_id: int = Depends(get_current_user_id)):
    """Requests sent (students) or received (alumni), newest first, plus active mentorships."""
    requests = (
        db.query(MentorshipRequest)
        .filter(
            or_(MentorshipRequest.student_id == current_user_id, MentorshipRequest.alumni_id == current_user_id)
        )
        .order_by(MentorshipRequest.requested_at.desc(), MentorshipRequest.id.desc())
        .all()
    )
    mentorships = (
        db.query(Mentorship)
        .filter(
            Mentorship.active.is_(True),
            or_(Mentorship.student_id == current_user_id, Mentorship.alumni_id == current_user_id),
        )
        .order_by(Mentorship.created_at.desc())
        .all()
    )
    active = []
    for mentorship in mentorships:
        partner_id = mentorship.partner_of(current_user_id)
        partner = _get_user(db, partner_id)
        active.append(
            schemas.MentorshipOut(
                mentorship_id=mentorship.id,
                partner_id=partner_id,
                partner_name=partner.name if partner else "Unknown",
                started_at=mentorship.created_at,
            )
        )
    return schemas.MentorshipRequestsResponse(requests=[_request_out(r) for r in requests], active=active)


@router.post("/respond_request.php")
def respond_request(
    request_id: int = Form(0),
    response: str = Form(""),
    csrf_token: str = Form(""),
    db: Session = Depends(get_db),
    session: Dict[str, Any] = Depends(get_current_session),
):
    current_user_id = int(session["user_id"])
    if not check_csrf_token(session, csrf_token):
        logger.warning("CSRF_REJECTED user_id=%s action=respond_request", current_user_id)
        return error_response(403, "Invalid security token")
    if response not in (REQUEST_ACCEPTED, REQUEST_DECLINED):
        return error_response(200, "Please select a valid response.")

    request = (
        db.query(MentorshipRequest)
        .filter(
            MentorshipRequest.id == request_id,
            MentorshipRequest.alumni_id == current_user_id,
            MentorshipRequest.status == REQUEST_PENDING,
        )
        .first()
    )
    if not request:
        return error_response(404, "Mentorship request not found or already responded to")

    request.status = response
    request.responded_at = datetime.utcnow()
    mentorship: Optional[Mentorship] = None
    if response == REQUEST_ACCEPTED:
        mentorship = (
            db.query(Mentorship)
            .filter(
                Mentorship.student_id == request.student_id,
                Mentorship.alumni_id == current_user_id,
                Mentorship.active.is_(True),
            )
            .first()
        )
        if not mentorship:
            mentorship = Mentorship(student_id=request.student_id, alumni_id=current_user_id, active=True)
            db.add(mentorship)
    db.commit()
    db.refresh(request)
    logger.info(
        "MENTORSHIP_RESPONDED request_id=%s alumni_id=%s response=%s mentorship_id=%s",
        request.id,
        current_user_id,
        response,
        mentorship.id if mentorship else None,
    )
    return schemas.RespondRequestResponse(
        request=_request_out(request), mentorship_id=mentorship.id if mentorship else None
    )
