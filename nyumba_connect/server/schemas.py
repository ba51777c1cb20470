"""Pydantic schemas for request and response bodies."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    login: str
    password: str = Field(..., min_length=10)
    name: str
    role: str = "student"


class LoginRequest(BaseModel):
    login: str
    password: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    login: str
    name: str
    role: str


class LoginResponse(BaseModel):
    token: str
    csrf_token: str
    user: UserOut


class MessageOut(BaseModel):
    message_id: int
    sender_id: int
    receiver_id: int
    sender_name: str
    text: str
    created_at: datetime
    is_read: bool
    is_own_message: bool


class FetchMessagesResponse(BaseModel):
    success: bool = True
    has_new_messages: bool
    messages: List[MessageOut]
    total_unread: int


class SendMessageResponse(BaseModel):
    success: bool = True
    message_id: int
    message: MessageOut


class ConversationOut(BaseModel):
    mentorship_id: int
    partner_id: int
    partner_name: str
    last_message_text: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0


class InboxResponse(BaseModel):
    success: bool = True
    conversations: List[ConversationOut]
    total_unread: int


class ResourceOut(BaseModel):
    id: int
    title: str
    description: str
    file_name: str
    file_size: int
    download_count: int
    uploader_name: str
    created_at: datetime


class ResourcePage(BaseModel):
    success: bool = True
    resources: List[ResourceOut]
    page: int
    per_page: int
    total: int
    total_pages: int
    search: str
    sort: str
    order: str
    popular: List[ResourceOut]
    recent: List[ResourceOut]


class AlumniOut(BaseModel):
    id: int
    name: str


class AlumniListResponse(BaseModel):
    success: bool = True
    alumni: List[AlumniOut]


class MentorshipRequestOut(BaseModel):
    request_id: int
    student_id: int
    student_name: str
    alumni_id: int
    alumni_name: str
    message: str
    status: str
    requested_at: datetime
    responded_at: Optional[datetime] = None


class MentorshipOut(BaseModel):
    mentorship_id: int
    partner_id: int
    partner_name: str
    started_at: datetime


class MentorshipRequestsResponse(BaseModel):
    success: bool = True
    requests: List[MentorshipRequestOut]
    active: List[MentorshipOut]


class SendRequestResponse(BaseModel):
    success: bool = True
    request: MentorshipRequestOut


class RespondRequestResponse(BaseModel):
    success: bool = True
    request: MentorshipRequestOut
    mentorship_id: Optional[int] = None
