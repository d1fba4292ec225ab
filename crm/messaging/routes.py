from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc
from typing import Optional
from datetime import datetime
import logging

from crm.database import get_db
from crm.auth.dependencies import get_current_principal
from crm.auth.schemas import Principal
from crm.errors import not_found, validation_error
from crm.messaging.schemas import (
    ThreadCreate, MessageCreate, MessageResponse, ThreadResponse, ThreadListItem
)
from crm.models import Client, Message, MessageThread, Project

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["Messaging"])


def get_thread_for_principal(db: Session, thread_id: int, principal: Principal) -> MessageThread:
    query = db.query(MessageThread).filter(MessageThread.id == thread_id)
    if not principal.is_admin:
        query = query.filter(MessageThread.client_id == principal.client_id)

    thread = query.first()
    if not thread:
        raise not_found("Thread")
    return thread


def to_list_item(thread: MessageThread, principal: Principal) -> ThreadListItem:
    item = ThreadListItem(**ThreadResponse.model_validate(thread).dict())
    if thread.client is not None:
        item.client_name = thread.client.contact_name
        item.company_name = thread.client.company_name
    if thread.project is not None:
        item.project_name = thread.project.project_name
    item.message_count = len(thread.messages)
    item.unread_count = sum(
        1 for m in thread.messages
        if not m.is_read and m.sender_type != principal.type.value
    )
    return item


def add_message(db: Session, thread: MessageThread, principal: Principal, text: str) -> Message:
    message = Message(
        thread_id=thread.id,
        sender_type=principal.type.value,
        sender_name=principal.name or principal.email,
        message=text,
    )
    db.add(message)
    thread.last_message_at = datetime.utcnow()
    return message

# =====================================================
# THREADS
# =====================================================

@router.get("/threads")
def list_threads(
    project_id: Optional[int] = Query(None),
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Threads with unread counts relative to the caller."""
    query = db.query(MessageThread).options(
        joinedload(MessageThread.client),
        joinedload(MessageThread.project),
        joinedload(MessageThread.messages)
    )
    if not current_user.is_admin:
        query = query.filter(MessageThread.client_id == current_user.client_id)
    if project_id is not None:
        query = query.filter(MessageThread.project_id == project_id)

    threads = query.order_by(desc(MessageThread.last_message_at), desc(MessageThread.id)).all()
    return {"threads": [to_list_item(t, current_user) for t in threads]}

@router.post("/threads", status_code=status.HTTP_201_CREATED)
def create_thread(
    thread_data: ThreadCreate,
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    client_id = thread_data.client_id if current_user.is_admin else current_user.client_id
    if client_id is None:
        raise validation_error("client_id is required")
    if not db.query(Client).filter(Client.id == client_id).first():
        raise not_found("Client")

    if thread_data.project_id is not None:
        project = db.query(Project).filter(
            Project.id == thread_data.project_id,
            Project.client_id == client_id
        ).first()
        if not project:
            raise not_found("Project")

    thread = MessageThread(
        client_id=client_id,
        project_id=thread_data.project_id,
        subject=thread_data.subject,
        thread_type=thread_data.thread_type or "general",
    )
    db.add(thread)
    db.flush()
    add_message(db, thread, current_user, thread_data.message)
    db.commit()
    db.refresh(thread)

    logger.info("Thread %s opened by %s", thread.id, current_user.type.value)
    return {"success": True, "thread": ThreadResponse.model_validate(thread)}

# =====================================================
# MESSAGES
# =====================================================

@router.get("/threads/{thread_id}/messages")
def get_thread_messages(
    thread_id: int,
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    thread = get_thread_for_principal(db, thread_id, current_user)
    messages = db.query(Message).filter(Message.thread_id == thread.id).order_by(
        Message.created_at, Message.id
    ).all()
    return {
        "thread": ThreadResponse.model_validate(thread),
        "messages": [MessageResponse.model_validate(m) for m in messages],
    }

@router.post("/threads/{thread_id}/messages", status_code=status.HTTP_201_CREATED)
def send_message(
    thread_id: int,
    message_data: MessageCreate,
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    thread = get_thread_for_principal(db, thread_id, current_user)
    message = add_message(db, thread, current_user, message_data.message)
    db.commit()
    db.refresh(message)
    return {"success": True, "message": MessageResponse.model_validate(message)}

@router.put("/threads/{thread_id}/read")
def mark_thread_read(
    thread_id: int,
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Mark the other side's messages as read."""
    thread = get_thread_for_principal(db, thread_id, current_user)
    now = datetime.utcnow()
    updated = db.query(Message).filter(
        Message.thread_id == thread.id,
        Message.sender_type != current_user.type.value,
        Message.is_read == False
    ).update({Message.is_read: True, Message.read_at: now}, synchronize_session=False)
    db.commit()
    return {"success": True, "updated": updated}
