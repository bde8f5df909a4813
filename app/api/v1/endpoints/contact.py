import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.security import require_admin
from app.models.models import AdminUser, ContactMessage
from app.schemas.schemas import (
    ContactMessageCreate, ContactMessageEnvelope, ContactMessageListResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_message_or_404(db: Session, message_id: int) -> ContactMessage:
    contact_message = db.query(ContactMessage).filter(ContactMessage.id == message_id).first()
    if not contact_message:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Contact message not found"
        )
    return contact_message


def set_read(db: Session, message_id: int, read: bool) -> ContactMessage:
    contact_message = get_message_or_404(db, message_id)
    contact_message.read = read
    db.commit()
    db.refresh(contact_message)
    return contact_message


@router.post("", response_model=ContactMessageEnvelope, status_code=status.HTTP_201_CREATED)
def create_contact_message(message_data: ContactMessageCreate, db: Session = Depends(get_db)):
    """Store a message from the storefront contact form"""
    contact_message = ContactMessage(
        name=message_data.name,
        email=message_data.email,
        phone=message_data.phone,
        message=message_data.message,
        product_ref=message_data.product_ref,
        read=False,
        created_at=datetime.utcnow()
    )
    db.add(contact_message)
    db.commit()
    db.refresh(contact_message)

    logger.info(f"Contact message {contact_message.id} received from {contact_message.email}")
    return {
        "message": "Message sent successfully",
        "contact_message": contact_message
    }


@router.get("/admin", response_model=ContactMessageListResponse)
def get_contact_messages(
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    messages = db.query(ContactMessage).order_by(
        ContactMessage.created_at.desc(), ContactMessage.id.desc()
    ).all()
    return {"count": len(messages), "messages": messages}


@router.get("/admin/{message_id}", response_model=ContactMessageEnvelope)
def get_contact_message(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    return {"contact_message": get_message_or_404(db, message_id)}


@router.put("/admin/{message_id}/read", response_model=ContactMessageEnvelope)
def mark_as_read(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    return {
        "message": "Message marked as read",
        "contact_message": set_read(db, message_id, True)
    }


@router.put("/admin/{message_id}/unread", response_model=ContactMessageEnvelope)
def mark_as_unread(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    return {
        "message": "Message marked as unread",
        "contact_message": set_read(db, message_id, False)
    }


@router.delete("/admin/{message_id}", response_model=MessageResponse)
def delete_contact_message(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(require_admin)
):
    contact_message = get_message_or_404(db, message_id)
    db.delete(contact_message)
    db.commit()
    return {"message": "Contact message deleted"}
