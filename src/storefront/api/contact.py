"""FastAPI route for the contact form"""
from fastapi import APIRouter, Depends, HTTPException
from storefront.config import Settings
from storefront.api.dependencies import get_settings, get_mailer
from storefront.services.errors import MailDeliveryError
from storefront.services.mailer import Mailer
from storefront.models.schemas import ContactRequest, MessageResponse
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["contact"])


@router.post("/contact", response_model=MessageResponse)
def contact(
    form: ContactRequest,
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer)
):
    """Forward a contact message to the shop; nothing is stored"""
    receiver = settings.contact_receiver_email
    if mailer.is_configured and receiver:
        body = f"From: {form.name} <{form.email}>\n\n{form.message}"
        try:
            mailer.send(receiver, f"[Contact] {form.subject}", body, reply_to=form.email)
        except MailDeliveryError:
            raise HTTPException(status_code=502, detail="Message could not be sent, please try again later")
    else:
        logger.warning("SMTP or contact receiver not configured; contact message not mailed")

    logger.info(f"Contact message received: {form.subject}")
    return MessageResponse(message="Message sent")
