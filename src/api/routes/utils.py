"""
Utility endpoints
=================

POST /api/v1/utils/test-email -- send a test email (admin)
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_mailer, require_roles
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import EmailTestRequest, MessageResponse
from src.domain.enums import UserRole
from src.infrastructure.mailer import Mailer

router = APIRouter(prefix="/utils", tags=["utils"])


@router.post("/test-email", response_model=MessageResponse, summary="Send a test email")
@limiter.limit(RATE_LIMIT)
async def test_email(
    request: Request,
    body: EmailTestRequest,
    _=Depends(require_roles(UserRole.ADMIN)),
    mailer: Mailer = Depends(get_mailer),
):
    sent = await mailer.send(body.to, body.subject, body.text)
    return MessageResponse(message="Email sent" if sent else "Email delivery disabled")
