"""
Email Service using Resend

Review notifications sent to students and teachers when an administrator
approves or rejects one of their documents or requests.
"""

import asyncio
import logging
from html import escape

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

_BASE_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
        .header {{ color: {color}; margin-bottom: 24px; }}
        .notes {{ background-color: #f3f4f6; padding: 16px; border-radius: 8px; }}
        .button {{ display: inline-block; background-color: #1a365d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
        .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
    </style>
</head>
<body>
    <div class="container">
        <h1 class="header">{title}</h1>
        <p>Olá {name},</p>
        <p>{body}</p>
        {notes}
        <a href="{url}" class="button">Acessar o sistema</a>
        <div class="footer">
            <p>Secretaria Online</p>
        </div>
    </div>
</body>
</html>
"""


async def send_email(to_email: str, subject: str, html_content: str) -> bool:
    """
    Send an email using Resend.

    Without an API key the message is logged instead of sent.

    Returns:
        True if the email was sent (or logged)
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def _render(title: str, color: str, name: str, body: str, observations: str | None, path: str) -> str:
    notes = ""
    if observations:
        notes = f'<div class="notes"><strong>Observações:</strong> {escape(observations)}</div>'
    return _BASE_TEMPLATE.format(
        title=title,
        color=color,
        name=escape(name),
        body=body,
        notes=notes,
        url=f"{settings.frontend_url}{path}",
    )


async def send_document_approved(
    to_email: str,
    user_name: str,
    document_type_name: str,
    observations: str | None = None,
) -> bool:
    html_content = _render(
        title="Documento aprovado",
        color="#15803d",
        name=user_name,
        body=f"Seu documento <strong>{escape(document_type_name)}</strong> foi aprovado.",
        observations=observations,
        path="/documents",
    )
    return await send_email(
        to_email=to_email,
        subject=f"Documento aprovado: {document_type_name}",
        html_content=html_content,
    )


async def send_document_rejected(
    to_email: str,
    user_name: str,
    document_type_name: str,
    observations: str,
) -> bool:
    """Rejection notice; observations explain what must be corrected before re-upload."""
    html_content = _render(
        title="Documento rejeitado",
        color="#b91c1c",
        name=user_name,
        body=(
            f"Seu documento <strong>{escape(document_type_name)}</strong> foi rejeitado. "
            "Envie uma nova versão pelo sistema."
        ),
        observations=observations,
        path="/documents",
    )
    return await send_email(
        to_email=to_email,
        subject=f"Documento rejeitado: {document_type_name}",
        html_content=html_content,
    )


async def send_request_reviewed(
    to_email: str,
    student_name: str,
    request_type_name: str,
    approved: bool,
    observations: str | None = None,
) -> bool:
    outcome = "aprovada" if approved else "rejeitada"
    html_content = _render(
        title=f"Solicitação {outcome}",
        color="#15803d" if approved else "#b91c1c",
        name=student_name,
        body=f"Sua solicitação de <strong>{escape(request_type_name)}</strong> foi {outcome}.",
        observations=observations,
        path="/requests",
    )
    return await send_email(
        to_email=to_email,
        subject=f"Solicitação {outcome}: {request_type_name}",
        html_content=html_content,
    )
