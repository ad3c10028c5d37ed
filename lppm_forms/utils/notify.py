from __future__ import annotations

import logging

from lppm_forms.core.config import settings
from lppm_forms.utils.mailer import Attachment, Mailer

logger = logging.getLogger("lppm_forms.notify")

CONFIRMATION_SUBJECT = "Konfirmasi Pengisian Form LPPM"


async def send_submission_notifications(
    mailer: Mailer,
    *,
    submitter_email: str,
    nama_ketua: str,
    subject: str,
    attachment: Attachment | None,
) -> None:
    """Confirmation to the submitter + notification (with document) to the ops mailbox.

    Runs as a background task after the response is sent: failures are logged
    and never reach the client. The two mails are independent of each other.
    """
    if submitter_email:
        try:
            await mailer.send(submitter_email, CONFIRMATION_SUBJECT, settings.CONFIRMATION_BODY)
        except Exception:
            logger.exception("Confirmation mail to %s failed", submitter_email)

    if not settings.OPS_MAILBOX:
        return
    try:
        await mailer.send(
            settings.OPS_MAILBOX,
            f"{subject} Baru dari {nama_ketua}",
            f"Form baru dari {nama_ketua}, email: {submitter_email}.",
            [attachment] if attachment else [],
        )
    except Exception:
        logger.exception("Notification mail for %s (%s) failed", nama_ketua, subject)
