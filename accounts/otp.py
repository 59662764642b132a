"""
One-time codes for approving new administrators.

A code is always mailed to the single approver inbox configured in
``XSTORE_ADMIN_APPROVAL_EMAIL``, never to the address asking for access.
The approver relays the code out of band when they agree to the request.
"""
import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.core.mail import send_mail
from django.db import DatabaseError, transaction
from django.template.loader import render_to_string
from django.utils import timezone

from .models import AdminOTP

logger = logging.getLogger(__name__)


class OTPStorageError(Exception):
    """The code could not be written to the database."""


class OTPDeliveryError(Exception):
    """The code was stored but the approval email could not be sent."""


def generate_otp_code():
    """Six digits, never starting with zero."""
    return str(100000 + secrets.randbelow(900000))


def issue_admin_otp(requested_email):
    """Replace any earlier codes for ``requested_email`` with a fresh one."""
    try:
        with transaction.atomic():
            AdminOTP.objects.filter(email__iexact=requested_email).delete()
            otp = AdminOTP.objects.create(
                email=requested_email,
                otp_code=generate_otp_code(),
                expires_at=timezone.now() + timedelta(minutes=settings.XSTORE_OTP_TTL_MINUTES),
                verified=False,
            )
    except DatabaseError as exc:
        logger.exception("Failed to store admin OTP for %s", requested_email)
        raise OTPStorageError("Failed to store OTP") from exc
    logger.info("Admin OTP issued for %s", requested_email)
    return otp


def send_admin_otp_email(otp):
    approver = settings.XSTORE_ADMIN_APPROVAL_EMAIL
    context = {
        'requested_email': otp.email,
        'otp_code': otp.otp_code,
        'requested_at': timezone.localtime(otp.created_at),
        'ttl_minutes': settings.XSTORE_OTP_TTL_MINUTES,
    }
    try:
        send_mail(
            subject='Admin Access Request - OTP Required',
            message=render_to_string('accounts/admin_otp_email.txt', context),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[approver],
            html_message=render_to_string('accounts/admin_otp_email.html', context),
        )
    except Exception as exc:
        logger.exception("Failed to email admin OTP for %s", otp.email)
        raise OTPDeliveryError('Failed to send OTP') from exc
    logger.info("Admin OTP for %s sent to approver %s", otp.email, approver)


def verify_admin_otp(email, otp_code):
    """Mark a matching live code as verified. Returns the row or None."""
    otp = AdminOTP.objects.live().filter(
        email__iexact=email,
        otp_code=otp_code,
        verified=False,
    ).first()
    if otp is None:
        logger.info("Invalid or expired admin OTP for %s", email)
        return None

    otp.verified = True
    otp.save(update_fields=['verified'])
    logger.info("Admin OTP verified for %s", email)
    return otp


def has_verified_otp(email):
    return AdminOTP.objects.live().filter(email__iexact=email, verified=True).exists()


def consume_verified_otp(email):
    """Delete a verified, unexpired code for ``email``; False if there is none."""
    otp = AdminOTP.objects.live().filter(email__iexact=email, verified=True).first()
    if otp is None:
        return False
    otp.delete()
    return True
