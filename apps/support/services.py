# apps/support/services.py
import logging
from django.db import transaction
from django.utils import timezone

from .models import SupportTicket

logger = logging.getLogger(__name__)


def _notify_ticket_update(ticket, title, message):
    try:
        from apps.notifications.models import Notification
        Notification.create_notification(
            recipient=ticket.user,
            actor=ticket.responded_by,
            notification_type=Notification.TYPE_SYSTEM,
            category=Notification.CATEGORY_SYSTEM,
            title=title,
            message=message,
            booking=ticket.booking,
            metadata={'ticket_id': str(ticket.uuid_id), 'status': ticket.status},
        )
    except ImportError:
        pass
    except Exception as e:
        logger.error(f"Failed to notify ticket update {ticket.uuid_id}: {str(e)}")


class SupportService:
    """Service class for support tickets."""

    @staticmethod
    def create_ticket(user, subject, message, category='other', priority=SupportTicket.PRIORITY_MEDIUM,
                      booking=None):
        """
        Raises:
            PermissionError: If the booking doesn't involve the user
        """
        if booking is not None and not (booking.customer_id == user.id or booking.is_partner_party(user)):
            raise PermissionError("You can only reference your own bookings.")

        ticket = SupportTicket.objects.create(
            user=user,
            subject=subject,
            message=message,
            category=category,
            priority=priority,
            booking=booking,
        )

        logger.info(f"[TICKET_CREATED] ticket={ticket.uuid_id} user={user.email} category={category}")
        return ticket

    @staticmethod
    def respond(ticket, admin_user, response, new_status=None):
        """
        Record the admin response. An open ticket moves to in_progress
        unless another status is given.
        """
        with transaction.atomic():
            ticket = SupportTicket.objects.select_for_update().get(pk=ticket.pk)
            ticket.admin_response = response
            ticket.responded_by = admin_user
            ticket.responded_at = timezone.now()
            ticket.save(update_fields=['admin_response', 'responded_by', 'responded_at', 'updated_at'])

            if new_status is None and ticket.status == SupportTicket.STATUS_OPEN:
                new_status = SupportTicket.STATUS_IN_PROGRESS
            if new_status:
                ticket.transition_to(new_status)

        logger.info(f"[TICKET_RESPONDED] ticket={ticket.uuid_id} admin={admin_user.email} status={ticket.status}")

        _notify_ticket_update(
            ticket,
            "Support Ticket Updated",
            f"We replied to your ticket \"{ticket.subject}\".",
        )
        return ticket

    @staticmethod
    def update_status(ticket, user, new_status):
        """
        Admins may make any valid transition. Ticket owners may only close.

        Raises:
            PermissionError: If a non-admin tries anything but closing their own ticket
            ValidationError: If the transition is invalid
        """
        if not user.is_admin_user:
            if ticket.user_id != user.id or new_status != SupportTicket.STATUS_CLOSED:
                raise PermissionError("You can only close your own tickets.")
            if ticket.status == SupportTicket.STATUS_IN_PROGRESS:
                raise PermissionError("Tickets in progress are closed once resolved.")

        with transaction.atomic():
            ticket = SupportTicket.objects.select_for_update().get(pk=ticket.pk)
            old_status = ticket.status
            ticket.transition_to(new_status)

        logger.info(f"[TICKET_STATUS] ticket={ticket.uuid_id} {old_status} → {new_status} by={user.email}")

        if user.is_admin_user and ticket.user_id != user.id:
            _notify_ticket_update(
                ticket,
                "Support Ticket Updated",
                f"Your ticket \"{ticket.subject}\" is now {ticket.get_status_display().lower()}.",
            )
        return ticket
