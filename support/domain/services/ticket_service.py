"""
SupportTicketService - help desk tickets from users and anonymous visitors.

Tickets are opened by anyone, worked by admins and answered by both sides
through an append-only list of responses. Requesters are kept informed by
email; signed-in owners also get a SUPPORT_TICKET_UPDATED notification.
"""

import uuid
from typing import Dict, Optional

from django.conf import settings
from django.db.models import Case, Count, IntegerField, Q, Value, When
from django.template.loader import render_to_string
from django.utils import timezone

from infrastructure.email import EmailException, EmailMessage
from support.domain.models import SupportTicket
from utils.pagination import paginate
from utils.rbac import is_admin
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

STATES = [choice for choice, _ in SupportTicket.STATE_CHOICES]
PRIORITIES = [choice for choice, _ in SupportTicket.PRIORITY_CHOICES]

PRIORITY_RANK = Case(
    When(priority="urgent", then=Value(0)),
    When(priority="high", then=Value(1)),
    When(priority="medium", then=Value(2)),
    default=Value(3),
    output_field=IntegerField(),
)


class SupportTicketService(BaseService):
    def __init__(self, dispatcher=None, email_service=None):
        super().__init__()
        self._dispatcher = dispatcher
        self._email = email_service

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            from infrastructure.container import container

            self._dispatcher = container.notification_dispatcher()
        return self._dispatcher

    @property
    def email(self):
        if self._email is None:
            from infrastructure.container import container

            self._email = container.email()
        return self._email

    # ===== Helpers =====

    def _load(self, ticket_id) -> ServiceResult[SupportTicket]:
        try:
            ticket = SupportTicket.objects.select_related("user", "assigned_admin", "resolved_by").get(pk=ticket_id)
        except (SupportTicket.DoesNotExist, ValueError):
            return service_err(ErrorCodes.TICKET_NOT_FOUND, f"Support ticket {ticket_id} not found")
        return service_ok(ticket)

    def _send_email(self, template: str, to: str, subject: str, context: Dict):
        context = {
            **context,
            "frontend_url": settings.FRONTEND_URL,
            "support_email": getattr(settings, "SUPPORT_EMAIL", "support@busy2shop.com"),
        }
        message = EmailMessage(
            subject=f"{subject} - Busy2Shop Support",
            body=render_to_string(f"support/emails/{template}.txt", context),
            to=[to],
            tags=["support", template],
        )
        try:
            self.email.send(message)
        except EmailException as e:
            self.logger.error(f"Support email {template} to {to} failed: {e}")

    def _notify_owner(self, ticket: SupportTicket, message: str, actor=None):
        if ticket.user is None:
            return
        self.dispatcher.dispatch(
            user=ticket.user,
            actor=actor,
            title="SUPPORT_TICKET_UPDATED",
            heading=f"Ticket: {ticket.subject}",
            message=message,
            resource=str(ticket.id),
            skip_email=True,
        )

    # ===== Tickets =====

    @BaseService.log_performance
    def create_ticket(self, data: Dict, user=None, user_agent: str = "", ip_address=None) -> ServiceResult[SupportTicket]:
        if user is not None and getattr(user, "is_authenticated", False):
            data = {"name": user.full_name, "email": user.email, **{k: v for k, v in data.items() if v}}
        else:
            user = None

        missing = [field for field in ("name", "email", "subject", "message") if not data.get(field)]
        if missing:
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Missing required fields: {', '.join(missing)}")

        ticket = SupportTicket.objects.create(
            user=user,
            name=data["name"],
            email=data["email"],
            phone=data.get("phone", ""),
            subject=data["subject"],
            message=data["message"],
            type=data.get("type") or "inquiry",
            category=data.get("category") or "general",
            priority=data.get("priority") or "medium",
            user_agent=(user_agent or "")[:255],
            ip_address=ip_address,
        )
        self.logger.info(f"Support ticket {ticket.id} created by {'user ' + str(user.id) if user else 'guest'}")

        self._send_email("ticket_created", ticket.email, "We received your request", {"ticket": ticket})
        return service_ok(ticket)

    def list_tickets(self, admin, filters: Optional[Dict] = None, page: int = 1, size: int = 10) -> ServiceResult[Dict]:
        if not is_admin(admin):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Admin access required")
        filters = filters or {}

        queryset = SupportTicket.objects.select_related("user", "assigned_admin")
        for field in ("state", "priority", "category", "type"):
            if filters.get(field):
                queryset = queryset.filter(**{field: filters[field]})
        if filters.get("assigned_admin"):
            queryset = queryset.filter(assigned_admin_id=filters["assigned_admin"])
        if filters.get("user"):
            queryset = queryset.filter(user_id=filters["user"])
        if filters.get("search"):
            term = filters["search"]
            queryset = queryset.filter(Q(subject__icontains=term) | Q(email__icontains=term) | Q(name__icontains=term))

        queryset = queryset.annotate(priority_rank=PRIORITY_RANK).order_by("priority_rank", "-created_at")
        return service_ok(paginate(queryset, page, size))

    def list_my_tickets(self, user, page: int = 1, size: int = 10) -> ServiceResult[Dict]:
        queryset = SupportTicket.objects.filter(user=user).select_related("assigned_admin").order_by("-created_at")
        return service_ok(paginate(queryset, page, size))

    def get_ticket(self, ticket_id, user) -> ServiceResult[SupportTicket]:
        result = self._load(ticket_id)
        if not result.ok:
            return result
        ticket = result.value
        if not is_admin(user) and ticket.user_id != user.id:
            return service_err(ErrorCodes.PERMISSION_DENIED, "You can only view your own tickets")
        return service_ok(ticket)

    # ===== Admin workflow =====

    @BaseService.log_performance
    def assign_ticket(self, ticket_id, admin_id, assigned_by) -> ServiceResult[SupportTicket]:
        from authentication.models import CustomUser

        if not is_admin(assigned_by):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Admin access required")
        result = self._load(ticket_id)
        if not result.ok:
            return result
        ticket = result.value

        assignee = CustomUser.objects.filter(pk=admin_id).first()
        if assignee is None or not is_admin(assignee):
            return service_err(ErrorCodes.VALIDATION_ERROR, "Tickets can only be assigned to admins")

        ticket.assigned_admin = assignee
        if ticket.state == "pending":
            ticket.state = "in_progress"
        ticket.save(update_fields=["assigned_admin", "state", "updated_at"])
        self.logger.info(f"Ticket {ticket.id} assigned to admin {assignee.id} by {assigned_by.id}")

        self._send_email(
            "ticket_assigned",
            assignee.email,
            "A ticket was assigned to you",
            {"ticket": ticket, "admin": assignee},
        )
        self._notify_owner(ticket, "An agent from our support team is now handling your ticket.", actor=assigned_by)
        return service_ok(ticket)

    @BaseService.log_performance
    def update_status(self, ticket_id, state: str, admin) -> ServiceResult[SupportTicket]:
        if not is_admin(admin):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Admin access required")
        if state not in STATES:
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Invalid ticket state '{state}'")
        result = self._load(ticket_id)
        if not result.ok:
            return result
        ticket = result.value

        ticket.state = state
        if state in ("resolved", "closed"):
            ticket.resolved_at = timezone.now()
            ticket.resolved_by = admin
        ticket.save(update_fields=["state", "resolved_at", "resolved_by", "updated_at"])
        self.logger.info(f"Ticket {ticket.id} moved to {state} by admin {admin.id}")

        if state == "resolved":
            self._send_email(
                "ticket_resolved",
                ticket.email,
                "Your request has been resolved",
                {"ticket": ticket, "resolver_name": admin.full_name},
            )
        self._notify_owner(ticket, f"Your ticket is now {ticket.get_state_display().lower()}.", actor=admin)
        return service_ok(ticket)

    def update_priority(self, ticket_id, priority: str, admin) -> ServiceResult[SupportTicket]:
        if not is_admin(admin):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Admin access required")
        if priority not in PRIORITIES:
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Invalid ticket priority '{priority}'")
        result = self._load(ticket_id)
        if not result.ok:
            return result
        ticket = result.value
        ticket.priority = priority
        ticket.save(update_fields=["priority", "updated_at"])
        return service_ok(ticket)

    @BaseService.log_performance
    def add_response(self, ticket_id, user, message: str) -> ServiceResult[SupportTicket]:
        message = (message or "").strip()
        if not message:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Response message is required")
        result = self._load(ticket_id)
        if not result.ok:
            return result
        ticket = result.value

        responder_is_admin = is_admin(user)
        if not responder_is_admin:
            if ticket.user_id != user.id:
                return service_err(ErrorCodes.PERMISSION_DENIED, "You can only respond to your own tickets")
            if ticket.is_closed:
                return service_err(ErrorCodes.TICKET_CLOSED, "This ticket is closed")

        now = timezone.now()
        ticket.responses = list(ticket.responses or []) + [
            {
                "id": str(uuid.uuid4()),
                "message": message,
                "responder_id": str(user.id),
                "responder_name": user.full_name,
                "responder_type": "admin" if responder_is_admin else "user",
                "created_at": now.isoformat(),
            }
        ]
        ticket.last_response_at = now
        if responder_is_admin and ticket.state == "pending":
            ticket.state = "in_progress"
        ticket.save(update_fields=["responses", "last_response_at", "state", "updated_at"])

        if responder_is_admin:
            self._send_email(
                "ticket_response",
                ticket.email,
                "New reply on your request",
                {"ticket": ticket, "response": message, "responder_name": user.full_name},
            )
            self._notify_owner(ticket, "Support replied to your ticket.", actor=user)
        elif ticket.assigned_admin is not None:
            self._send_email(
                "ticket_response",
                ticket.assigned_admin.email,
                "Customer replied to a ticket",
                {"ticket": ticket, "response": message, "responder_name": ticket.name},
            )
        return service_ok(ticket)

    def stats(self, admin) -> ServiceResult[Dict]:
        if not is_admin(admin):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Admin access required")

        by_state = dict(SupportTicket.objects.values_list("state").annotate(n=Count("id")))
        by_priority = dict(SupportTicket.objects.values_list("priority").annotate(n=Count("id")))
        by_category = dict(SupportTicket.objects.values_list("category").annotate(n=Count("id")))
        return service_ok(
            {
                "total": sum(by_state.values()),
                "by_state": {state: by_state.get(state, 0) for state in STATES},
                "by_priority": {priority: by_priority.get(priority, 0) for priority in PRIORITIES},
                "by_category": by_category,
                "unassigned": SupportTicket.objects.filter(assigned_admin__isnull=True).count(),
            }
        )
