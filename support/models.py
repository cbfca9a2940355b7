from support.domain.models import SupportTicket

__all__ = ["SupportTicket"]
