from .ticket_service import SupportTicketService

__all__ = ["SupportTicketService"]
