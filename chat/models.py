from chat.domain.models import ChatMessage

__all__ = ["ChatMessage"]
