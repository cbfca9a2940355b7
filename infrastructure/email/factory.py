"""
Email Service Factory
======================

Selects the email backend from settings.INFRASTRUCTURE["EMAIL_BACKEND_TYPE"].
"""

import logging
from typing import Literal

from django.conf import settings

from .interface import EmailServiceInterface
from .mock_service import MockEmailService
from .smtp_service import SMTPEmailService

logger = logging.getLogger(__name__)

EmailBackend = Literal["smtp", "mock"]


class EmailFactory:
    """
    Factory for email service instances.

    Usage:
        email_service = EmailFactory.create()          # from settings
        email_service = EmailFactory.create("mock")    # explicit
    """

    @staticmethod
    def create(backend: EmailBackend | None = None) -> EmailServiceInterface:
        """
        Args:
            backend: 'smtp' or 'mock'; read from settings when None

        Raises:
            ValueError: If the backend type is unknown
        """
        default_backend = "mock" if getattr(settings, "TESTING", False) else "smtp"
        configured = getattr(settings, "INFRASTRUCTURE", {}).get("EMAIL_BACKEND_TYPE")
        backend_type = backend or configured or getattr(settings, "EMAIL_SERVICE_BACKEND", None) or default_backend

        logger.info(f"Creating email service backend: {backend_type}")

        if backend_type == "smtp":
            return SMTPEmailService()
        elif backend_type == "mock":
            return MockEmailService()
        else:
            raise ValueError(f"Invalid email backend: {backend_type}. Must be 'smtp' or 'mock'")
