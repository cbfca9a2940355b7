"""
Infrastructure Package
======================

Abstraction layers for external delivery channels.

Modules:
    - email: Email service abstraction (SMTP, mock)
    - push: Push notification abstraction (OneSignal, mock)
    - container: Service locator for infrastructure and domain services
"""
