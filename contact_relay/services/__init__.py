"""
Services Module
===============
Business logic behind the route handlers.
"""

from contact_relay.services.email_service import EmailService

__all__ = [
    "EmailService",
]
