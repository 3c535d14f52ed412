"""
Notification system for RappelConso recall alerts.

This module handles:
- Normalizing stored recipient configurations
- Routing items to recipients by distributeur filter and content mode
- Rendering alert email content (subject, text, HTML)
- Sending alert emails via Resend
"""

from .content_builder import build_email_content
from .email_sender import ResendTransport
from .recipient_config import normalize_recipient_configs
from .recipient_router import filter_items_by_distributeurs, route_recipients

__all__ = [
    'build_email_content',
    'filter_items_by_distributeurs',
    'normalize_recipient_configs',
    'route_recipients',
    'ResendTransport',
]
