"""告警模块"""

from .base import BaseAlerter
from .dispatcher import AlertDispatcher, create_alerter
from .webhook_alerter import WebhookAlerter

__all__ = [
    'BaseAlerter',
    'AlertDispatcher',
    'WebhookAlerter',
    'create_alerter'
]
