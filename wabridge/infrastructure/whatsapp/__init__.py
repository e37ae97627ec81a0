from .messaging_provider import AdapterError, MessagingProvider, SeleniumProvider
from .whatsapp_client import WhatsAppClient, WhatsAppClientError

__all__ = [
    "AdapterError",
    "MessagingProvider",
    "SeleniumProvider",
    "WhatsAppClient",
    "WhatsAppClientError",
]
