from .settings import ServerSettings, Settings, WhatsAppSettings, get_settings

__all__ = ["ServerSettings", "Settings", "WhatsAppSettings", "get_settings"]
