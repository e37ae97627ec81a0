# Infrastructure Layer
# ====================
# Contains all external service integrations:
# - whatsapp/: Selenium-based WhatsApp Web automation and the provider adapter
# - config/: Environment and settings management
#
# This layer can be replaced entirely without affecting domain/web layers.
