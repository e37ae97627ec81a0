# WA Bridge - HTTP Gateway for WhatsApp Web Automation
# =====================================================
# A thin REST bridge in front of a Selenium-driven WhatsApp Web session:
#
# ARCHITECTURE LAYERS:
# - Presentation:   FastAPI gateway (request validation, JSON responses)
# - Domain:         Address normalization and request/status models
# - Infrastructure: External services (WhatsApp Web via Selenium, config)
#
# The gateway only talks to the MessagingProvider interface, so the browser
# automation can be swapped without touching the HTTP layer.

__version__ = "1.0.0"
