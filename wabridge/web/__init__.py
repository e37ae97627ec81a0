# Presentation Layer
# ==================
# FastAPI gateway: request validation, dispatch to the messaging provider
# and the JSON error contract ({success, message, error}).
