"""FastAPI dependencies. Components are built once in the app lifespan and kept on app.state."""
from fastapi import HTTPException, Request, status

from vmtopup.services.webhook_reconciler import WebhookReconciler


def get_reconciler(request: Request) -> WebhookReconciler:
    reconciler = getattr(request.app.state, "reconciler", None)
    if reconciler is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Not ready")
    return reconciler


def get_bot_application(request: Request):
    """Telegram Application, or 404 when the bot runs in polling mode / is disabled."""
    application = getattr(request.app.state, "bot_application", None)
    if application is None or not getattr(request.app.state, "bot_webhook_mode", False):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return application
