"""
Provider callback endpoint.

Responses:
    400 - invalid JSON / missing ref_id (ledger untouched)
    401 - verification hook enabled and signature mismatch
    200 - applied, or ref_id unknown (acknowledged so the provider stops retrying)
    500 - ledger write failed (provider should retry)
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError

from vmtopup.api.deps import get_reconciler
from vmtopup.core.config import settings
from vmtopup.core.exceptions import CallbackRejected, HTTPErrors, MalformedCallback
from vmtopup.schemas.callback import CallbackAck
from vmtopup.services.webhook_reconciler import WebhookReconciler

router = APIRouter()


@router.post(settings.WEBHOOK_PATH, response_model=CallbackAck)
async def provider_callback(request: Request, reconciler: WebhookReconciler = Depends(get_reconciler)):
    body = await request.body()
    client_ip = request.client.host if request.client else ""

    try:
        outcome = await reconciler.handle(body, request.headers, client_ip)
    except CallbackRejected as e:
        raise HTTPErrors.unauthorized(str(e))
    except MalformedCallback as e:
        raise HTTPErrors.bad_request(str(e))
    except SQLAlchemyError as e:
        raise HTTPErrors.server_error(e)

    return CallbackAck(ok=True, detail=outcome)
