"""Clover POS sync API routes.

Provides endpoints for:
- WooCommerce order webhooks (sync on checkout)
- Manual re-sync of an order
- Order sync annotations and notes
- Clover OAuth authorization and callback
- Printer and connection diagnostics
- Sync log view and clear
"""

import json
import logging
from typing import Annotated, Any, Dict, Generator, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from clover_sync.core.config import settings
from clover_sync.core.exceptions import CloverSyncError, ConfigurationError, SchemaError, TransportError
from clover_sync.core.rate_limit import limiter
from clover_sync.core.security import RequireAdmin, verify_webhook_signature
from clover_sync.db.session import DbSession
from clover_sync.schemas.order import SourceOrder
from clover_sync.services.annotation_service import DatabaseAnnotationSink
from clover_sync.services.audit_log import AuditLog, clear_entries, recent_entries
from clover_sync.services.clover_client import CloverClient
from clover_sync.services.credential_service import (
    build_clover_client,
    build_sync_config,
    store_credential,
)
from clover_sync.services.order_sync_service import (
    SyncConfig,
    SyncFailure,
    SyncResult,
    sync_order,
    sync_order_once,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SIGNATURE_HEADER = "X-WC-Webhook-Signature"


# ---- Dependencies ----

def get_sync_config(db: DbSession) -> SyncConfig:
    return build_sync_config(settings, db)


SyncConfigDep = Annotated[SyncConfig, Depends(get_sync_config)]


def get_clover_client(config: SyncConfigDep, db: DbSession) -> Generator[CloverClient, None, None]:
    client = build_clover_client(settings, config, AuditLog(db, config.debug_mode))
    try:
        yield client
    finally:
        client.close()


CloverClientDep = Annotated[CloverClient, Depends(get_clover_client)]


# ---- Helpers ----

def _result_body(order_id: str, result: SyncResult) -> Dict[str, Any]:
    if isinstance(result, SyncFailure):
        return {
            "success": False,
            "order_id": order_id,
            "reason": result.reason,
            "error_type": result.error_type,
            "state": result.state.value,
        }
    return {
        "success": True,
        "order_id": order_id,
        "clover_order_id": result.pos_order_id,
        "printed": result.printed,
        "print_error": result.print_error,
        "already_synced": result.already_synced,
    }


def _failure_status(result: SyncFailure) -> int:
    return {
        "configuration": 503,
        "validation": 422,
        "transport": 502,
        "schema": 502,
    }.get(result.error_type, 500)


def _http_error(e: CloverSyncError) -> HTTPException:
    if isinstance(e, ConfigurationError):
        return HTTPException(status_code=503, detail=str(e))
    if isinstance(e, (TransportError, SchemaError)):
        return HTTPException(status_code=502, detail=f"Clover error: {e}")
    return HTTPException(status_code=500, detail=str(e))


def _parse_order(payload: Any) -> SourceOrder:
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Order payload must be a JSON object")
    try:
        return SourceOrder.from_woocommerce(payload)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid WooCommerce order: {e}")


# ---- Routes ----

@router.get("/")
def clover_overview(config: SyncConfigDep):
    """Clover integration status."""
    return {
        "provider": "clover",
        "configured": config.is_configured,
        "missing_credentials": config.missing_credentials(),
        "environment": settings.clover_environment,
        "auto_print": config.auto_print,
        "endpoints": [
            "POST /clover/webhooks/orders - WooCommerce order webhook",
            "POST /clover/orders/sync - Re-sync an order",
            "GET /clover/orders/{id} - Sync annotations and notes",
            "GET /clover/oauth/authorize - OAuth authorization URL",
            "GET /clover/oauth/callback - OAuth callback",
            "GET /clover/printers - List printers",
            "GET /clover/connection - Test connection",
            "GET /clover/logs - Sync log",
            "DELETE /clover/logs - Clear sync log",
        ],
    }


# ---- Orders ----

@router.post("/webhooks/orders")
@limiter.limit(settings.webhook_rate_limit)
async def woocommerce_order_webhook(
    request: Request,
    db: DbSession,
    config: SyncConfigDep,
    client: CloverClientDep,
):
    """Sync a newly placed WooCommerce order to Clover.

    Sync failures are reported in the body with a 200 so WooCommerce does
    not disable the webhook; they are also recorded as order notes.
    """
    body = await request.body()
    if not verify_webhook_signature(body, request.headers.get(SIGNATURE_HEADER), settings.woocommerce_webhook_secret):
        logger.warning("Rejected WooCommerce webhook with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        payload = json.loads(body)
    except ValueError:
        # WooCommerce pings a new webhook with a form-encoded webhook_id
        if body.startswith(b"webhook_id="):
            return {"success": True, "ping": True}
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    order = _parse_order(payload)
    result = await run_in_threadpool(
        sync_order_once,
        order,
        config,
        client,
        DatabaseAnnotationSink(db),
        AuditLog(db, config.debug_mode),
    )
    return _result_body(order.id, result)


@router.post("/orders/sync")
def resync_order(
    payload: Dict[str, Any],
    db: DbSession,
    config: SyncConfigDep,
    client: CloverClientDep,
    _admin: RequireAdmin,
    force: bool = Query(False, description="Sync even if the order already has a Clover id"),
):
    """Sync a WooCommerce order document on demand."""
    order = _parse_order(payload)
    sync = sync_order if force else sync_order_once
    result = sync(order, config, client, DatabaseAnnotationSink(db), AuditLog(db, config.debug_mode))

    if isinstance(result, SyncFailure):
        raise HTTPException(status_code=_failure_status(result), detail=_result_body(order.id, result))
    return _result_body(order.id, result)


@router.get("/orders/{order_id}")
def get_order_sync_status(order_id: str, db: DbSession, _admin: RequireAdmin):
    """Annotations and notes recorded for an order."""
    sink = DatabaseAnnotationSink(db)
    return {
        "order_id": order_id,
        "annotations": sink.get_annotations(order_id),
        "notes": [
            {"note": note.note, "created_at": note.created_at.isoformat() if note.created_at else None}
            for note in sink.get_notes(order_id)
        ],
    }


# ---- OAuth ----

@router.get("/oauth/authorize")
def oauth_authorize(client: CloverClientDep, _admin: RequireAdmin, state: Optional[str] = None):
    """Clover OAuth authorization URL for the merchant to visit."""
    try:
        url = client.get_authorization_url(state=state)
    except ConfigurationError as e:
        raise _http_error(e)
    return {"authorization_url": url}


@router.get("/oauth/callback")
def oauth_callback(
    db: DbSession,
    config: SyncConfigDep,
    client: CloverClientDep,
    code: Optional[str] = None,
    merchant_id: Optional[str] = None,
):
    """Exchange the authorization code and store the resulting token."""
    audit_log = AuditLog(db, config.debug_mode)
    if not code:
        audit_log.error("OAuth callback missing code parameter")
        raise HTTPException(status_code=400, detail="Invalid OAuth callback: No authorization code received.")

    try:
        tokens = client.get_access_token(code, merchant_id=merchant_id)
    except CloverSyncError as e:
        audit_log.error(f"OAuth error: {e}")
        raise HTTPException(status_code=502, detail=f"Error during OAuth: {e}")

    store_credential(db, tokens)
    audit_log.info("OAuth successful. Access token and merchant ID saved.")
    return RedirectResponse(url=f"{settings.api_v1_prefix}/clover/?oauth=success", status_code=302)


# ---- Diagnostics ----

@router.get("/printers")
def list_printers(client: CloverClientDep, _admin: RequireAdmin):
    """Printers registered to the merchant."""
    try:
        return {"printers": client.get_printers()}
    except CloverSyncError as e:
        logger.error(f"Clover printer lookup failed: {e}")
        raise _http_error(e)


@router.get("/connection")
def check_connection(client: CloverClientDep, _admin: RequireAdmin):
    """Check the stored token against the merchant endpoint."""
    try:
        merchant = client.test_connection()
    except CloverSyncError as e:
        logger.error(f"Clover connection test failed: {e}")
        raise _http_error(e)
    return {"connected": True, "merchant_id": merchant.get("id"), "merchant_name": merchant.get("name")}


# ---- Logs ----

@router.get("/logs")
def list_logs(db: DbSession, _admin: RequireAdmin, limit: int = Query(50, ge=1, le=500)):
    """Most recent sync log entries, newest first."""
    return [
        {
            "id": entry.id,
            "level": entry.level,
            "message": entry.message,
            "order_id": entry.order_id,
            "created_at": entry.created_at.isoformat() if entry.created_at else None,
        }
        for entry in recent_entries(db, limit)
    ]


@router.delete("/logs")
def clear_logs(db: DbSession, _admin: RequireAdmin):
    """Delete all sync log entries."""
    return {"cleared": clear_entries(db)}
