"""Clover credentials: settings plus tokens stored by the OAuth callback."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from clover_sync.core.config import Settings
from clover_sync.models.clover import CloverCredential
from clover_sync.services.audit_log import AuditLog
from clover_sync.services.clover_client import CloverClient, OAuthTokens
from clover_sync.services.order_sync_service import SyncConfig

logger = logging.getLogger(__name__)


def get_stored_credential(db: Session) -> Optional[CloverCredential]:
    return db.query(CloverCredential).order_by(CloverCredential.id.desc()).first()


def store_credential(db: Session, tokens: OAuthTokens) -> CloverCredential:
    """Save the OAuth result, replacing any previous token."""
    credential = get_stored_credential(db)
    if credential is None:
        credential = CloverCredential(
            access_token=tokens.access_token,
            merchant_id=tokens.merchant_id,
        )
        db.add(credential)
    else:
        credential.access_token = tokens.access_token
        credential.merchant_id = tokens.merchant_id
    db.commit()
    db.refresh(credential)
    logger.info(f"Stored Clover credentials for merchant {tokens.merchant_id}")
    return credential


def build_sync_config(settings: Settings, db: Session) -> SyncConfig:
    """SyncConfig for one request. Stored OAuth tokens win over env values."""
    credential = get_stored_credential(db)
    access_token = settings.clover_access_token
    merchant_id = settings.clover_merchant_id
    if credential is not None:
        access_token = credential.access_token
        merchant_id = credential.merchant_id

    return SyncConfig(
        client_id=settings.clover_client_id,
        client_secret=settings.clover_client_secret,
        access_token=access_token,
        merchant_id=merchant_id,
        auto_print=settings.clover_auto_print,
        debug_mode=settings.clover_debug_mode,
        round_currency=settings.clover_round_currency,
    )


def build_clover_client(
    settings: Settings,
    config: SyncConfig,
    audit_log: Optional[AuditLog] = None,
) -> CloverClient:
    return CloverClient(
        client_id=config.client_id,
        client_secret=config.client_secret,
        access_token=config.access_token,
        merchant_id=config.merchant_id,
        environment=settings.clover_environment,
        redirect_uri=settings.clover_redirect_uri,
        timeout=settings.clover_http_timeout,
        audit_log=audit_log,
    )
