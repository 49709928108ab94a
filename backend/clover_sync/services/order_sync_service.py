"""Order sync orchestration.

Pushes one WooCommerce order to Clover and optionally prints its bill:

    SourceOrder -> translate -> create_order -> annotate -> (print_bill)

Every attempt runs each step once, in order. Nothing is retried and no
dedup state is kept here: calling ``sync_order`` twice for the same order
creates two Clover orders. Callers that need at-most-once behaviour use
``sync_order_once``, which checks the ``_clover_order_id`` annotation first.
Two concurrent calls for the same order can still both pass that check.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from clover_sync.core.exceptions import (
    CloverSyncError,
    ConfigurationError,
    SchemaError,
    TransportError,
)
from clover_sync.schemas.order import SourceOrder
from clover_sync.services.annotation_service import AnnotationSink
from clover_sync.services.audit_log import AuditLog
from clover_sync.services.clover_client import PosClient
from clover_sync.services.order_translator import translate

CLOVER_ORDER_ID_KEY = "_clover_order_id"


class SyncState(str, Enum):
    NOT_CONFIGURED = "not_configured"
    TRANSLATING = "translating"
    CREATING = "creating"
    CREATED = "created"
    CREATE_FAILED = "create_failed"
    PRINTING = "printing"
    PRINT_FAILED = "print_failed"
    FAILED = "failed"
    DONE = "done"


@dataclass(frozen=True)
class SyncConfig:
    """Credentials and switches for one sync call."""
    client_id: str = ""
    client_secret: str = ""
    access_token: str = ""
    merchant_id: str = ""
    auto_print: bool = True
    debug_mode: bool = False
    round_currency: bool = False

    def missing_credentials(self) -> List[str]:
        return [
            name for name in ("client_id", "client_secret", "access_token", "merchant_id")
            if not getattr(self, name)
        ]

    @property
    def is_configured(self) -> bool:
        return not self.missing_credentials()


@dataclass(frozen=True)
class SyncSuccess:
    pos_order_id: str
    printed: Optional[bool] = None  # None when printing was not attempted
    print_error: Optional[str] = None
    already_synced: bool = False

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class SyncFailure:
    reason: str
    error_type: str = "error"
    state: SyncState = SyncState.FAILED
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return False


SyncResult = Union[SyncSuccess, SyncFailure]


def compose_order_note(order: SourceOrder) -> str:
    """Order-level note: shipping, payment and customer note, when present."""
    notes = []
    if order.shipping_method:
        notes.append(f"Shipping: {order.shipping_method}")
    if order.payment_method_title:
        notes.append(f"Payment: {order.payment_method_title}")
    if order.customer_note:
        notes.append(f"Customer note: {order.customer_note}")
    return " | ".join(notes)


def _error_type(exc: CloverSyncError) -> str:
    if isinstance(exc, ConfigurationError):
        return "configuration"
    if isinstance(exc, TransportError):
        return "transport"
    if isinstance(exc, SchemaError):
        return "schema"
    return "error"


def _fail(
    order: SourceOrder,
    reason: str,
    annotations: AnnotationSink,
    audit_log: AuditLog,
    *,
    error_type: str,
    state: SyncState,
    status_code: Optional[int] = None,
) -> SyncFailure:
    audit_log.error(f"Error processing order #{order.id}: {reason}", order_id=order.id)
    annotations.add_note(order.id, f"Error syncing to Clover POS: {reason}")
    return SyncFailure(reason=reason, error_type=error_type, state=state, status_code=status_code)


def print_order_bill(
    order: SourceOrder,
    pos_order_id: str,
    client: PosClient,
    annotations: AnnotationSink,
    audit_log: AuditLog,
) -> Optional[str]:
    """Print the bill. Returns the error message, or None when it printed.

    A failure here never touches the already created Clover order.
    """
    audit_log.debug(f"Order #{order.id}: {SyncState.PRINTING.value}", order_id=order.id)
    try:
        client.print_bill(pos_order_id)
    except CloverSyncError as e:
        audit_log.debug(f"Order #{order.id}: {SyncState.PRINT_FAILED.value}", order_id=order.id)
        audit_log.error(f"Error printing bill for order #{order.id}: {e}", order_id=order.id)
        annotations.add_note(order.id, f"Error printing bill from Clover POS: {e}")
        return str(e)

    annotations.add_note(order.id, "Bill printed successfully from Clover POS.")
    audit_log.info(f"Bill printed successfully for order #{order.id}", order_id=order.id)
    return None


def sync_order(
    order: SourceOrder,
    config: SyncConfig,
    client: PosClient,
    annotations: AnnotationSink,
    audit_log: AuditLog,
) -> SyncResult:
    """Create the order in Clover and, if enabled, print its bill."""
    audit_log.info(f"Processing order #{order.id} for Clover sync", order_id=order.id)

    if not config.is_configured:
        err = ConfigurationError(config.missing_credentials())
        audit_log.error(str(err), order_id=order.id)
        annotations.add_note(order.id, f"Error syncing to Clover POS: {err}")
        return SyncFailure(
            reason="not configured",
            error_type="configuration",
            state=SyncState.NOT_CONFIGURED,
        )

    if not order.has_line_items:
        return _fail(
            order, "Order has no line items", annotations, audit_log,
            error_type="validation", state=SyncState.FAILED,
        )

    audit_log.debug(f"Order #{order.id}: {SyncState.TRANSLATING.value}", order_id=order.id)
    payload = translate(order, compose_order_note(order), round_currency=config.round_currency)

    audit_log.debug(f"Order #{order.id}: {SyncState.CREATING.value}", order_id=order.id)
    try:
        response = client.create_order(payload)
    except CloverSyncError as e:
        return _fail(
            order, str(e), annotations, audit_log,
            error_type=_error_type(e),
            state=SyncState.CREATE_FAILED,
            status_code=getattr(e, "status_code", None),
        )

    pos_order_id = response.get("id") if isinstance(response, dict) else None
    if not pos_order_id:
        return _fail(
            order, "Failed to create order in Clover", annotations, audit_log,
            error_type="schema", state=SyncState.CREATE_FAILED,
        )
    pos_order_id = str(pos_order_id)
    annotations.record_annotation(order.id, CLOVER_ORDER_ID_KEY, pos_order_id)
    annotations.add_note(
        order.id,
        f"Order successfully synced to Clover POS. Clover Order ID: {pos_order_id}",
    )
    audit_log.debug(f"Order #{order.id}: {SyncState.CREATED.value}", order_id=order.id)

    printed = None
    print_error = None
    if config.auto_print:
        print_error = print_order_bill(order, pos_order_id, client, annotations, audit_log)
        printed = print_error is None

    audit_log.info(
        f"Order #{order.id} successfully synced to Clover (ID: {pos_order_id})",
        order_id=order.id,
    )
    audit_log.debug(f"Order #{order.id}: {SyncState.DONE.value}", order_id=order.id)
    return SyncSuccess(pos_order_id=pos_order_id, printed=printed, print_error=print_error)


def sync_order_once(
    order: SourceOrder,
    config: SyncConfig,
    client: PosClient,
    annotations: AnnotationSink,
    audit_log: AuditLog,
) -> SyncResult:
    """Like ``sync_order`` but skips orders that already carry a Clover id."""
    existing = annotations.get_annotation(order.id, CLOVER_ORDER_ID_KEY)
    if existing:
        audit_log.info(
            f"Order #{order.id} already synced to Clover (ID: {existing}); skipping",
            order_id=order.id,
        )
        return SyncSuccess(pos_order_id=existing, already_synced=True)
    return sync_order(order, config, client, annotations, audit_log)
