# app/x402/audit.py
"""
Audit logging for x402 payments and the orders they pay for.

Log format: JSON lines (one event per line)
Log location: Configured via AUDIT_LOG_PATH
Enabled by: AUDIT_LOG_ENABLED

Events logged:
- 402 returned (price, network, asset, resource)
- Payment verified / rejected (payer, reason)
- Payment settled (transaction hash, network)
- Payment failed (stage, reason)
- Order created (order id, total, status)
- Content unlocked (content id, transaction hash if known)
- Error (type, context)

A failure to write the audit log is logged and never breaks the request.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional
from enum import Enum

from app.core.config import settings

logger = logging.getLogger(__name__)


class AuditEventType(Enum):
    """Types of audit events that can be logged."""
    PAYMENT_REQUIRED_SENT = "payment_required_sent"
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_SETTLED = "payment_settled"
    PAYMENT_FAILED = "payment_failed"
    ORDER_CREATED = "order_created"
    CONTENT_UNLOCKED = "content_unlocked"
    ERROR = "error"


def generate_request_id() -> str:
    """Generate a unique request ID for tracking."""
    return str(uuid.uuid4())[:8]


def get_audit_log_path() -> Path:
    """Get the path to the audit log file."""
    return Path(settings.AUDIT_LOG_PATH)


def create_audit_event(
    event_type: AuditEventType,
    data: Dict[str, Any],
    client_ip: Optional[str] = None,
    wallet_address: Optional[str] = None,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """Create an audit event dictionary ready to be written as one JSON line."""
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type.value,
        "request_id": request_id or generate_request_id(),
        "client_ip": client_ip,
        "wallet_address": wallet_address,
        "data": data
    }


def log_audit_event(
    event_type: AuditEventType,
    data: Dict[str, Any],
    client_ip: Optional[str] = None,
    wallet_address: Optional[str] = None,
    request_id: Optional[str] = None
) -> Optional[str]:
    """
    Log an audit event to the audit log.

    Args:
        event_type: Type of event to log
        data: Event-specific data
        client_ip: Client IP address (if available)
        wallet_address: Payer wallet address (if available)
        request_id: Unique request identifier (if available)

    Returns:
        The request_id used for this event, or None when auditing is
        disabled or the write failed
    """
    if not settings.AUDIT_LOG_ENABLED:
        return None

    event = create_audit_event(
        event_type=event_type,
        data=data,
        client_ip=client_ip,
        wallet_address=wallet_address,
        request_id=request_id
    )

    try:
        log_path = get_audit_log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a") as f:
            f.write(json.dumps(event) + "\n")

        logger.debug(f"Audit event logged: {event_type.value} [{event['request_id']}]")
        return event["request_id"]

    except OSError as e:
        logger.error(f"Failed to write audit event: {e}")
        return None


# Convenience functions for specific event types

def log_payment_required_sent(
    client_ip: str,
    price: str,
    network: str,
    asset: str,
    resource: str,
    reason: str,
) -> Optional[str]:
    """Log a 402 Payment Required response event."""
    return log_audit_event(
        event_type=AuditEventType.PAYMENT_REQUIRED_SENT,
        data={
            "price": price,
            "network": network,
            "asset": asset,
            "resource": resource,
            "reason": reason,
        },
        client_ip=client_ip,
    )


def log_payment_verified(
    client_ip: str,
    payer: Optional[str],
    is_valid: bool,
    invalid_reason: Optional[str] = None,
) -> Optional[str]:
    """Log a payment verification event."""
    return log_audit_event(
        event_type=AuditEventType.PAYMENT_VERIFIED,
        data={
            "is_valid": is_valid,
            "invalid_reason": invalid_reason,
        },
        client_ip=client_ip,
        wallet_address=payer,
    )


def log_payment_settled(
    client_ip: str,
    payer: Optional[str],
    transaction_hash: Optional[str],
    network: str,
) -> Optional[str]:
    """Log a successful settlement event."""
    return log_audit_event(
        event_type=AuditEventType.PAYMENT_SETTLED,
        data={
            "transaction_hash": transaction_hash,
            "network": network,
        },
        client_ip=client_ip,
        wallet_address=payer,
    )


def log_payment_failed(
    client_ip: str,
    reason: str,
    stage: str,
    wallet_address: Optional[str] = None,
) -> Optional[str]:
    """Log a payment failure event (stage is "verify" or "settle")."""
    return log_audit_event(
        event_type=AuditEventType.PAYMENT_FAILED,
        data={
            "reason": reason,
            "stage": stage,
        },
        client_ip=client_ip,
        wallet_address=wallet_address,
    )


def log_order_created(
    client_ip: str,
    order_id: str,
    total_usd: float,
    status: str,
    network: str,
    transaction_hash: Optional[str] = None,
    wallet_address: Optional[str] = None,
) -> Optional[str]:
    """Log an order record being written."""
    return log_audit_event(
        event_type=AuditEventType.ORDER_CREATED,
        data={
            "order_id": order_id,
            "total_usd": total_usd,
            "status": status,
            "network": network,
            "transaction_hash": transaction_hash,
        },
        client_ip=client_ip,
        wallet_address=wallet_address,
    )


def log_content_unlocked(
    client_ip: str,
    content_id: str,
    transaction_hash: Optional[str] = None,
    wallet_address: Optional[str] = None,
) -> Optional[str]:
    """Log a pay-per-view unlock."""
    return log_audit_event(
        event_type=AuditEventType.CONTENT_UNLOCKED,
        data={
            "content_id": content_id,
            "transaction_hash": transaction_hash,
            "settlement_confirmed": transaction_hash is not None,
        },
        client_ip=client_ip,
        wallet_address=wallet_address,
    )


def log_error(
    client_ip: str,
    error_type: str,
    error_message: str,
    context: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """Log an error event."""
    return log_audit_event(
        event_type=AuditEventType.ERROR,
        data={
            "error_type": error_type,
            "error_message": error_message,
            "context": context or {},
        },
        client_ip=client_ip,
    )


def read_audit_log(
    max_entries: int = 100,
    event_type: Optional[AuditEventType] = None,
) -> list:
    """
    Read entries from the audit log.

    Args:
        max_entries: Maximum number of entries to return
        event_type: Filter by event type (optional)

    Returns:
        List of audit events (most recent first)
    """
    log_path = get_audit_log_path()
    if not log_path.exists():
        return []

    events = []
    try:
        with open(log_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    event = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if event_type and event.get("event_type") != event_type.value:
                    continue
                events.append(event)
    except OSError as e:
        logger.error(f"Failed to read audit log: {e}")
        return []

    # Return most recent first, limited to max_entries
    return list(reversed(events))[:max_entries]
