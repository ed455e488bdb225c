import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional, Union

import redis
from redis.exceptions import LockError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from orderbot.config import settings
from orderbot.logging_config import get_logger
from orderbot.models import Customer, Lead
from orderbot.schemas.conversation import BrowsingContext, CollectingOrderContext, parse_context
from orderbot.services.state_machine import ConversationStage, coerce_stage, transition

logger = get_logger("conversation_service")

LOCK_KEY_PREFIX = "orderbot:customer-lock"

ConversationContextValue = Union[BrowsingContext, CollectingOrderContext]


class CustomerLockTimeout(Exception):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Timed out waiting for customer lock {key}")


class KeyedLock:
    """In-process lock per key; entries are dropped once nobody holds or waits on them."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, key: str, timeout: float) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1

        acquired = entry[0].acquire(timeout=timeout)
        try:
            if not acquired:
                raise CustomerLockTimeout(key)
            yield
        finally:
            if acquired:
                entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)


_local_locks = KeyedLock()
_lock_redis_client = None
_lock_redis_url = None


def _get_lock_redis(redis_url: str):
    global _lock_redis_client, _lock_redis_url
    if _lock_redis_client is None or _lock_redis_url != redis_url:
        _lock_redis_url = redis_url
        _lock_redis_client = redis.Redis.from_url(redis_url, socket_timeout=5, socket_connect_timeout=5)
    return _lock_redis_client


def customer_lock_key(owner_id: str, phone: str) -> str:
    return f"{LOCK_KEY_PREFIX}:{owner_id}:{phone}"


@contextmanager
def customer_lock(owner_id: str, phone: str, timeout: Optional[float] = None) -> Iterator[None]:
    """Serialize all conversation work for one (business, phone) pair.

    Uses a Redis lock when REDIS_URL is configured so several workers share
    it, otherwise a lock local to this process.
    """
    key = customer_lock_key(owner_id, phone)
    timeout = timeout if timeout is not None else settings.customer_lock_timeout_seconds

    if not settings.redis_url:
        with _local_locks.hold(key, timeout):
            yield
        return

    lock = _get_lock_redis(settings.redis_url).lock(key, timeout=timeout, blocking_timeout=timeout)
    if not lock.acquire():
        raise CustomerLockTimeout(key)
    try:
        yield
    finally:
        try:
            lock.release()
        except LockError:
            logger.warning("Customer lock expired before release", extra={"context": {"key": key}})


def get_or_create_customer(db: Session, owner_id: str, phone: str, now: Optional[datetime] = None) -> Customer:
    """Find the customer for (owner, phone) or create it together with a lead."""
    now = now or datetime.now(timezone.utc)
    customer = db.query(Customer).filter(Customer.owner_id == owner_id, Customer.phone == phone).first()
    if customer:
        return customer

    try:
        with db.begin_nested():
            customer = Customer(
                owner_id=owner_id,
                phone=phone,
                name=phone,
                status="active",
                conversation_state=ConversationStage.BROWSING.value,
                conversation_context=None,
                last_message_at=now,
                created_at=now,
            )
            db.add(customer)
            db.flush()
            db.add(
                Lead(
                    owner_id=owner_id,
                    customer_id=customer.id,
                    phone=phone,
                    name=phone,
                    source="whatsapp",
                    status="new",
                    created_at=now,
                )
            )
            db.flush()
    except IntegrityError:
        logger.info("Customer created concurrently", extra={"context": {"owner_id": owner_id, "phone": phone}})
        customer = db.query(Customer).filter(Customer.owner_id == owner_id, Customer.phone == phone).one()
        return customer

    logger.info("New customer and lead created", extra={"context": {"owner_id": owner_id, "phone": phone}})
    return customer


def lock_customer_row(db: Session, customer: Customer) -> Customer:
    """Re-read the customer under a row lock so stage reads see committed state."""
    return (
        db.query(Customer)
        .filter(Customer.id == customer.id)
        .with_for_update()
        .populate_existing()
        .one()
    )


def get_stage(customer: Customer) -> ConversationStage:
    return coerce_stage(customer.conversation_state)


def get_context(customer: Customer) -> ConversationContextValue:
    return parse_context(get_stage(customer).value, customer.conversation_context)


def touch_customer(db: Session, customer: Customer, now: Optional[datetime] = None) -> None:
    customer.last_message_at = now or datetime.now(timezone.utc)
    db.flush()


def set_stage(db: Session, customer: Customer, context: ConversationContextValue) -> None:
    """Move the customer to the stage named by ``context``. Browsing stores no context."""
    current = get_stage(customer)
    target = ConversationStage(context.stage)
    if current != target:
        transition(current, target)

    customer.conversation_state = target.value
    if isinstance(context, BrowsingContext):
        customer.conversation_context = None
    else:
        customer.conversation_context = context.model_dump(exclude={"stage"})
    db.flush()

    logger.info(
        f"Customer {customer.id} stage {current.value} -> {target.value}",
        extra={"context": {"owner_id": customer.owner_id, "phone": customer.phone}},
    )


def reset_to_browsing(db: Session, customer: Customer) -> None:
    set_stage(db, customer, BrowsingContext())
