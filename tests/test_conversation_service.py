import threading

import pytest

from helpers import CUSTOMER_PHONE, OWNER_ID, seed_customer
from orderbot.models import Customer, Lead
from orderbot.schemas.conversation import BrowsingContext, CollectingOrderContext
from orderbot.services.conversation_service import (
    CustomerLockTimeout,
    KeyedLock,
    customer_lock,
    customer_lock_key,
    get_context,
    get_or_create_customer,
    get_stage,
    reset_to_browsing,
    set_stage,
)
from orderbot.services.state_machine import ConversationStage


class TestKeyedLock:
    def test_entry_is_dropped_after_release(self):
        locks = KeyedLock()
        with locks.hold("a", timeout=1):
            assert "a" in locks._locks
        assert locks._locks == {}

    def test_second_holder_times_out(self):
        locks = KeyedLock()
        holding = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold("a", timeout=1):
                holding.set()
                release.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        holding.wait(2)
        try:
            with pytest.raises(CustomerLockTimeout):
                with locks.hold("a", timeout=0.05):
                    pass
        finally:
            release.set()
            thread.join()
        assert locks._locks == {}

    def test_different_keys_do_not_block(self):
        locks = KeyedLock()
        with locks.hold("a", timeout=1):
            with locks.hold("b", timeout=0.05):
                pass

    def test_customer_lock_uses_local_lock_without_redis(self, mock_env):
        with customer_lock(OWNER_ID, CUSTOMER_PHONE, timeout=1):
            pass

    def test_lock_key(self):
        assert customer_lock_key("o", "91") == "orderbot:customer-lock:o:91"


class TestGetOrCreateCustomer:
    def test_creates_customer_and_lead(self, db_session):
        customer = get_or_create_customer(db_session, OWNER_ID, CUSTOMER_PHONE)
        db_session.commit()

        assert customer.name == CUSTOMER_PHONE
        assert customer.conversation_state == "browsing"
        lead = db_session.query(Lead).one()
        assert (lead.customer_id, lead.source, lead.status) == (customer.id, "whatsapp", "new")

    def test_returns_existing_customer(self, db_session):
        existing = seed_customer(db_session)

        customer = get_or_create_customer(db_session, OWNER_ID, CUSTOMER_PHONE)

        assert customer.id == existing.id
        assert db_session.query(Customer).count() == 1
        assert db_session.query(Lead).count() == 0


class TestStages:
    def test_collecting_context_round_trips_through_storage(self, db_session):
        customer = seed_customer(db_session)

        set_stage(db_session, customer, CollectingOrderContext(partial_fields={"name": "Asha"}, attempts=2))
        db_session.commit()
        db_session.expire_all()

        stored = db_session.get(Customer, customer.id)
        assert get_stage(stored) == ConversationStage.COLLECTING_ORDER_DETAILS
        context = get_context(stored)
        assert context.attempts == 2
        assert context.partial_fields == {"name": "Asha"}

    def test_reset_clears_context(self, db_session):
        customer = seed_customer(db_session, state="collecting_order_details")

        reset_to_browsing(db_session, customer)

        assert customer.conversation_state == "browsing"
        assert customer.conversation_context is None
        assert isinstance(get_context(customer), BrowsingContext)

    def test_same_stage_keeps_browsing_without_context(self, db_session):
        customer = seed_customer(db_session)

        set_stage(db_session, customer, BrowsingContext())

        assert customer.conversation_state == "browsing"
        assert customer.conversation_context is None
