from decimal import Decimal

import pytest

from affiliate_ledger.models import Order
from affiliate_ledger.services.errors import InvalidRequest
from affiliate_ledger.services.order_conversion import ConversionState
from affiliate_ledger.services.payment_recovery import PaymentRecoveryService
from tests.helpers.ledger_helpers import (
    create_test_affiliate,
    create_test_click,
    create_test_order,
    reload_affiliate,
    reload_click,
    reload_order,
)


def _event(payment_intent_id="pi_3Nabc", event_type="payment_intent.succeeded", **metadata):
    base = {"source": "b2c_shop", "customerEmail": "kund@example.com", "subtotal": "1000", "total": "1059"}
    base.update(metadata)
    return {
        "id": "evt_1",
        "type": event_type,
        "data": {"object": {"id": payment_intent_id, "amount": 105900, "metadata": base}},
    }


class TestPaymentRecovery:

    def test_creates_order_and_settles_commission(self, db):
        affiliate = create_test_affiliate(db)
        click = create_test_click(db, affiliate)

        outcome = PaymentRecoveryService.recover_order(
            db, _event(affiliateCode=affiliate.affiliate_code, affiliateClickId=click.id)
        )

        assert outcome["status"] == "created"
        order = db.query(Order).filter(Order.id == outcome["order_id"]).one()
        assert order.payment_intent_id == "pi_3Nabc"
        assert order.source == "b2c_webhook"
        assert order.customer_email == "kund@example.com"
        assert order.affiliate["code"] == affiliate.affiliate_code
        assert order.affiliate["clickId"] == click.id

        settlement = outcome["settlement"]
        assert settlement.state == ConversionState.DONE
        assert settlement.attribution_method == "server"
        assert settlement.commission_amount == Decimal("150.00")
        assert reload_click(db, click.id).converted is True

    def test_redelivery_reuses_order_and_does_not_double_credit(self, db):
        affiliate = create_test_affiliate(db)
        event = _event(affiliateCode=affiliate.affiliate_code)

        first = PaymentRecoveryService.recover_order(db, event)
        second = PaymentRecoveryService.recover_order(db, event)

        assert second["status"] == "existing"
        assert second["order_id"] == first["order_id"]
        assert second["settlement"].state == ConversionState.ALREADY_SETTLED
        assert db.query(Order).count() == 1
        stats = reload_affiliate(db, affiliate.id).stats
        assert stats.conversions == 1
        assert stats.total_earnings == Decimal("150.00")

    def test_existing_checkout_order_is_settled_not_duplicated(self, db):
        affiliate = create_test_affiliate(db)
        order = create_test_order(
            db, subtotal=Decimal("200"), affiliate_code=affiliate.affiliate_code, payment_intent_id="pi_checkout"
        )

        outcome = PaymentRecoveryService.recover_order(db, _event(payment_intent_id="pi_checkout"))

        assert outcome["status"] == "existing"
        assert outcome["order_id"] == order.id
        assert outcome["settlement"].commission_amount == Decimal("30.00")
        assert db.query(Order).count() == 1

    def test_non_finite_amount_does_not_strand_order(self, db):
        affiliate = create_test_affiliate(db)
        event = _event(affiliateCode=affiliate.affiliate_code, subtotal="Infinity", total="")

        outcome = PaymentRecoveryService.recover_order(db, event)

        assert outcome["status"] == "created"
        assert outcome["settlement"].success is True
        assert outcome["settlement"].commission_amount == Decimal("0")
        order = reload_order(db, outcome["order_id"])
        assert order.subtotal is None
        assert order.conversion_processed is True
        assert reload_affiliate(db, affiliate.id).stats.conversions == 0

        replay = PaymentRecoveryService.recover_order(db, event)
        assert replay["settlement"].state == ConversionState.ALREADY_SETTLED

    def test_non_finite_subtotal_falls_back_to_total(self, db):
        affiliate = create_test_affiliate(db)
        event = _event(affiliateCode=affiliate.affiliate_code, subtotal="NaN", total="200")

        outcome = PaymentRecoveryService.recover_order(db, event)

        assert outcome["settlement"].commission_amount == Decimal("30.00")

    def test_order_without_affiliate(self, db):
        outcome = PaymentRecoveryService.recover_order(db, _event())
        assert outcome["status"] == "created"
        assert outcome["settlement"].success is True
        assert outcome["settlement"].affiliate_id is None

    def test_non_shop_payment_skipped(self, db):
        outcome = PaymentRecoveryService.recover_order(db, _event(source="invoice"))
        assert outcome == {"status": "skipped", "reason": "not_b2c"}
        assert db.query(Order).count() == 0

    def test_other_event_types_skipped(self, db):
        outcome = PaymentRecoveryService.recover_order(db, _event(event_type="payment_intent.payment_failed"))
        assert outcome["status"] == "skipped"
        assert db.query(Order).count() == 0

    def test_missing_customer_email(self, db):
        with pytest.raises(InvalidRequest):
            PaymentRecoveryService.recover_order(db, _event(customerEmail=""))

    def test_missing_payment_intent_id(self, db):
        with pytest.raises(InvalidRequest):
            PaymentRecoveryService.recover_order(db, _event(payment_intent_id=None))
