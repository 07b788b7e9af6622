from decimal import Decimal

from affiliate_ledger.models import AffiliateStatus, AttributionMethod
from affiliate_ledger.services.attribution import AttributionResolver
from affiliate_ledger.services.order_normalizer import CanonicalOrder
from tests.helpers.ledger_helpers import create_test_affiliate, create_test_click


def _order(**kwargs) -> CanonicalOrder:
    kwargs.setdefault("order_id", "o-1")
    kwargs.setdefault("amount", Decimal("1000"))
    return CanonicalOrder(**kwargs)


class TestAttributionPrecedence:

    def test_click_id_wins_over_code(self, db):
        clicked = create_test_affiliate(db, code="ERIK-482")
        other = create_test_affiliate(db, code="ANNA-101", name="Anna")
        click = create_test_click(db, clicked)

        attribution = AttributionResolver.resolve(db, _order(click_id=click.id, affiliate_code=other.affiliate_code))

        assert attribution.method == AttributionMethod.SERVER
        assert attribution.affiliate.id == clicked.id
        assert attribution.click_id == click.id

    def test_code_only_is_cookie(self, db):
        affiliate = create_test_affiliate(db, code="ERIK-482")
        attribution = AttributionResolver.resolve(db, _order(affiliate_code="ERIK-482"))
        assert attribution.method == AttributionMethod.COOKIE
        assert attribution.affiliate.id == affiliate.id
        assert attribution.click_id is None

    def test_unknown_click_falls_back_to_code(self, db):
        create_test_affiliate(db, code="ERIK-482")
        attribution = AttributionResolver.resolve(db, _order(click_id="missing-click", affiliate_code="ERIK-482"))
        assert attribution.method == AttributionMethod.COOKIE

    def test_discount_code(self, db):
        affiliate = create_test_affiliate(db, code="ANNA-101", discount_code="ANNA10")
        attribution = AttributionResolver.resolve(db, _order(discount_code="ANNA10"))
        assert attribution.method == AttributionMethod.DISCOUNT
        assert attribution.affiliate.id == affiliate.id

    def test_code_takes_precedence_over_discount(self, db):
        create_test_affiliate(db, code="ERIK-482")
        create_test_affiliate(db, code="ANNA-101", name="Anna", discount_code="ANNA10")
        attribution = AttributionResolver.resolve(db, _order(affiliate_code="ERIK-482", discount_code="ANNA10"))
        assert attribution.method == AttributionMethod.COOKIE
        assert attribution.affiliate_code == "ERIK-482"

    def test_plain_discount_code_is_no_attribution(self, db):
        assert AttributionResolver.resolve(db, _order(discount_code="SUMMER10")) is None

    def test_no_reference(self, db):
        assert AttributionResolver.resolve(db, _order()) is None


class TestInactiveAffiliates:

    def test_suspended_code_is_no_attribution(self, db):
        create_test_affiliate(db, code="SUSP-100", status=AffiliateStatus.SUSPENDED)
        assert AttributionResolver.resolve(db, _order(affiliate_code="SUSP-100")) is None

    def test_click_of_suspended_affiliate_is_no_attribution(self, db):
        affiliate = create_test_affiliate(db, code="SUSP-100")
        click = create_test_click(db, affiliate)
        affiliate.status = AffiliateStatus.SUSPENDED.value
        db.commit()

        assert AttributionResolver.resolve(db, _order(click_id=click.id, affiliate_code="SUSP-100")) is None

    def test_unknown_code_is_no_attribution(self, db):
        assert AttributionResolver.resolve(db, _order(affiliate_code="XXXX-999")) is None

    def test_resolution_is_repeatable(self, db):
        affiliate = create_test_affiliate(db, code="ERIK-482")
        click = create_test_click(db, affiliate)
        order = _order(click_id=click.id)
        first = AttributionResolver.resolve(db, order)
        second = AttributionResolver.resolve(db, order)
        assert (first.method, first.affiliate.id) == (second.method, second.affiliate.id)
