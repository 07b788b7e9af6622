from unittest.mock import patch

from affiliate_ledger.core.config import settings
from affiliate_ledger.models import AffiliateStatus
from tests.helpers.ledger_helpers import create_test_affiliate, reload_affiliate, reload_click


class TestClickEndpoint:

    def test_logs_click(self, client, db):
        affiliate = create_test_affiliate(db, code="ERIK-482")

        response = client.post(
            "/v1/affiliates/clicks",
            json={"affiliateCode": "ERIK-482", "landingPage": "/products/b8shield"},
            headers={"User-Agent": "Mozilla/5.0", "X-Forwarded-For": "198.51.100.4, 10.0.0.1"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Click logged for affiliate ERIK-482"

        click = reload_click(db, body["clickId"])
        assert click.ip_address == "198.51.100.4"
        assert click.user_agent == "Mozilla/5.0"
        assert click.landing_page == "/products/b8shield"
        assert reload_affiliate(db, affiliate.id).clicks == 1

    def test_referer_used_when_no_landing_page(self, client, db):
        create_test_affiliate(db, code="ERIK-482")
        response = client.post(
            "/v1/affiliates/clicks",
            json={"affiliate_code": "ERIK-482"},
            headers={"Referer": "https://shop.example.com/?ref=ERIK-482"},
        )
        assert response.status_code == 201
        assert reload_click(db, response.json()["clickId"]).landing_page == "https://shop.example.com/?ref=ERIK-482"

    def test_missing_code_is_400(self, client):
        response = client.post("/v1/affiliates/clicks", json={})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "The request must include an affiliateCode."}

    def test_unknown_code_is_404(self, client):
        response = client.post("/v1/affiliates/clicks", json={"affiliateCode": "XXXX-999"})
        assert response.status_code == 404
        assert "XXXX-999" in response.json()["error"]

    def test_suspended_code_is_404(self, client, db):
        create_test_affiliate(db, code="SUSP-100", status=AffiliateStatus.SUSPENDED)
        response = client.post("/v1/affiliates/clicks", json={"affiliateCode": "SUSP-100"})
        assert response.status_code == 404

    def test_rate_limited_per_ip(self, client, db):
        create_test_affiliate(db, code="ERIK-482")
        with patch.object(settings, "CLICK_RATE_LIMIT_MAX", 2):
            statuses = [
                client.post(
                    "/v1/affiliates/clicks",
                    json={"affiliateCode": "ERIK-482"},
                    headers={"X-Forwarded-For": "203.0.113.50"},
                ).status_code
                for _ in range(3)
            ]
            other_ip = client.post(
                "/v1/affiliates/clicks",
                json={"affiliateCode": "ERIK-482"},
                headers={"X-Forwarded-For": "203.0.113.51"},
            )

        assert statuses == [201, 201, 429]
        assert other_ip.status_code == 201

    def test_rate_limit_response_has_retry_after(self, client, db):
        create_test_affiliate(db, code="ERIK-482")
        with patch.object(settings, "CLICK_RATE_LIMIT_MAX", 0):
            response = client.post("/v1/affiliates/clicks", json={"affiliateCode": "ERIK-482"})
        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) >= 1

    def test_request_id_is_echoed(self, client, db):
        create_test_affiliate(db, code="ERIK-482")
        response = client.post(
            "/v1/affiliates/clicks",
            json={"affiliateCode": "ERIK-482"},
            headers={"X-Request-ID": "req-123"},
        )
        assert response.headers["X-Request-ID"] == "req-123"

    def test_long_forwarded_for_header_is_accepted(self, client, db):
        create_test_affiliate(db, code="ERIK-482")
        response = client.post(
            "/v1/affiliates/clicks",
            json={"affiliateCode": "ERIK-482"},
            headers={"X-Forwarded-For": "a" * 300},
        )
        assert response.status_code == 201
        assert reload_click(db, response.json()["clickId"]).ip_address == "a" * 64
