"""
End-to-end API flows through the Flask test client.
"""

import io
from datetime import date, timedelta

from gymdesk.models import Member, Supplement
from gymdesk.time_utils import today

from conftest import auth_headers, get_auth_token


def _create_member(client, headers, **fields):
    body = {"first_name": "Asha", "last_name": "Rao", "email": "asha@gym.test"}
    body.update(fields)
    resp = client.post("/api/members", json=body, headers=headers)
    assert resp.status_code == 201, resp.json
    return resp.json["member"]


class TestMembersApi:

    def test_crud(self, client, admin_headers):
        created = _create_member(client, admin_headers, end_date="2001-01-01", phone="9876543210")
        assert created["status"] == "Expired"
        assert created["dues_cents"] == 0

        resp = client.put(
            f"/api/members/{created['id']}",
            json={"end_date": (today() + timedelta(days=30)).isoformat()},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["member"]["status"] == "Active"
        assert resp.json["member"]["phone"] == "9876543210"

        listing = client.get("/api/members?status=Active", headers=admin_headers).json
        assert [m["id"] for m in listing["items"]] == [created["id"]]

        assert client.delete(f"/api/members/{created['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/members/{created['id']}", headers=admin_headers).status_code == 404

    def test_validation(self, client, admin_headers):
        assert client.post("/api/members", json={"first_name": "Solo"}, headers=admin_headers).status_code == 400
        bad_field = client.post("/api/members", json={
            "first_name": "A", "last_name": "B", "dues_cents": 500,
        }, headers=admin_headers)
        assert bad_field.status_code == 400
        assert "dues_cents" in bad_field.json["error"]
        bad_date = client.post("/api/members", json={
            "first_name": "A", "last_name": "B", "start_date": "2026-13-01",
        }, headers=admin_headers)
        assert bad_date.status_code == 400

    def test_update_missing_member(self, client, admin_headers):
        assert client.put("/api/members/9999", json={"phone": "1"}, headers=admin_headers).status_code == 404

    def test_photo_upload_and_serve(self, client, admin_headers):
        created = _create_member(client, admin_headers)
        resp = client.post(
            f"/api/members/{created['id']}/photo",
            data={"photo": (io.BytesIO(b"\x89PNG\r\n\x1a\nfake"), "avatar.png")},
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        photo_url = resp.json["photo_url"]
        assert photo_url == f"/api/members/photos/{created['id']}/avatar.png"

        served = client.get(photo_url)
        assert served.status_code == 200
        assert served.data.startswith(b"\x89PNG")
        assert client.get(f"/api/members/photos/{created['id']}/missing.png").status_code == 404

    def test_member_sees_own_profile(self, client, member_headers, member):
        resp = client.get("/api/members/me", headers=member_headers)
        assert resp.status_code == 200
        assert resp.json["member"]["id"] == member.id


class TestBillsApi:

    def test_overdue_bill_then_payment(self, client, admin_headers, db_session, member):
        yesterday = (today() - timedelta(days=1)).isoformat()
        resp = client.post("/api/bills", json={
            "member_id": member.id, "amount_cents": 50_000, "description": "Monthly fee", "due_date": yesterday,
        }, headers=admin_headers)
        assert resp.status_code == 201
        bill = resp.json["bill"]
        assert bill["status"] == "Overdue"

        db_session.expire_all()
        assert db_session.get(Member, member.id).dues_cents == 50_000

        paid = client.post(f"/api/bills/{bill['id']}/pay", json={"payment_method": "Cash"}, headers=admin_headers)
        assert paid.status_code == 200
        assert paid.json["bill"]["status"] == "Paid"
        assert paid.json["bill"]["payment_method"] == "Cash"

        again = client.post(f"/api/bills/{bill['id']}/pay", json={}, headers=admin_headers)
        assert again.status_code == 200

        db_session.expire_all()
        assert db_session.get(Member, member.id).dues_cents == 0

        listing = client.get(f"/api/bills?member_id={member.id}", headers=admin_headers).json
        assert listing["summary"]["paid_cents"] == 50_000
        assert listing["summary"]["outstanding_cents"] == 0

    def test_errors(self, client, admin_headers, member):
        missing = client.post("/api/bills", json={"member_id": member.id}, headers=admin_headers)
        assert missing.status_code == 400

        unknown_member = client.post("/api/bills", json={
            "member_id": 9999, "amount_cents": 100, "description": "Fee", "due_date": "2026-12-01",
        }, headers=admin_headers)
        assert unknown_member.status_code == 404

        float_amount = client.post("/api/bills", json={
            "member_id": member.id, "amount_cents": 10.5, "description": "Fee", "due_date": "2026-12-01",
        }, headers=admin_headers)
        assert float_amount.status_code == 400

        numeric_bill_number = client.post("/api/bills", json={
            "member_id": member.id, "amount_cents": 100, "description": "Fee", "due_date": "2026-12-01",
            "bill_number": 123,
        }, headers=admin_headers)
        assert numeric_bill_number.status_code == 400
        assert "bill_number" in numeric_bill_number.json["error"]

        assert client.post("/api/bills/9999/pay", json={}, headers=admin_headers).status_code == 404
        assert client.delete("/api/bills/9999", headers=admin_headers).status_code == 404

    def test_receipt_is_html(self, client, admin_headers, member):
        bill = client.post("/api/bills", json={
            "member_id": member.id, "amount_cents": 50_000, "description": "Fee", "due_date": "2026-12-01",
        }, headers=admin_headers).json["bill"]
        resp = client.get(f"/api/bills/{bill['id']}/receipt", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.mimetype == "text/html"
        assert b"\xe2\x82\xb9500.00" in resp.data


class TestPackagesApi:

    def test_assign_and_configs(self, client, admin_headers, db_session, member):
        configs = client.get("/api/packages/configs", headers=admin_headers).json["items"]
        assert [c["package_type"] for c in configs] == ["basic", "premium", "gold", "platinum"]

        resp = client.post("/api/packages", json={
            "member_id": member.id, "package_type": "premium", "start_date": "2026-01-31",
        }, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json["package"]["end_date"] == "2026-04-30"
        assert resp.json["package"]["amount_cents"] == 270_000

        db_session.expire_all()
        m = db_session.get(Member, member.id)
        assert m.membership_type == "premium"
        assert m.end_date == date(2026, 4, 30)

        bad = client.post("/api/packages", json={
            "member_id": member.id, "package_type": "diamond", "start_date": "2026-01-31",
        }, headers=admin_headers)
        assert bad.status_code == 400

    def test_update_rejects_unknown_fields(self, client, admin_headers, member):
        pkg = client.post("/api/packages", json={
            "member_id": member.id, "package_type": "basic", "start_date": today().isoformat(),
        }, headers=admin_headers).json["package"]
        resp = client.put(f"/api/packages/{pkg['id']}", json={"status": "Active"}, headers=admin_headers)
        assert resp.status_code == 400
        cancelled = client.post(f"/api/packages/{pkg['id']}/cancel", headers=admin_headers)
        assert cancelled.json["package"]["status"] == "Cancelled"


class TestSupplementsApi:

    def _supplement(self, client, headers, stock):
        resp = client.post("/api/supplements", json={
            "name": "Whey", "brand": "MuscleCo", "category": "Protein", "price_cents": 2_000, "stock": stock,
        }, headers=headers)
        assert resp.status_code == 201
        return resp.json["supplement"]

    def test_oversell_returns_conflict(self, client, admin_headers, db_session, member):
        s = self._supplement(client, admin_headers, stock=2)
        resp = client.post("/api/supplements/orders", json={
            "member_id": member.id, "items": [{"supplement_id": s["id"], "quantity": 3}],
        }, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json["available"] == 2
        assert resp.json["requested"] == 3

        db_session.expire_all()
        assert db_session.get(Supplement, s["id"]).stock == 2

    def test_order_and_member_visibility(self, client, admin_headers, member_headers, member, other_member):
        s = self._supplement(client, admin_headers, stock=10)
        mine = client.post("/api/supplements/orders", json={
            "member_id": member.id, "items": [{"supplement_id": s["id"], "quantity": 2}], "payment_method": "Card",
        }, headers=admin_headers)
        assert mine.status_code == 201
        assert mine.json["order"]["total_amount_cents"] == 4_000
        theirs = client.post("/api/supplements/orders", json={
            "member_id": other_member.id, "items": [{"supplement_id": s["id"], "quantity": 1}],
        }, headers=admin_headers).json["order"]

        own_list = client.get("/api/supplements/orders", headers=member_headers).json
        assert [o["id"] for o in own_list["items"]] == [mine.json["order"]["id"]]
        assert client.get(f"/api/supplements/orders/{theirs['id']}", headers=member_headers).status_code == 403

    def test_negative_stock_rejected(self, client, admin_headers):
        resp = client.post("/api/supplements", json={
            "name": "Whey", "brand": "MuscleCo", "category": "Protein", "price_cents": 2_000, "stock": -1,
        }, headers=admin_headers)
        assert resp.status_code == 400


class TestNotificationsApi:

    def test_lifecycle(self, client, admin_headers, member_headers, member):
        resp = client.post("/api/notifications", json={
            "title": "Renewal",
            "message": "Your plan ends soon",
            "type": "Membership Expiry",
            "target_type": "Specific Member",
            "member_id": member.id,
            "scheduled_date": "2026-10-25",
        }, headers=admin_headers)
        assert resp.status_code == 201
        n = resp.json["notification"]
        assert n["member_name"] == "Ravi Kumar"

        targets = client.get(f"/api/notifications/{n['id']}/targets", headers=admin_headers).json
        assert [m["id"] for m in targets["items"]] == [member.id]

        mine = client.get("/api/notifications/mine", headers=member_headers).json
        assert [x["id"] for x in mine["items"]] == [n["id"]]

        sent = client.post(f"/api/notifications/{n['id']}/send", headers=admin_headers)
        assert sent.json["notification"]["status"] == "Sent"
        assert client.post(f"/api/notifications/{n['id']}/cancel", headers=admin_headers).status_code == 400

    def test_specific_member_missing(self, client, admin_headers, db_session):
        resp = client.post("/api/notifications", json={
            "title": "Hi", "message": "Hello", "target_type": "Specific Member",
            "member_id": 9999, "scheduled_date": "2026-10-25",
        }, headers=admin_headers)
        assert resp.status_code == 404


class TestDietPlansApi:

    def test_create_with_nested_meals(self, client, admin_headers, member_headers, member, other_member):
        resp = client.post("/api/diet-plans", json={
            "member_id": member.id,
            "plan_name": "Lean cut",
            "goal": "Cutting",
            "daily_calories": 2200,
            "meals": {"breakfast": "Oats", "dinner": "Paneer salad"},
        }, headers=admin_headers)
        assert resp.status_code == 201
        plan = resp.json["diet_plan"]
        assert plan["status"] == "Active"
        assert plan["meals"]["breakfast"] == "Oats"

        active = client.get(f"/api/diet-plans/member/{member.id}/active", headers=member_headers)
        assert active.json["diet_plan"]["id"] == plan["id"]
        assert client.get(f"/api/diet-plans/member/{other_member.id}/active", headers=member_headers).status_code == 403

    def test_bad_goal(self, client, admin_headers, member):
        resp = client.post("/api/diet-plans", json={
            "member_id": member.id, "plan_name": "X", "goal": "Vibes",
        }, headers=admin_headers)
        assert resp.status_code == 400


class TestSignupApproval:

    def test_signup_approve_login(self, client, admin_headers):
        signup = client.post("/api/auth/signup", json={
            "first_name": "Neha", "last_name": "Joshi", "email": "neha@gym.test",
            "password": "signup1", "role": "member",
        })
        assert signup.status_code == 201
        request_id = signup.json["request"]["id"]

        # Not an account yet
        assert get_auth_token(client, "neha@gym.test", "signup1") is None
        dup = client.post("/api/auth/signup", json={
            "first_name": "Neha", "last_name": "Joshi", "email": "NEHA@gym.test", "password": "signup1",
        })
        assert dup.status_code == 409

        approved = client.post(f"/api/registrations/{request_id}/approve", headers=admin_headers)
        assert approved.status_code == 200
        assert approved.json["request"]["status"] == "Approved"
        assert client.post(f"/api/registrations/{request_id}/approve", headers=admin_headers).status_code == 400

        token = get_auth_token(client, "neha@gym.test", "signup1", role="member")
        me = client.get("/api/auth/me", headers=auth_headers(token)).json
        assert me["account"]["role"] == "member"
        assert me["account"]["account_id"].startswith("MEM-")


class TestReportsAndDashboards:

    def test_csv_download(self, client, admin_headers, member):
        resp = client.get("/api/reports/members?format=csv", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "attachment; filename=members_report_" in resp.headers["Content-Disposition"]
        assert resp.headers["Content-Disposition"].endswith(".csv")
        assert '"Ravi"' in resp.get_data(as_text=True)

    def test_json_download(self, client, admin_headers, member):
        resp = client.get("/api/reports/members?format=json&status=Active", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["reportType"] == "members"
        assert resp.json["filters"] == {"status": "Active"}

    def test_unknown_report(self, client, admin_headers):
        assert client.get("/api/reports/trainers", headers=admin_headers).status_code == 400
        assert client.get("/api/reports/members?format=pdf", headers=admin_headers).status_code == 400

    def test_admin_dashboard(self, client, admin_headers, member):
        client.post("/api/bills", json={
            "member_id": member.id, "amount_cents": 12_000, "description": "Fee", "due_date": "2026-12-01",
        }, headers=admin_headers)
        client.post("/api/auth/signup", json={
            "first_name": "P", "last_name": "Q", "email": "pq@gym.test", "password": "signup1",
        })
        body = client.get("/api/dashboard/admin", headers=admin_headers).json
        assert body["members"]["total"] == 1
        assert body["outstanding_dues_cents"] == 12_000
        assert body["pending_registrations"] == 1
        assert body["accounts"] == 2

    def test_member_dashboard(self, client, admin_headers, member_headers, member):
        client.post("/api/bills", json={
            "member_id": member.id, "amount_cents": 12_000, "description": "Fee", "due_date": "2026-12-01",
        }, headers=admin_headers)
        body = client.get("/api/dashboard/member", headers=member_headers).json
        assert body["member"]["id"] == member.id
        assert body["bill_summary"]["outstanding_cents"] == 12_000
        assert body["active_diet_plan"] is None
