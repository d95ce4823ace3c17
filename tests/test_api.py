import httpx
import pytest

from assetverse.core.payments import StripeCheckoutProvider, get_payment_provider
from tests.conftest import auth_headers

HR = "hr@acme.com"
EMPLOYEE = "jane@acme.com"
API = "/api/v1"


def _register(client, email, role="employee", company="Acme", **extra):
    body = {"email": email, "name": email.split("@")[0].title(), "role": role, "company_name": company, **extra}
    response = client.post(f"{API}/users/", json=body, headers=auth_headers(email))
    assert response.status_code == 201, response.text
    return response.json()


def _create_asset(client, quantity=1, name="ThinkPad X1"):
    response = client.post(
        f"{API}/assets/",
        json={"product_name": name, "product_type": "Laptop", "quantity": quantity},
        headers=auth_headers(HR),
    )
    assert response.status_code == 201, response.text
    return response.json()


def _submit_request(client, asset, requester=EMPLOYEE):
    response = client.post(
        f"{API}/requests/",
        json={
            "asset_id": asset["id"],
            "hr_email": asset["hr_email"],
            "company_name": asset["company_name"],
        },
        headers=auth_headers(requester),
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def people(client):
    _register(client, HR, role="hr")
    _register(client, EMPLOYEE, date_of_birth="1990-05-17")
    return client


class TestPublicAndAuth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "X-Request-ID" in response.headers

    def test_packages_are_public(self, client):
        response = client.get(f"{API}/payments/packages")
        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["basic", "standard", "premium"]

    def test_missing_token(self, client):
        response = client.get(f"{API}/assets/")
        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized Access!"}

    def test_bad_token(self, client):
        response = client.get(f"{API}/assets/", headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == 401

    def test_valid_token_without_profile(self, client):
        response = client.get(f"{API}/assets/", headers=auth_headers("nobody@acme.com"))
        assert response.status_code == 401
        assert "Register first" in response.json()["detail"]


class TestUsers:
    def test_cannot_register_someone_else(self, client):
        response = client.post(
            f"{API}/users/",
            json={"email": "victim@acme.com", "name": "Victim"},
            headers=auth_headers("mallory@acme.com"),
        )
        assert response.status_code == 403

    def test_cannot_self_promote_to_admin(self, client):
        response = client.post(
            f"{API}/users/",
            json={"email": "mallory@acme.com", "name": "Mallory", "role": "admin"},
            headers=auth_headers("mallory@acme.com"),
        )
        assert response.status_code == 403

    def test_duplicate_registration(self, people):
        response = people.post(f"{API}/users/", json={"email": HR, "name": "Again"}, headers=auth_headers(HR))
        assert response.status_code == 409

    def test_role_lookup(self, people):
        response = people.get(f"{API}/users/role/{HR}", headers=auth_headers(EMPLOYEE))
        assert response.json() == {"role": "hr"}
        missing = people.get(f"{API}/users/role/ghost@acme.com", headers=auth_headers(EMPLOYEE))
        assert missing.status_code == 404
        assert missing.json() == {"detail": "User not found"}

    def test_user_listing_needs_hr(self, people):
        assert people.get(f"{API}/users/", headers=auth_headers(EMPLOYEE)).status_code == 403
        response = people.get(f"{API}/users/", params={"role": "employee"}, headers=auth_headers(HR))
        assert [u["email"] for u in response.json()] == [EMPLOYEE]


class TestWorkflow:
    def test_request_approve_assign(self, people):
        asset = _create_asset(people, quantity=1)
        catalogue = people.get(f"{API}/assets/", params={"available_only": True}, headers=auth_headers(EMPLOYEE))
        assert [a["id"] for a in catalogue.json()] == [asset["id"]]

        request = _submit_request(people, asset)
        assert request["status"] == "pending"
        inbox = people.get(f"{API}/requests/", params={"status": "pending"}, headers=auth_headers(HR)).json()
        assert [r["id"] for r in inbox] == [request["id"]]

        approved = people.patch(f"{API}/requests/{request['id']}/approve", headers=auth_headers(HR))
        assert approved.status_code == 200
        body = approved.json()
        assert body["message"] == "Request approved successfully"
        assert body["new_status"] == "approved"

        assignments = people.get(f"{API}/assignments/", headers=auth_headers(EMPLOYEE)).json()
        assert [a["id"] for a in assignments] == [body["assignment_id"]]
        assert people.get(f"{API}/assets/{asset['id']}", headers=auth_headers(HR)).json()["quantity"] == 0

        again = people.patch(f"{API}/requests/{request['id']}/approve", headers=auth_headers(HR))
        assert again.status_code == 409

        history = people.get(f"{API}/assignments/history", headers=auth_headers(EMPLOYEE)).json()
        assert [h["request_id"] for h in history] == [request["id"]]

        grouped = people.get(f"{API}/assignments/by-employee", headers=auth_headers(HR)).json()
        assert grouped[0]["employee_email"] == EMPLOYEE
        assert grouped[0]["active_assets"] == 1

        returned = people.post(f"{API}/assignments/{body['assignment_id']}/return", headers=auth_headers(EMPLOYEE))
        assert returned.status_code == 200
        assert returned.json()["status"] == "returned"
        assert people.get(f"{API}/assets/{asset['id']}", headers=auth_headers(HR)).json()["quantity"] == 1

    def test_out_of_stock(self, people):
        asset = _create_asset(people, quantity=0)
        request = _submit_request(people, asset)

        response = people.patch(f"{API}/requests/{request['id']}/approve", headers=auth_headers(HR))

        assert response.status_code == 409
        assert "out of stock" in response.json()["detail"]
        mine = people.get(f"{API}/requests/", headers=auth_headers(EMPLOYEE)).json()
        assert mine[0]["status"] == "pending"

    def test_reject(self, people):
        asset = _create_asset(people, quantity=2)
        request = _submit_request(people, asset)

        response = people.patch(f"{API}/requests/{request['id']}/reject", headers=auth_headers(HR))

        assert response.json() == {
            "message": "Request rejected successfully",
            "request_id": request["id"],
            "new_status": "rejected",
        }
        assert people.get(f"{API}/assets/{asset['id']}", headers=auth_headers(HR)).json()["quantity"] == 2

    def test_employee_cannot_approve(self, people):
        asset = _create_asset(people)
        request = _submit_request(people, asset)
        response = people.patch(f"{API}/requests/{request['id']}/approve", headers=auth_headers(EMPLOYEE))
        assert response.status_code == 403

    def test_hr_sees_only_their_part_of_employee_history(self, people):
        _register(people, "hr@globex.com", role="hr", company="Globex")
        asset = _create_asset(people, quantity=1)
        request = _submit_request(people, asset)
        people.patch(f"{API}/requests/{request['id']}/reject", headers=auth_headers(HR))

        own = people.get(f"{API}/assignments/history", params={"employee_email": EMPLOYEE}, headers=auth_headers(HR))
        foreign = people.get(
            f"{API}/assignments/history", params={"employee_email": EMPLOYEE}, headers=auth_headers("hr@globex.com")
        )

        assert [h["request_id"] for h in own.json()] == [request["id"]]
        assert foreign.status_code == 200
        assert foreign.json() == []

    def test_request_takes_asset_details_from_the_asset(self, people):
        asset = _create_asset(people, quantity=1)
        response = people.post(
            f"{API}/requests/",
            json={"asset_id": asset["id"], "hr_email": "hr@globex.com", "asset_name": "Pencil"},
            headers=auth_headers(EMPLOYEE),
        )

        assert response.status_code == 201
        assert response.json()["asset_name"] == "ThinkPad X1"
        assert response.json()["hr_email"] == HR

    def test_role_guards(self, people):
        response = people.post(
            f"{API}/assets/",
            json={"product_name": "Chair", "product_type": "Furniture", "quantity": 1},
            headers=auth_headers(EMPLOYEE),
        )
        assert response.status_code == 403

        asset = _create_asset(people)
        response = people.post(
            f"{API}/requests/",
            json={"asset_id": asset["id"], "hr_email": HR},
            headers=auth_headers(HR),
        )
        assert response.status_code == 403

        response = people.get(
            f"{API}/assignments/history", params={"employee_email": HR}, headers=auth_headers(EMPLOYEE)
        )
        assert response.status_code == 403

    def test_negative_quantity_is_invalid(self, people):
        response = people.post(
            f"{API}/assets/",
            json={"product_name": "Chair", "product_type": "Furniture", "quantity": -1},
            headers=auth_headers(HR),
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Validation Error"

    def test_update_and_delete(self, people):
        asset = _create_asset(people, quantity=3)
        request = _submit_request(people, asset)

        empty = people.put(f"{API}/assets/{asset['id']}", json={}, headers=auth_headers(HR))
        assert empty.status_code == 400

        renamed = people.put(f"{API}/assets/{asset['id']}", json={"product_name": "ThinkPad T14"}, headers=auth_headers(HR))
        assert renamed.json()["product_name"] == "ThinkPad T14"
        mine = people.get(f"{API}/requests/", headers=auth_headers(EMPLOYEE)).json()
        assert mine[0]["asset_name"] == "ThinkPad T14"

        deleted = people.delete(f"{API}/assets/{asset['id']}", headers=auth_headers(HR))
        assert deleted.status_code == 200
        assert deleted.json() == {
            "asset_id": asset["id"],
            "deleted_assets": 1,
            "deleted_requests": 1,
            "deleted_assignments": 0,
        }
        assert people.get(f"{API}/assets/{asset['id']}", headers=auth_headers(HR)).status_code == 404
        assert people.patch(f"{API}/requests/{request['id']}/approve", headers=auth_headers(HR)).status_code == 404


class TestCompanies:
    def test_companies_and_employees(self, people):
        assert people.get(f"{API}/companies/", headers=auth_headers(EMPLOYEE)).json() == ["Acme"]
        employees = people.get(f"{API}/companies/Acme/employees", headers=auth_headers(HR)).json()
        assert [e["email"] for e in employees] == [EMPLOYEE]
        assert employees[0]["date_of_birth"] == "1990-05-17"

    def test_birthdays_window(self, people):
        response = people.get(f"{API}/companies/Acme/birthdays", params={"days": 366}, headers=auth_headers(HR))
        assert [b["email"] for b in response.json()] == [EMPLOYEE]


class TestCheckout:
    def test_checkout_session(self, people):
        from assetverse.main import app

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "cs_test_9", "url": "https://checkout.stripe.com/c/cs_test_9"})

        app.dependency_overrides[get_payment_provider] = lambda: StripeCheckoutProvider(
            secret_key="sk_test_123",
            success_url="http://localhost:5173/payment-success",
            cancel_url="http://localhost:5173/upgrade-package",
            transport=httpx.MockTransport(handler),
        )
        response = people.post(
            f"{API}/payments/checkout-session", json={"package_name": "premium"}, headers=auth_headers(HR)
        )
        assert response.status_code == 200
        assert response.json() == {"session_id": "cs_test_9", "url": "https://checkout.stripe.com/c/cs_test_9"}

    def test_checkout_without_provider_key(self, people):
        response = people.post(
            f"{API}/payments/checkout-session", json={"package_name": "basic"}, headers=auth_headers(HR)
        )
        assert response.status_code == 500
        assert response.json() == {"detail": "Payment provider is unavailable."}

    def test_checkout_is_hr_only(self, people):
        response = people.post(
            f"{API}/payments/checkout-session", json={"package_name": "basic"}, headers=auth_headers(EMPLOYEE)
        )
        assert response.status_code == 403
