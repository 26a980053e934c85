from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, make_engine
from identity import issue_token
from main import app, get_db
from models import ExpenseType, IncomeType


@pytest.fixture()
def client():
    engine = make_engine("sqlite+pysqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    with TestingSession() as session:
        session.add_all(
            [
                ExpenseType(name="Food", is_global=True),
                ExpenseType(name="Housing", is_global=True),
                IncomeType(name="Salary", is_global=True),
            ]
        )
        session.commit()

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def signup(client: TestClient, email: str = "demo@example.com") -> tuple[int, dict]:
    resp = client.post(
        "/api/auth/signup",
        json={
            "email": email,
            "name": "Demo",
            "lastname": "User",
            "password": "Password123!",
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}


def post_record(client, headers, path, user_id, type_id, value, day, status=True):
    resp = client.post(
        path,
        headers=headers,
        json={
            "description": "entry",
            "value": value,
            "type_id": type_id,
            "status": status,
            "date": day,
            "user_id": user_id,
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_monthly_totals_and_balance(client: TestClient) -> None:
    user_id, headers = signup(client)
    types = client.get(f"/api/type/expense/{user_id}", headers=headers).json()
    food = next(t for t in types if t["name"] == "Food")
    salary = client.get(f"/api/income-type/{user_id}", headers=headers).json()[0]

    post_record(client, headers, "/api/incomes", user_id, salary["id"], "3000", "2023-07-01")
    post_record(
        client, headers, "/api/incomes", user_id, salary["id"], "250", "2023-07-15", False
    )
    post_record(client, headers, "/api/expenses", user_id, food["id"], "1500", "2023-07-05")

    income = client.get(f"/api/incomes/{user_id}/2023/7", headers=headers)
    assert income.status_code == 200
    assert Decimal(str(income.json()["total"])) == Decimal("3000")

    expense = client.get(f"/api/expenses/{user_id}/2023/7", headers=headers).json()
    assert Decimal(str(expense["total"])) == Decimal("1500")

    balance = client.get(f"/api/total/{user_id}/2023/7", headers=headers).json()
    assert Decimal(str(balance["total"])) == Decimal("1500")
    assert (balance["month"], balance["year"]) == (7, 2023)

    empty = client.get(f"/api/total/{user_id}/2023/8", headers=headers).json()
    assert Decimal(str(empty["total"])) == Decimal(0)


def test_category_report_shape(client: TestClient) -> None:
    user_id, headers = signup(client)
    types = client.get(f"/api/type/expense/{user_id}", headers=headers).json()
    by_name = {t["name"]: t for t in types}

    post_record(client, headers, "/api/expenses", user_id, by_name["Food"]["id"], "200", "2023-07-05")
    post_record(
        client, headers, "/api/expenses", user_id, by_name["Housing"]["id"], "150", "2023-07-06"
    )

    report = client.get(f"/api/expenses/report/{user_id}/2023/7", headers=headers)
    assert report.status_code == 200
    lines = report.json()
    assert [line["type"]["name"] for line in lines] == ["Food", "Housing"]
    assert [Decimal(str(line["total"])) for line in lines] == [
        Decimal("200"),
        Decimal("150"),
    ]


def test_invalid_period_is_client_error(client: TestClient) -> None:
    user_id, headers = signup(client)
    resp = client.get(f"/api/total/{user_id}/2023/13", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["status"] == 400

    resp = client.get(f"/api/total/{user_id}/2023/july", headers=headers)
    assert resp.status_code == 400


def test_requires_token_for_own_user(client: TestClient) -> None:
    user_id, headers = signup(client)
    other_id, _ = signup(client, email="other@example.com")

    assert client.get(f"/api/total/{user_id}/2023/7").status_code == 401
    assert (
        client.get(f"/api/total/{other_id}/2023/7", headers=headers).status_code == 403
    )
    bad = {"Authorization": "Bearer nonsense"}
    assert client.get(f"/api/total/{user_id}/2023/7", headers=bad).status_code == 401


def test_savings_goal_routes(client: TestClient) -> None:
    user_id, headers = signup(client)
    payload = {
        "value": "500",
        "percentage": "10",
        "status": False,
        "date": "2023-07-01",
        "user_id": user_id,
    }
    created = client.post("/api/goals", json=payload, headers=headers)
    assert created.status_code == 201
    goal_id = created.json()["id"]

    duplicate = client.post(
        "/api/goals", json={**payload, "date": "2023-07-20"}, headers=headers
    )
    assert duplicate.status_code == 409

    listed = client.get(f"/api/goals/{user_id}", headers=headers).json()
    assert [g["id"] for g in listed] == [goal_id]

    one = client.get(f"/api/goals/one/{goal_id}", headers=headers)
    assert one.status_code == 200

    progress = client.get(f"/api/goals/progress/{user_id}/2023/7", headers=headers)
    assert progress.status_code == 200
    assert progress.json()["goal"]["id"] == goal_id

    assert client.delete(f"/api/goals/{goal_id}", headers=headers).status_code == 200
    assert client.get(f"/api/goals/one/{goal_id}", headers=headers).status_code == 404


def test_login_route(client: TestClient) -> None:
    signup(client)
    ok = client.post(
        "/api/auth/login",
        json={"email": "demo@example.com", "password": "Password123!"},
    )
    assert ok.status_code == 200
    assert ok.json()["token"]

    wrong = client.post(
        "/api/auth/login", json={"email": "demo@example.com", "password": "nope"}
    )
    assert wrong.status_code == 401


def test_deleting_types_keeps_their_report_lines(client: TestClient) -> None:
    user_id, headers = signup(client)
    food = next(
        t
        for t in client.get(f"/api/type/expense/{user_id}", headers=headers).json()
        if t["name"] == "Food"
    )
    private = {}
    for name in ("Pets", "Fun"):
        resp = client.post(
            "/api/type/expense",
            json={"name": name, "user_id": user_id},
            headers=headers,
        )
        assert resp.status_code == 201
        private[name] = resp.json()["id"]

    post_record(client, headers, "/api/expenses", user_id, food["id"], "200", "2023-07-02")
    post_record(client, headers, "/api/expenses", user_id, private["Pets"], "150", "2023-07-03")
    post_record(client, headers, "/api/expenses", user_id, private["Fun"], "70", "2023-07-04")

    for type_id in private.values():
        resp = client.delete(f"/api/type/expense/{type_id}", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == {"deleted": type_id}
    assert client.delete(
        f"/api/type/expense/{food['id']}", headers=headers
    ).status_code == 403

    names = [
        t["name"]
        for t in client.get(f"/api/type/expense/{user_id}", headers=headers).json()
    ]
    assert "Pets" not in names and "Fun" not in names

    lines = client.get(f"/api/expenses/report/{user_id}/2023/7", headers=headers).json()
    assert [
        (line["type"]["name"] if line["type"] else None, Decimal(str(line["total"])))
        for line in lines
    ] == [("Food", Decimal("200")), (None, Decimal("150")), (None, Decimal("70"))]

    expenses = client.get(f"/api/expenses/{user_id}", headers=headers).json()
    assert sorted(e["type_id"] for e in expenses) == sorted(
        [food["id"], *private.values()]
    )


def test_blank_type_name_is_bad_request(client: TestClient) -> None:
    user_id, headers = signup(client)
    resp = client.post(
        "/api/income-type", json={"name": "   ", "user_id": user_id}, headers=headers
    )
    assert resp.status_code == 400
    assert resp.json() == {"status": 400, "message": "Type name cannot be empty"}


class UnavailableSession(Session):
    def scalars(self, *args, **kwargs):
        raise OperationalError("SELECT incomes", {}, Exception("database is locked"))

    def scalar(self, *args, **kwargs):
        raise OperationalError("SELECT incomes", {}, Exception("database is locked"))


def test_unavailable_store_is_service_unavailable(client: TestClient) -> None:
    def broken_db():
        db = UnavailableSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = broken_db
    headers = {"Authorization": f"Bearer {issue_token(1, 'x@example.com')}"}

    resp = client.get("/api/total/1/2023/7", headers=headers)
    assert resp.status_code == 503
    assert resp.json() == {"status": 503, "message": "Ledger store unavailable"}

    resp = client.get("/api/expenses/report/1/2023/7", headers=headers)
    assert resp.status_code == 503
