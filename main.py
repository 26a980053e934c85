import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from config import get_settings
from database import SessionLocal, engine, session_scope
from errors import AppError, ErrorKind, Forbidden, Unauthorized
from identity import resolve_token
from models import RecordKind, SavingGoal, User
from periods import parse_period
from schemas import (
    CategoryTypeIn,
    LoginIn,
    RecordIn,
    RecordUpdate,
    SavingGoalIn,
    SavingGoalUpdate,
    UserIn,
    UserUpdate,
)
from seed import seed_global_types
from services import (
    AuthService,
    CategoryTypeService,
    RecordService,
    SavingsGoalService,
    TotalsService,
    UserService,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Finance Flow API")

STATUS_BY_KIND = {
    ErrorKind.not_found: 404,
    ErrorKind.conflict: 409,
    ErrorKind.invalid_input: 400,
    ErrorKind.invalid_period: 400,
    ErrorKind.unauthorized: 401,
    ErrorKind.forbidden: 403,
}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.on_event("startup")
def startup_event():
    if not get_settings().seed_on_startup:
        return
    if not inspect(engine).has_table("expense_types"):
        logger.warning("startup: schema missing, run `alembic upgrade head`")
        return
    with session_scope() as session:
        seed_global_types(session)


def _error_response(request: Request, status: int, message: str) -> JSONResponse:
    logger.error(
        f"Application error ({request.method}) at {{{request.url.path}}} "
        f"error: {message}"
    )
    return JSONResponse(
        status_code=status, content={"status": status, "message": message}
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return _error_response(request, STATUS_BY_KIND[exc.kind], exc.message)


@app.exception_handler(OperationalError)
async def store_unavailable_handler(request: Request, exc: OperationalError):
    logger.error("Ledger store unavailable", exc_info=exc)
    return _error_response(request, 503, "Ledger store unavailable")


def current_user_id(authorization: Optional[str] = Header(default=None)) -> int:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthorized("Missing bearer token")
    return resolve_token(authorization[7:].strip())


def ensure_owner(owner_id: Optional[int], current: int) -> None:
    if owner_id != current:
        raise Forbidden("Access to another user's data is not allowed")


def user_out(user: User) -> dict[str, object]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "lastname": user.lastname,
    }


def type_out(category_type) -> Optional[dict[str, object]]:
    if category_type is None or category_type.archived_at is not None:
        return None
    return {
        "id": category_type.id,
        "name": category_type.name,
        "is_global": category_type.is_global,
        "user_id": category_type.user_id,
    }


def record_out(record, *, include_type: bool = False) -> dict[str, object]:
    data: dict[str, object] = {
        "id": record.id,
        "description": record.description,
        "value": record.value,
        "type_id": record.type_id,
        "status": record.status,
        "date": record.date.isoformat(),
        "observation": record.observation,
        "user_id": record.user_id,
    }
    if include_type:
        data["type"] = type_out(record.type)
    return data


def goal_out(goal: Optional[SavingGoal]) -> Optional[dict[str, object]]:
    if goal is None:
        return None
    return {
        "id": goal.id,
        "value": goal.value,
        "percentage": goal.percentage,
        "status": goal.status,
        "date": goal.date.isoformat(),
        "user_id": goal.user_id,
    }


def report_out(lines: list[dict]) -> list[dict[str, object]]:
    return [{"type": type_out(line["type"]), "total": line["total"]} for line in lines]


@app.get("/health")
def health():
    return {"status": "ok"}


# auth / users


@app.post("/api/auth/login")
def api_login(payload: LoginIn, db: Session = Depends(get_db)):
    result = AuthService(db).login(payload)
    return {"token": result["token"], "user": user_out(result["user"])}


@app.post("/api/auth/signup", status_code=201)
def api_signup(payload: UserIn, db: Session = Depends(get_db)):
    result = AuthService(db).signup(payload)
    return {"token": result["token"], "user": user_out(result["user"])}


@app.post("/api/users", status_code=201)
def api_create_user(payload: UserIn, db: Session = Depends(get_db)):
    return user_out(UserService(db).create(payload))


@app.get("/api/users/{user_id}")
def api_get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current: int = Depends(current_user_id),
):
    ensure_owner(user_id, current)
    return user_out(UserService(db).get(user_id))


@app.patch("/api/users/{user_id}")
def api_update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current: int = Depends(current_user_id),
):
    ensure_owner(user_id, current)
    return user_out(UserService(db).update(user_id, payload))


# category types


def _register_type_routes(prefix: str, kind: RecordKind) -> None:
    def create_type(
        payload: CategoryTypeIn,
        db: Session = Depends(get_db),
        current: int = Depends(current_user_id),
    ):
        ensure_owner(payload.user_id, current)
        return type_out(CategoryTypeService(db, kind).create(payload))

    def list_types(
        user_id: int,
        db: Session = Depends(get_db),
        current: int = Depends(current_user_id),
    ):
        ensure_owner(user_id, current)
        return [type_out(t) for t in CategoryTypeService(db, kind).list_all(user_id)]

    def delete_type(
        type_id: int,
        db: Session = Depends(get_db),
        current: int = Depends(current_user_id),
    ):
        CategoryTypeService(db, kind).delete(type_id, current)
        return {"deleted": type_id}

    app.add_api_route(prefix, create_type, methods=["POST"], status_code=201)
    app.add_api_route(f"{prefix}/{{user_id}}", list_types, methods=["GET"])
    app.add_api_route(f"{prefix}/{{type_id}}", delete_type, methods=["DELETE"])


_register_type_routes("/api/type/expense", RecordKind.expense)
_register_type_routes("/api/income-type", RecordKind.income)


# expenses / incomes


def _register_record_routes(prefix: str, kind: RecordKind) -> None:
    def create_record(
        payload: RecordIn,
        db: Session = Depends(get_db),
        current: int = Depends(current_user_id),
    ):
        ensure_owner(payload.user_id, current)
        return record_out(RecordService(db, kind).create(payload))

    def list_records(
        user_id: int,
        db: Session = Depends(get_db),
        current: int = Depends(current_user_id),
    ):
        ensure_owner(user_id, current)
        records = RecordService(db, kind).list_for_user(user_id)
        return [record_out(r, include_type=True) for r in records]

    def get_record(
        record_id: int,
        db: Session = Depends(get_db),
        current: int = Depends(current_user_id),
    ):
        record = RecordService(db, kind).get(record_id)
        ensure_owner(record.user_id, current)
        return record_out(record, include_type=True)

    def update_record(
        record_id: int,
        payload: RecordUpdate,
        db: Session = Depends(get_db),
        current: int = Depends(current_user_id),
    ):
        service = RecordService(db, kind)
        ensure_owner(service.get(record_id).user_id, current)
        return record_out(service.update(record_id, payload))

    def delete_record(
        record_id: int,
        db: Session = Depends(get_db),
        current: int = Depends(current_user_id),
    ):
        service = RecordService(db, kind)
        ensure_owner(service.get(record_id).user_id, current)
        service.delete(record_id)
        return {"deleted": record_id}

    def month_total(
        user_id: int,
        year: str,
        month: str,
        db: Session = Depends(get_db),
        current: int = Depends(current_user_id),
    ):
        ensure_owner(user_id, current)
        period = parse_period(year, month)
        totals = TotalsService(db)
        if kind == RecordKind.income:
            return totals.get_income_total(user_id, period.year, period.month)
        return totals.get_expense_total(user_id, period.year, period.month)

    def month_report(
        user_id: int,
        year: str,
        month: str,
        db: Session = Depends(get_db),
        current: int = Depends(current_user_id),
    ):
        ensure_owner(user_id, current)
        period = parse_period(year, month)
        lines = TotalsService(db).get_category_report(
            user_id, period.year, period.month, kind
        )
        return report_out(lines)

    app.add_api_route(prefix, create_record, methods=["POST"], status_code=201)
    app.add_api_route(
        f"{prefix}/report/{{user_id}}/{{year}}/{{month}}", month_report, methods=["GET"]
    )
    app.add_api_route(f"{prefix}/one/{{record_id}}", get_record, methods=["GET"])
    app.add_api_route(
        f"{prefix}/{{user_id}}/{{year}}/{{month}}", month_total, methods=["GET"]
    )
    app.add_api_route(f"{prefix}/{{user_id}}", list_records, methods=["GET"])
    app.add_api_route(f"{prefix}/{{record_id}}", update_record, methods=["PATCH"])
    app.add_api_route(f"{prefix}/{{record_id}}", delete_record, methods=["DELETE"])


_register_record_routes("/api/expenses", RecordKind.expense)
_register_record_routes("/api/incomes", RecordKind.income)


# savings goals


@app.post("/api/goals", status_code=201)
def api_create_goal(
    payload: SavingGoalIn,
    db: Session = Depends(get_db),
    current: int = Depends(current_user_id),
):
    ensure_owner(payload.user_id, current)
    return goal_out(SavingsGoalService(db).create(payload))


@app.get("/api/goals/progress/{user_id}/{year}/{month}")
def api_goal_progress(
    user_id: int,
    year: str,
    month: str,
    db: Session = Depends(get_db),
    current: int = Depends(current_user_id),
):
    ensure_owner(user_id, current)
    period = parse_period(year, month)
    progress = SavingsGoalService(db).progress(user_id, period.year, period.month)
    progress["goal"] = goal_out(progress["goal"])
    return progress


@app.get("/api/goals/one/{goal_id}")
def api_get_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    current: int = Depends(current_user_id),
):
    goal = SavingsGoalService(db).get(goal_id)
    ensure_owner(goal.user_id, current)
    return goal_out(goal)


@app.get("/api/goals/{user_id}")
def api_list_goals(
    user_id: int,
    db: Session = Depends(get_db),
    current: int = Depends(current_user_id),
):
    ensure_owner(user_id, current)
    return [goal_out(g) for g in SavingsGoalService(db).list_for_user(user_id)]


@app.patch("/api/goals/{goal_id}")
def api_update_goal(
    goal_id: int,
    payload: SavingGoalUpdate,
    db: Session = Depends(get_db),
    current: int = Depends(current_user_id),
):
    service = SavingsGoalService(db)
    ensure_owner(service.get(goal_id).user_id, current)
    return goal_out(service.update(goal_id, payload))


@app.delete("/api/goals/{goal_id}")
def api_delete_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    current: int = Depends(current_user_id),
):
    service = SavingsGoalService(db)
    ensure_owner(service.get(goal_id).user_id, current)
    service.delete(goal_id)
    return {"deleted": goal_id}


# totals


@app.get("/api/total/{user_id}/{year}/{month}")
def api_total(
    user_id: int,
    year: str,
    month: str,
    db: Session = Depends(get_db),
    current: int = Depends(current_user_id),
):
    ensure_owner(user_id, current)
    period = parse_period(year, month)
    return TotalsService(db).get_net_balance(user_id, period.year, period.month)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=3004)
