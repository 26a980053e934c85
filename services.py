from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from aggregation import (
    ZERO,
    assemble_report,
    compute_balance,
    group_sum_by_category,
    join_categories,
    sum_by_period,
)
from errors import Conflict, Forbidden, InvalidInput, NotFound, Unauthorized
from identity import hash_password, issue_token, verify_password
from models import (
    RECORD_MODELS,
    TYPE_MODELS,
    Expense,
    ExpenseType,
    Income,
    IncomeType,
    RecordKind,
    SavingGoal,
    User,
)
from periods import Period, period_for_date, resolve_period
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
from store import LedgerStore

logger = logging.getLogger(__name__)

# Incomes only count once received; expenses count as soon as recorded.
STATUS_FILTERS: dict[RecordKind, Optional[bool]] = {
    RecordKind.expense: None,
    RecordKind.income: True,
}


class TotalsService:
    """Monthly totals, net balance and per-category reports for one user."""

    def __init__(self, session: Session, store: Optional[LedgerStore] = None) -> None:
        self.session = session
        self.store = store or LedgerStore(session)

    def _total(self, kind: RecordKind, user_id: int, period: Period) -> Decimal:
        status = STATUS_FILTERS[kind]
        records = self.store.query_records(kind, user_id, period, status)
        return sum_by_period(records, user_id, period, status)

    def get_expense_total(self, user_id: int, year: int, month: int) -> dict:
        period = resolve_period(year, month)
        total = self._total(RecordKind.expense, user_id, period)
        logger.info(
            f"totals: op=expense_total user_id={user_id} year={year} month={month}"
        )
        return {"total": total}

    def get_income_total(self, user_id: int, year: int, month: int) -> dict:
        period = resolve_period(year, month)
        total = self._total(RecordKind.income, user_id, period)
        logger.info(
            f"totals: op=income_total user_id={user_id} year={year} month={month}"
        )
        return {"total": total}

    def get_net_balance(self, user_id: int, year: int, month: int) -> dict:
        period = resolve_period(year, month)
        income = self._total(RecordKind.income, user_id, period)
        expense = self._total(RecordKind.expense, user_id, period)
        total = compute_balance(income, expense)
        logger.info(
            f"totals: op=net_balance user_id={user_id} year={year} month={month} "
            f"total={total}"
        )
        return {"total": total, "month": month, "year": year}

    def get_category_report(
        self,
        user_id: int,
        year: int,
        month: int,
        kind: RecordKind = RecordKind.expense,
    ) -> list[dict]:
        period = resolve_period(year, month)
        status = STATUS_FILTERS[kind]
        records = self.store.query_records(kind, user_id, period, status)
        sums = group_sum_by_category(records, user_id, period, status)
        types = self.store.query_category_types(kind, [s.type_id for s in sums])
        lookup = {t.id: t for t in types}
        lines = join_categories(sums, lookup)
        missing = sum(1 for line in lines if line.category_type is None)
        logger.info(
            f"totals: op=category_report kind={kind.value} user_id={user_id} "
            f"year={year} month={month} groups={len(lines)} unresolved={missing}"
        )
        return assemble_report(lines)


class UserService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(User.id).where(func.lower(User.email) == email.lower())
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return self.session.scalar(stmt) is not None

    def create(self, data: UserIn) -> User:
        email = data.email.strip()
        if self._email_taken(email):
            raise Conflict("Email already exists")

        user = User(
            email=email,
            name=data.name.strip(),
            lastname=data.lastname.strip(),
            password_hash=hash_password(data.password),
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info(f"users: created user_id={user.id}")
        return user

    def get(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        return self.session.scalar(stmt)

    def update(self, user_id: int, data: UserUpdate) -> User:
        user = self.get(user_id)
        if data.email is not None:
            email = data.email.strip()
            if self._email_taken(email, exclude_id=user.id):
                raise Conflict("Email already exists")
            user.email = email
        if data.name is not None:
            user.name = data.name.strip()
        if data.lastname is not None:
            user.lastname = data.lastname.strip()
        if data.password is not None:
            user.password_hash = hash_password(data.password)
        self.session.commit()
        self.session.refresh(user)
        return user


class AuthService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.users = UserService(session)

    def login(self, data: LoginIn) -> dict[str, object]:
        user = self.users.get_by_email(data.email)
        if not user:
            raise NotFound("User not found")
        if not verify_password(data.password, user.password_hash):
            logger.warning(f"auth: rejected login user_id={user.id}")
            raise Unauthorized("Invalid password")
        return {"token": issue_token(user.id, user.email), "user": user}

    def signup(self, data: UserIn) -> dict[str, object]:
        user = self.users.create(data)
        return {"token": issue_token(user.id, user.email), "user": user}


class CategoryTypeService:
    def __init__(self, session: Session, kind: RecordKind) -> None:
        self.session = session
        self.kind = kind
        self.model = TYPE_MODELS[kind]

    def _visible_clause(self, user_id: int):
        model = self.model
        return model.archived_at.is_(None) & or_(
            model.is_global.is_(True),
            (model.is_global.is_(False)) & (model.user_id == user_id),
        )

    def list_all(self, user_id: int) -> list[ExpenseType | IncomeType]:
        stmt = (
            select(self.model)
            .where(self._visible_clause(user_id))
            .order_by(self.model.is_global.desc(), self.model.name, self.model.id)
        )
        return list(self.session.scalars(stmt).all())

    def get_visible(self, type_id: int, user_id: int) -> ExpenseType | IncomeType:
        stmt = select(self.model).where(
            self.model.id == type_id, self._visible_clause(user_id)
        )
        category_type = self.session.scalar(stmt)
        if not category_type:
            raise NotFound(f"{self.kind.value.capitalize()} type not found")
        return category_type

    def create(self, data: CategoryTypeIn) -> ExpenseType | IncomeType:
        name = data.name.strip()
        if not name:
            raise InvalidInput("Type name cannot be empty")
        category_type = self.model(
            name=name,
            is_global=data.is_global,
            user_id=None if data.is_global else data.user_id,
        )
        self.session.add(category_type)
        self.session.commit()
        self.session.refresh(category_type)
        return category_type

    def delete(self, type_id: int, user_id: int) -> None:
        """Archive a private type; its records keep pointing at it."""
        category_type = self.session.get(self.model, type_id)
        if not category_type or category_type.archived_at is not None:
            raise NotFound(f"{self.kind.value.capitalize()} type not found")
        if category_type.is_global or category_type.user_id != user_id:
            raise Forbidden("Only the owner can delete a private type")
        category_type.archived_at = datetime.utcnow()
        self.session.commit()
        logger.info(
            f"types: archived kind={self.kind.value} type_id={type_id} user_id={user_id}"
        )


class RecordService:
    """CRUD for one kind of financial record (expenses or incomes)."""

    def __init__(self, session: Session, kind: RecordKind) -> None:
        self.session = session
        self.kind = kind
        self.model = RECORD_MODELS[kind]
        self.types = CategoryTypeService(session, kind)

    @property
    def _label(self) -> str:
        return self.kind.value.capitalize()

    def create(self, data: RecordIn) -> Expense | Income:
        self.types.get_visible(data.type_id, data.user_id)
        record = self.model(
            description=data.description.strip(),
            value=data.value,
            type_id=data.type_id,
            status=data.status,
            date=data.date,
            observation=data.observation,
            user_id=data.user_id,
        )
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def list_for_user(self, user_id: int) -> list[Expense | Income]:
        stmt = (
            select(self.model)
            .options(joinedload(self.model.type))
            .where(self.model.user_id == user_id)
            .order_by(self.model.date.desc(), self.model.id.desc())
        )
        return list(self.session.scalars(stmt).all())

    def get(self, record_id: int) -> Expense | Income:
        record = self.session.get(self.model, record_id)
        if not record:
            raise NotFound(f"{self._label} not found")
        return record

    def update(self, record_id: int, data: RecordUpdate) -> Expense | Income:
        record = self.get(record_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("type_id") is not None:
            self.types.get_visible(changes["type_id"], record.user_id)
        if "description" in changes and changes["description"] is not None:
            changes["description"] = changes["description"].strip()
        for field, value in changes.items():
            if value is None and field != "observation":
                continue
            setattr(record, field, value)
        self.session.commit()
        self.session.refresh(record)
        return record

    def delete(self, record_id: int) -> None:
        record = self.get(record_id)
        self.session.delete(record)
        self.session.commit()


class SavingsGoalService:
    def __init__(self, session: Session, totals: Optional[TotalsService] = None) -> None:
        self.session = session
        self.totals = totals or TotalsService(session)

    def _goal_in_period(
        self, user_id: int, period: Period, exclude_id: Optional[int] = None
    ) -> Optional[SavingGoal]:
        stmt = select(SavingGoal).where(
            SavingGoal.user_id == user_id,
            SavingGoal.date >= period.start,
            SavingGoal.date < period.end,
        )
        if exclude_id is not None:
            stmt = stmt.where(SavingGoal.id != exclude_id)
        return self.session.scalar(stmt)

    def create(self, data: SavingGoalIn) -> SavingGoal:
        period = period_for_date(data.date)
        if self._goal_in_period(data.user_id, period):
            raise Conflict("A savings goal already exists for this month")

        goal = SavingGoal(
            value=data.value,
            percentage=data.percentage,
            status=data.status,
            date=data.date,
            user_id=data.user_id,
        )
        self.session.add(goal)
        self.session.commit()
        self.session.refresh(goal)
        logger.info(
            f"goals: created goal_id={goal.id} user_id={goal.user_id} "
            f"period={period.year}-{period.month:02d}"
        )
        return goal

    def list_for_user(self, user_id: int) -> list[SavingGoal]:
        stmt = (
            select(SavingGoal)
            .where(SavingGoal.user_id == user_id)
            .order_by(SavingGoal.date.desc(), SavingGoal.id.desc())
        )
        return list(self.session.scalars(stmt).all())

    def get(self, goal_id: int) -> SavingGoal:
        goal = self.session.get(SavingGoal, goal_id)
        if not goal:
            raise NotFound("Savings goal not found")
        return goal

    def update(self, goal_id: int, data: SavingGoalUpdate) -> SavingGoal:
        goal = self.get(goal_id)
        changes = {
            k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None
        }
        if "date" in changes:
            period = period_for_date(changes["date"])
            if self._goal_in_period(goal.user_id, period, exclude_id=goal.id):
                raise Conflict("A savings goal already exists for this month")
        for field, value in changes.items():
            setattr(goal, field, value)
        self.session.commit()
        self.session.refresh(goal)
        return goal

    def delete(self, goal_id: int) -> None:
        goal = self.get(goal_id)
        self.session.delete(goal)
        self.session.commit()

    def progress(self, user_id: int, year: int, month: int) -> dict[str, object]:
        """
        Compare the month's net balance against its savings goal.
        The target is the larger of the fixed value and the share of received
        income; ``achieved`` is computed, never written back.
        """
        period = resolve_period(year, month)
        goal = self._goal_in_period(user_id, period)
        income = self.totals.get_income_total(user_id, year, month)["total"]
        balance = self.totals.get_net_balance(user_id, year, month)["total"]
        if not goal:
            return {
                "goal": None,
                "income": income,
                "balance": balance,
                "target": ZERO,
                "achieved": False,
                "month": month,
                "year": year,
            }

        by_percentage = (income * Decimal(goal.percentage) / Decimal(100)).quantize(
            Decimal("0.01")
        )
        target = max(Decimal(goal.value), by_percentage)
        return {
            "goal": goal,
            "income": income,
            "balance": balance,
            "target": target,
            "achieved": balance >= target,
            "month": month,
            "year": year,
        }
