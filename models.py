import datetime as dt
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class RecordKind(str, Enum):
    expense = "expense"
    income = "income"


MONEY = Numeric(12, 2, asdecimal=True)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    lastname: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)


class CategoryTypeMixin:
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_global: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE")
    )
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime)


class ExpenseType(Base, CategoryTypeMixin, TimestampMixin):
    __tablename__ = "expense_types"

    expenses: Mapped[list["Expense"]] = relationship("Expense", back_populates="type")


class IncomeType(Base, CategoryTypeMixin, TimestampMixin):
    __tablename__ = "income_types"

    incomes: Mapped[list["Income"]] = relationship("Income", back_populates="type")


class FinancialRecordMixin:
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    value: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    status: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    observation: Mapped[Optional[str]] = mapped_column(Text)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )


class Expense(Base, FinancialRecordMixin, TimestampMixin):
    __tablename__ = "expenses"

    type_id: Mapped[Optional[int]] = mapped_column(ForeignKey("expense_types.id"))
    type: Mapped[Optional["ExpenseType"]] = relationship(
        "ExpenseType", back_populates="expenses"
    )

    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "date"),
        Index("ix_expenses_user_type_date", "user_id", "type_id", "date"),
    )


class Income(Base, FinancialRecordMixin, TimestampMixin):
    __tablename__ = "incomes"

    type_id: Mapped[Optional[int]] = mapped_column(ForeignKey("income_types.id"))
    type: Mapped[Optional["IncomeType"]] = relationship(
        "IncomeType", back_populates="incomes"
    )

    __table_args__ = (
        Index("ix_incomes_user_date", "user_id", "date"),
        Index("ix_incomes_user_status_date", "user_id", "status", "date"),
    )


class SavingGoal(Base, TimestampMixin):
    __tablename__ = "saving_goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    value: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    status: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (Index("ix_saving_goals_user_date", "user_id", "date"),)


RECORD_MODELS = {RecordKind.expense: Expense, RecordKind.income: Income}
TYPE_MODELS = {RecordKind.expense: ExpenseType, RecordKind.income: IncomeType}
