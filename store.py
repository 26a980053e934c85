from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from aggregation import FinancialRecord
from models import RECORD_MODELS, TYPE_MODELS, ExpenseType, IncomeType, RecordKind
from periods import Period


class LedgerStore:
    """Read side of the ledger, scoped to one session.

    Database errors propagate unchanged; callers decide how to surface them.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def query_records(
        self,
        kind: RecordKind,
        user_id: int,
        period: Period,
        status: Optional[bool] = None,
    ) -> list[FinancialRecord]:
        model = RECORD_MODELS[kind]
        stmt = (
            select(model)
            .where(
                model.user_id == user_id,
                model.date >= period.start,
                model.date < period.end,
            )
            .order_by(model.date.asc(), model.id.asc())
        )
        if status is not None:
            stmt = stmt.where(model.status.is_(status))
        rows = self.session.scalars(stmt).all()
        return [FinancialRecord.from_row(row) for row in rows]

    def query_category_types(
        self, kind: RecordKind, ids: Iterable[Optional[int]]
    ) -> list[ExpenseType | IncomeType]:
        wanted = {type_id for type_id in ids if type_id is not None}
        if not wanted:
            return []
        model = TYPE_MODELS[kind]
        # Archived types stay unresolved so their lines report no type.
        stmt = select(model).where(model.id.in_(wanted), model.archived_at.is_(None))
        return list(self.session.scalars(stmt).all())
