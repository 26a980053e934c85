import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models import TYPE_MODELS, RecordKind

logger = logging.getLogger(__name__)

GLOBAL_TYPES: dict[RecordKind, list[str]] = {
    RecordKind.expense: [
        "Food",
        "Transport",
        "Housing",
        "Utilities",
        "Health",
        "Education",
        "Entertainment",
        "Clothing",
        "Other",
    ],
    RecordKind.income: [
        "Salary",
        "Freelance",
        "Investments",
        "Rentals",
        "Bonuses",
        "Gifts",
        "Other",
    ],
}


def seed_global_types(session: Session) -> dict[str, int]:
    """Insert the global category types for every kind that has none yet."""
    created: dict[str, int] = {}
    for kind, names in GLOBAL_TYPES.items():
        model = TYPE_MODELS[kind]
        existing = session.scalar(select(func.count()).select_from(model)) or 0
        if existing:
            logger.info(f"seed: kind={kind.value} skipped existing={existing}")
            created[kind.value] = 0
            continue
        session.add_all(model(name=name, is_global=True, user_id=None) for name in names)
        created[kind.value] = len(names)
        logger.info(f"seed: kind={kind.value} created={len(names)}")
    session.commit()
    return created


if __name__ == "__main__":
    from database import session_scope

    logging.basicConfig(level=logging.INFO)
    with session_scope() as session:
        seed_global_types(session)
