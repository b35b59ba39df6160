# crafthub/services/review_service.py
import math
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ..errors import PurchaseRequiredError, ReviewNotFoundError, ValidationError
from ..extensions import db
from ..model import Purchase, Review, User
from ..utils.dates import utcnow

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT = 500
MAX_PAGE_SIZE = 100


def _round_average(total, count) -> float:
    if not count:
        return 0
    avg = Decimal(int(total)) / Decimal(int(count))
    return float(avg.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _check_input(rating, comment):
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"rating must be an integer between {MIN_RATING} and {MAX_RATING}")
    if len(comment or "") > MAX_COMMENT:
        raise ValidationError(f"comment must be at most {MAX_COMMENT} characters")


def _has_purchased(user_id: int, template_id: str) -> bool:
    return db.session.query(
        Purchase.query.filter_by(user_id=user_id, template_id=template_id).exists()
    ).scalar()


def _upsert_statement(values: dict):
    """INSERT .. ON CONFLICT DO UPDATE for dialects that support it, else None."""
    dialect = db.session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        return None
    stmt = insert(Review).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=[Review.template_id, Review.user_id],
        set_={
            "username": stmt.excluded.username,
            "rating": stmt.excluded.rating,
            "comment": stmt.excluded.comment,
            "updated_at": stmt.excluded.updated_at,
        },
    )


def _find(template_id: str, user_id: int) -> Review | None:
    return db.session.execute(
        select(Review)
        .filter_by(template_id=template_id, user_id=user_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def upsert_review(user: User, template_id: str, rating: int, comment: str = "") -> Review:
    _check_input(rating, comment)
    if not _has_purchased(user.id, template_id):
        raise PurchaseRequiredError("you must purchase this template to review it")

    now = utcnow()
    values = {
        "template_id": template_id,
        "user_id": user.id,
        "username": user.username,
        "rating": rating,
        "comment": comment or "",
        "created_at": now,
        "updated_at": now,
    }
    stmt = _upsert_statement(values)
    if stmt is not None:
        db.session.execute(stmt)
        db.session.commit()
        return _find(template_id, user.id)

    # generic dialects: the unique constraint decides who inserts first
    try:
        db.session.add(Review(**values))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        review = _find(template_id, user.id)
        if review is None:
            # the conflict was not on (template_id, user_id)
            raise
        review.username = user.username
        review.rating = rating
        review.comment = comment or ""
        review.updated_at = now
        db.session.commit()
    return _find(template_id, user.id)


def delete_review(user: User, template_id: str) -> None:
    review = _find(template_id, user.id)
    if not review:
        raise ReviewNotFoundError("review not found")
    db.session.delete(review)
    db.session.commit()


def get_my_review(user: User, template_id: str) -> Review | None:
    return _find(template_id, user.id)


def list_reviews(template_id: str, page=1, page_size=10) -> dict:
    page = max(_to_int(page, 1), 1)
    page_size = min(max(_to_int(page_size, 10), 1), MAX_PAGE_SIZE)

    q = Review.query.filter_by(template_id=template_id)
    total = q.count()
    rows = (
        q.order_by(Review.created_at.desc(), Review.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {
        "reviews": [r.as_api() for r in rows],
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": total,
            "total_pages": math.ceil(total / page_size),
        },
    }


def _to_int(v, default):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def stats(template_id: str) -> dict:
    distribution = {r: 0 for r in range(MIN_RATING, MAX_RATING + 1)}
    rows = (
        db.session.query(Review.rating, func.count(Review.id))
        .filter(Review.template_id == template_id)
        .group_by(Review.rating)
        .all()
    )
    total_reviews = 0
    rating_sum = 0
    for rating, count in rows:
        distribution[int(rating)] = int(count)
        total_reviews += int(count)
        rating_sum += int(rating) * int(count)

    return {
        "average_rating": _round_average(rating_sum, total_reviews),
        "total_reviews": total_reviews,
        "distribution": distribution,
    }


def bulk_stats(template_ids) -> dict:
    ids = list(dict.fromkeys(template_ids or []))
    if not ids:
        return {}
    rows = (
        db.session.query(Review.template_id, func.sum(Review.rating), func.count(Review.id))
        .filter(Review.template_id.in_(ids))
        .group_by(Review.template_id)
        .all()
    )
    return {
        template_id: {
            "average_rating": _round_average(rating_sum, count),
            "total_reviews": int(count),
        }
        for template_id, rating_sum, count in rows
    }
