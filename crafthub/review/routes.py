# crafthub/review/routes.py
from flask import request

from . import bp
from ..schemas import BulkStatsIn, ReviewIn
from ..services import review_service
from ..utils.api import ok, parse_body
from ..utils.decorators import current_user, login_required


@bp.post("")
@login_required
def submit_review():
    body = parse_body(ReviewIn)
    review = review_service.upsert_review(current_user(), body.template_id, body.rating, body.comment)
    return ok("review saved", {"review": review.as_api()})


@bp.get("/<template_id>")
def list_reviews(template_id: str):
    """
    Query params:
      - page   (default 1)
      - limit  (default 10, cap 100)
    """
    result = review_service.list_reviews(
        template_id,
        page=request.args.get("page", 1),
        page_size=request.args.get("limit", 10),
    )
    return ok("reviews", result)


@bp.get("/<template_id>/stats")
def review_stats(template_id: str):
    return ok("review stats", review_service.stats(template_id))


@bp.post("/bulk-stats")
def bulk_review_stats():
    body = parse_body(BulkStatsIn)
    return ok("review stats", {"stats": review_service.bulk_stats(body.template_ids)})


@bp.get("/<template_id>/mine")
@login_required
def my_review(template_id: str):
    review = review_service.get_my_review(current_user(), template_id)
    return ok("review", {"review": review.as_api() if review else None})


@bp.delete("/<template_id>")
@login_required
def delete_review(template_id: str):
    review_service.delete_review(current_user(), template_id)
    return ok("review deleted")
