from flask import jsonify, request
from flask_login import login_required
from . import bp
from ...extensions import core
from ...services.aggregate import latest_first, summarize
from ...services.identity import current_actor


def _coerce_score(val):
    # form posts send strings; anything else goes to the rating validation as-is
    if isinstance(val, str) and val.strip().isdigit():
        return int(val.strip())
    return val


@bp.get("/feed")
@login_required
async def feed():
    actor = current_actor()
    entries = await core.feed.load_all()
    grouped = await core.ratings.ratings_by_item()
    out = []
    for entry in entries:
        ratings = grouped.get(entry.id, [])
        mine = next((r for r in ratings if r.author_id == actor.id), None)
        row = entry.to_dict()
        row["is_mine"] = entry.author_id == actor.id
        row["ratings"] = summarize(ratings).to_dict()
        row["my_rating"] = mine.to_dict() if mine else None
        out.append(row)
    return jsonify(out)


@bp.get("/items/<int:item_id>/ratings")
@login_required
async def item_ratings(item_id):
    ratings = await core.ratings.ratings_for(item_id)
    return jsonify({
        "summary": summarize(ratings).to_dict(),
        "ratings": [r.to_dict() for r in latest_first(ratings)],
    })


@bp.put("/items/<int:item_id>/rating")
@login_required
async def rate_item(item_id):
    actor = current_actor()
    payload = request.get_json(silent=True) or request.form
    rating = await core.ratings.rate(
        actor.id, item_id, _coerce_score(payload.get("score")), payload.get("comment")
    )
    return jsonify(rating.to_dict())


@bp.delete("/items/<int:item_id>/rating")
@login_required
async def unrate_item(item_id):
    actor = current_actor()
    removed = await core.ratings.unrate(actor.id, item_id)
    return jsonify({"deleted": bool(removed)})
