from flask import abort, jsonify, request, send_from_directory
from flask_login import login_required
from . import bp
from ...extensions import core
from ...services.aggregate import summarize
from ...services.identity import current_actor
from ...services.recording import Clip, DEFAULT_CONTENT_TYPE
from ...services.storage import LocalBlobStore
from ...services.types import utc_today


@bp.get("/quota")
@login_required
async def quota():
    actor = current_actor()
    remaining = await core.quota.remaining(actor.id, utc_today())
    return jsonify({"remaining": remaining, "limit": core.quota.daily_limit})


@bp.post("/submissions")
@login_required
async def submit_clip():
    actor = current_actor()
    upload = request.files.get("clip")
    if upload is None:
        return jsonify({"error": "missing_clip", "message": "Attach the recording as 'clip'"}), 400
    data = upload.read()
    if not data:
        return jsonify({"error": "empty_clip", "message": "The recording is empty"}), 400
    clip = Clip(data=data, content_type=upload.mimetype or DEFAULT_CONTENT_TYPE)

    result = await core.pipeline.submit(clip, actor.id)
    remaining = await core.quota.remaining(actor.id, utc_today())
    return jsonify({
        "item_id": result.item_id,
        "blob_path": result.blob_path,
        "audio_url": core.catalog.public_url(result.blob_path),
        "remaining": remaining,
    }), 201


@bp.get("/mine")
@login_required
async def my_items():
    actor = current_actor()
    items = await core.catalog.items_by(actor.id)
    grouped = await core.ratings.ratings_by_item([i.id for i in items])
    out = []
    for item in items:
        out.append({
            "id": item.id,
            "blob_path": item.blob_path,
            "created_at": item.created_at.isoformat() if item.created_at else None,
            "audio_url": core.catalog.public_url(item.blob_path),
            "ratings": summarize(grouped.get(item.id, [])).to_dict(),
        })
    return jsonify(out)


@bp.delete("/items/<int:item_id>")
@login_required
async def delete_item(item_id):
    actor = current_actor()
    item = await core.catalog.delete_item(actor.id, item_id)
    return jsonify({"deleted": item.id})


@bp.get("/media/<path:path>")
@login_required
def media(path):
    blobs = core.blobs
    if not isinstance(blobs, LocalBlobStore):
        abort(404)
    return send_from_directory(blobs.root, path)
