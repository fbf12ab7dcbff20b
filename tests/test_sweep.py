import asyncio
import os
from datetime import datetime, timedelta, timezone

from cliprate.extensions import rq
from cliprate.jobs.sweep import find_orphans, sweep_orphan_blobs

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_find_orphans_respects_grace_period(records, blobs):
    records.add("items", author_id=1, blob_path="1/kept.webm", created_at=NOW)
    blobs.blobs["1/kept.webm"] = (b"a", "audio/webm", NOW - timedelta(days=2))
    blobs.blobs["1/old.webm"] = (b"b", "audio/webm", NOW - timedelta(hours=2))
    blobs.blobs["1/fresh.webm"] = (b"c", "audio/webm", NOW - timedelta(minutes=5))

    assert asyncio.run(find_orphans(blobs, records, 3600, now=NOW)) == ["1/old.webm"]
    assert sorted(asyncio.run(find_orphans(blobs, records, 0, now=NOW))) == ["1/fresh.webm", "1/old.webm"]


def test_sweep_job_deletes_unreferenced_blobs(app):
    services = app.extensions["cliprate"]
    kept = {"author_id": 1, "blob_path": "1/kept.webm", "created_at": NOW}

    async def seed():
        await services.blobs.put("1/kept.webm", b"a", "audio/webm")
        await services.blobs.put("1/orphan.webm", b"b", "audio/webm")
        await services.records.insert("users", {"email": "a@x.io", "password_hash": "x", "name": "A"})
        await services.records.insert("items", kept)

    asyncio.run(seed())
    with app.app_context():
        deleted = sweep_orphan_blobs(grace_sec=0)
    assert deleted == ["1/orphan.webm"]
    root = app.config["LOCAL_STORAGE_DIR"]
    assert os.path.exists(os.path.join(root, "1", "kept.webm"))
    assert not os.path.exists(os.path.join(root, "1", "orphan.webm"))


def test_enqueue_runs_inline_without_queue(app, monkeypatch):
    monkeypatch.setattr(rq, "queue", None)
    with app.app_context():
        assert rq.enqueue(sweep_orphan_blobs, 0, job_timeout=600) == []
