"""Delete blobs that no item references (left by failed submissions).

Usage:
  python scripts/sweep_orphans.py            # enqueue on RQ (runs inline without redis)
  python scripts/sweep_orphans.py --now      # run in this process
  python scripts/sweep_orphans.py --grace 600
"""
import argparse
import os
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from cliprate import create_app
from cliprate.extensions import rq
from cliprate.jobs.sweep import sweep_orphan_blobs


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument('--now', action='store_true', help='run the sweep here instead of enqueueing it')
    parser.add_argument('--grace', type=int, default=None, help='minimum blob age in seconds (default: ORPHAN_GRACE_SEC)')
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        if args.now:
            deleted = sweep_orphan_blobs(args.grace)
            for path in deleted:
                print(path)
            print(f'{len(deleted)} orphaned blob(s) removed')
        else:
            job = rq.enqueue(sweep_orphan_blobs, args.grace, job_timeout=600)
            print('enqueued', getattr(job, 'id', job))


if __name__ == '__main__':
    main()
