"""Run an RQ worker for cliprate jobs inside the Flask app context.

Usage:
  python scripts/run_rq_worker.py            # listen on the default queue
  python scripts/run_rq_worker.py --burst    # drain the queue and exit

Jobs such as the orphan blob sweep use `current_app` and the configured
blob/record stores, so the worker pushes an app context before working.
"""
import argparse
import os
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import redis
from rq import Queue, Worker

from cliprate import create_app


def main(argv=None):
    parser = argparse.ArgumentParser(description='cliprate RQ worker')
    parser.add_argument('--burst', action='store_true', help='exit once the queue is empty')
    parser.add_argument('queues', nargs='*', default=['default'])
    args = parser.parse_args(argv)

    app = create_app()
    conn = redis.from_url(app.config.get('REDIS_URL') or 'redis://localhost:6379/0')
    with app.app_context():
        worker = Worker([Queue(name, connection=conn) for name in args.queues], connection=conn)
        app.logger.info('RQ worker on %s starting (pid %s)', ', '.join(args.queues), os.getpid())
        try:
            worker.work(burst=args.burst, with_scheduler=not args.burst)
        finally:
            app.logger.info('RQ worker exiting (pid %s)', os.getpid())


if __name__ == '__main__':
    main()
