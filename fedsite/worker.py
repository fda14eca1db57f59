"""RQ Worker for background job processing."""

import os

import redis
from dotenv import load_dotenv
from rq import Queue, Worker

from fedsite.services.notifications import NOTIFICATION_QUEUE

# Load environment variables
load_dotenv()


def get_redis_connection():
    """Get Redis connection from environment."""
    redis_url = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    return redis.from_url(redis_url)


def setup_queues(redis_conn):
    """Setup RQ queues."""
    return {
        NOTIFICATION_QUEUE: Queue(NOTIFICATION_QUEUE, connection=redis_conn),
        'default': Queue(connection=redis_conn),
    }


def main():
    """Start the RQ worker."""
    redis_conn = get_redis_connection()
    queues = setup_queues(redis_conn)

    # Notifications first, then anything on the default queue
    worker = Worker(list(queues.values()), connection=redis_conn)

    print("Starting RQ worker...")
    print(f"Listening on queues: {list(queues.keys())}")
    try:
        worker.work()
    except KeyboardInterrupt:
        print("\nWorker stopped by user")


if __name__ == '__main__':
    main()
