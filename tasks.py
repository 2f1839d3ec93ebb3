"""Deferred rank passes on an RQ queue, with an inline fallback.

With a reachable REDIS_URL, work goes to the "quizrank" queue for an
``rq worker`` process (started with QUIZRANK_WORKER=1). Without one, the
callable runs in the calling thread and its return value is handed back.

A job submitted under a ``job_id`` that is still waiting in the queue is not
queued twice: a burst of submissions collapses into one pending rank pass.
"""

from __future__ import annotations

import logging

import redis
from rq import Queue
from rq.exceptions import NoSuchJobError
from rq.job import Job, JobStatus

logger = logging.getLogger(__name__)

QUEUE_NAME = "quizrank"
JOB_TIMEOUT = 300

_queue: Queue | None = None


def init_tasks(app) -> None:
    global _queue
    _queue = None

    url = app.config.get("REDIS_URL", "")
    if not url:
        app.logger.info("Rank passes run inline (REDIS_URL unset)")
        return

    conn = redis.Redis.from_url(url, socket_connect_timeout=2)
    try:
        conn.ping()
    except redis.RedisError as exc:
        app.logger.warning("Redis at %s unreachable, rank passes run inline: %s", url, exc)
        return
    _queue = Queue(QUEUE_NAME, connection=conn, default_timeout=JOB_TIMEOUT)
    app.logger.info("Rank passes deferred to RQ queue %r", QUEUE_NAME)


def _pending(job_id: str) -> Job | None:
    try:
        job = Job.fetch(job_id, connection=_queue.connection)
    except NoSuchJobError:
        return None
    return job if job.get_status() == JobStatus.QUEUED else None


def enqueue(func, *args, job_id: str | None = None, **kwargs):
    """Queue ``func`` (or reuse the pending job with ``job_id``); run inline without a queue."""
    if _queue is not None:
        try:
            if job_id and (job := _pending(job_id)) is not None:
                logger.debug("%s already pending as %s", func.__name__, job_id)
                return job
            job = _queue.enqueue(func, *args, job_id=job_id, **kwargs)
            logger.debug("Queued %s as %s", func.__name__, job.id)
            return job
        except redis.RedisError as exc:
            logger.warning("Queueing %s failed, running inline: %s", func.__name__, exc)

    return func(*args, **kwargs)
