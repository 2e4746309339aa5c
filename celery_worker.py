#!/usr/bin/env python3
"""
Starts the Celery worker that delivers order and account emails.
"""
import os

from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    from core.celery import celery_app
    from core.config import settings

    celery_app.start([
        "worker",
        f"--loglevel={settings.LOG_LEVEL.lower()}",
        f"--concurrency={os.getenv('CELERY_CONCURRENCY', '2')}",
        "--queues=celery",
        "--without-gossip",
        "--without-mingle",
    ])
