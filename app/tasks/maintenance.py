from celery import shared_task
from sqlalchemy import create_engine, update, delete
from sqlalchemy.orm import sessionmaker, Session
from datetime import datetime, timedelta
from typing import Optional
from loguru import logger

from app.models.base import utcnow
from app.models.orders import Order, PaymentStatus
from app.models.users import EmailVerification
from app.core.config import settings


def sync_database_url(url: str) -> str:
    """Celery workers run synchronously, so async drivers are swapped for sync ones"""
    if url.startswith("postgresql+asyncpg://"):
        return url.replace("postgresql+asyncpg://", "postgresql://", 1)
    if url.startswith("sqlite+aiosqlite://"):
        return url.replace("sqlite+aiosqlite://", "sqlite://", 1)
    return url


def expire_verifications(db: Session, now: Optional[datetime] = None) -> int:
    result = db.execute(
        delete(EmailVerification)
        .where(EmailVerification.expires_at <= (now or utcnow()))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount


def fail_stale_orders(db: Session, stale_seconds: int, now: Optional[datetime] = None) -> int:
    """
    Marks orders stuck in `processing` longer than stale_seconds as failed.

    Same guard as the request path: only rows still in `processing` move,
    so a payment completed in the meantime is never touched.
    """
    now = now or utcnow()
    result = db.execute(
        update(Order)
        .where(
            Order.payment_status == PaymentStatus.PROCESSING,
            Order.payment_updated_at < now - timedelta(seconds=stale_seconds),
        )
        .values(payment_status=PaymentStatus.FAILED, payment_updated_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount


def _session() -> Session:
    engine = create_engine(sync_database_url(settings.SQLALCHEMY_DATABASE_URI))
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return SessionLocal()


@shared_task
def cleanup_expired_verifications():
    db = _session()
    try:
        removed = expire_verifications(db)
        logger.info(f"Removed {removed} expired verification code(s)")
        return removed
    finally:
        db.close()


@shared_task
def fail_stale_processing_orders():
    db = _session()
    try:
        failed = fail_stale_orders(db, settings.PAYMENT_PROCESSING_STALE_SECONDS)
        if failed:
            logger.warning(f"Marked {failed} stale processing order(s) as failed")
        return failed
    finally:
        db.close()
