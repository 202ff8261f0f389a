"""Issue system-generated short codes from the persisted sequence counter.

The counter lives in the single ``code_factory`` row. It is advanced with an
``UPDATE ... SET count = count + 1`` inside the caller's transaction, so the
row stays write-locked until the new link is committed or rolled back, and a
rollback returns the counter to where it was.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from flylinks import codes, config, models

logger = logging.getLogger(__name__)


def ensure_code_factory(db: Session) -> models.CodeFactory:
    """Create the counter row on first boot. Safe to call repeatedly."""
    factory = db.get(models.CodeFactory, models.CodeFactory.SINGLETON_ID)
    if factory:
        return factory
    db.add(models.CodeFactory(id=models.CodeFactory.SINGLETON_ID, count=0))
    try:
        db.commit()
        logger.info("Initialised code factory")
    except IntegrityError:
        # Another process created it in the meantime
        db.rollback()
    return db.get(models.CodeFactory, models.CodeFactory.SINGLETON_ID)


def current_count(db: Session) -> int:
    return (
        db.query(models.CodeFactory.count)
        .filter_by(id=models.CodeFactory.SINGLETON_ID)
        .scalar()
    )


def is_code_taken(db: Session, code: str) -> bool:
    """True if a live link uses ``code``, a deleted link used it, or a
    fixed route owns the path."""
    if code in config.RESERVED_CODES:
        return True
    if db.query(models.ShortUrl.id).filter_by(code=code).first():
        return True
    return db.query(models.RetiredCode.code).filter_by(code=code).first() is not None


def _advance_counter(db: Session) -> int:
    """Increment the counter and return the position it held before."""
    updated = (
        db.query(models.CodeFactory)
        .filter_by(id=models.CodeFactory.SINGLETON_ID)
        .update({models.CodeFactory.count: models.CodeFactory.count + 1},
                synchronize_session=False)
    )
    if not updated:
        # Missing row; a concurrent creator makes the flush fail and the
        # caller retries
        db.add(models.CodeFactory(id=models.CodeFactory.SINGLETON_ID, count=1))
        db.flush()
        return 0
    return current_count(db) - 1


def claim_code(db: Session) -> str:
    """Reserve the next free code in the current transaction.

    Positions whose code is already taken (by an explicitly requested code
    or a deleted link) are skipped. The caller commits.
    """
    while True:
        candidate = codes.encode(_advance_counter(db))
        if not is_code_taken(db, candidate):
            return candidate
        logger.debug("Code %s already taken, forwarding", candidate)


def next_code(db: Session) -> str:
    """Issue a code on its own, without creating a link."""
    try:
        code = claim_code(db)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return code
