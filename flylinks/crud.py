import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from flylinks import config, factory, models, urls
from flylinks.errors import Forbidden, InvalidCodeError, NotFound, StorageError

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "created_at": models.ShortUrl.created_at,
    "clicks": models.ShortUrl.clicks,
    "code": models.ShortUrl.code,
    "url": models.ShortUrl.url,
    "user": models.ShortUrl.user,
}
SORT_ORDERS = {"asc", "desc"}

# Attempts at inserting a link while concurrent writers keep taking the code
MAX_INSERT_ATTEMPTS = 10


def find_link(db: Session, user: str, url: str) -> models.ShortUrl | None:
    return db.query(models.ShortUrl).filter_by(user=user, url=url).first()


def _check_requested_code(db: Session, code: str) -> None:
    if not code:
        raise InvalidCodeError("The code is empty")
    if len(code) > config.MAX_CODE_LENGTH:
        raise InvalidCodeError(f"The code is longer than {config.MAX_CODE_LENGTH} characters")
    if code in config.RESERVED_CODES:
        raise InvalidCodeError(f"The code '{code}' is reserved")
    if factory.is_code_taken(db, code):
        raise InvalidCodeError(f"The code '{code}' already exists")


def shorten(db: Session, raw_url: str, user: str = config.DEFAULT_USER,
            requested_code: str | None = None) -> models.ShortUrl:
    """Return the link for ``raw_url`` owned by ``user``, creating it if needed.

    An existing link for the same owner and normalized URL is returned as is.
    Otherwise the link gets ``requested_code`` verbatim, or the next free
    code of the sequence.
    """
    url = urls.normalize(raw_url)
    user = user or config.DEFAULT_USER

    link = find_link(db, user, url)
    if link:
        return link

    if requested_code is not None:
        _check_requested_code(db, requested_code)

    for _ in range(MAX_INSERT_ATTEMPTS):
        try:
            code = requested_code if requested_code is not None else factory.claim_code(db)
            link = models.ShortUrl(url=url, user=user, code=code, clicks=0)
            db.add(link)
            db.commit()
        except IntegrityError:
            db.rollback()
            # Lost a race: either the same link was stored concurrently or
            # somebody took the code
            existing = find_link(db, user, url)
            if existing:
                return existing
            if requested_code is not None:
                raise InvalidCodeError(f"The code '{requested_code}' already exists") from None
            continue
        db.refresh(link)
        logger.info("Shortened %s -> %s for %s", link.code, link.url, link.user)
        return link

    raise StorageError(f"Could not store a link for {url} after {MAX_INSERT_ATTEMPTS} attempts")


def lookup(db: Session, code: str) -> models.ShortUrl | None:
    return db.query(models.ShortUrl).filter_by(code=code).first()


def register_click(db: Session, link: models.ShortUrl) -> models.ShortUrl:
    link_id, code = link.id, link.code
    updated = (
        db.query(models.ShortUrl)
        .filter_by(id=link_id)
        .update({models.ShortUrl.clicks: models.ShortUrl.clicks + 1},
                synchronize_session=False)
    )
    db.commit()
    if not updated:
        raise NotFound(f"Link '{code}' no longer exists")
    db.refresh(link)
    return link


def list_urls(db: Session, user: str | None = None, limit: int = config.RECENT_URLS,
              sort_column: str = "created_at", sort_order: str = "desc",
              skip: int = 0) -> list[models.ShortUrl]:
    if sort_column not in SORT_COLUMNS:
        raise ValueError(f"Cannot sort links by {sort_column!r}")
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"Sort order must be 'asc' or 'desc', not {sort_order!r}")

    column = SORT_COLUMNS[sort_column]
    # id breaks ties between links created within the same clock tick
    order = [column.desc(), models.ShortUrl.id.desc()] if sort_order == "desc" \
        else [column.asc(), models.ShortUrl.id.asc()]

    query = db.query(models.ShortUrl)
    if user is not None:
        query = query.filter_by(user=user)
    return query.order_by(*order).offset(skip).limit(limit).all()


def count_urls(db: Session, user: str | None = None) -> int:
    query = db.query(models.ShortUrl)
    if user is not None:
        query = query.filter_by(user=user)
    return query.count()


def delete_url(db: Session, code: str, requesting_user: str) -> bool:
    """Delete the link with ``code`` on behalf of its owner.

    The code is retired: neither the sequence nor an explicit request will
    hand it out again.
    """
    link = lookup(db, code)
    if not link:
        raise NotFound(f"Link '{code}' not found")
    if link.user != requesting_user:
        raise Forbidden(f"Link '{code}' belongs to another user")
    db.add(models.RetiredCode(code=link.code))
    db.delete(link)
    db.commit()
    logger.info("Deleted link %s by %s", code, requesting_user)
    return True
