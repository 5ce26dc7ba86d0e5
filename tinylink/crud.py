import logging

from sqlalchemy import delete, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tinylink import models
from tinylink.exceptions import CodeConflictError, CodeSpaceExhausted, InvalidLinkError
from tinylink.link_utils import (
    CODE_MAX_LENGTH,
    CODE_MIN_LENGTH,
    RESERVED_CODES,
    generate_code,
    is_valid_code,
    is_valid_url,
)

logger = logging.getLogger("tinylink.crud")

MAX_ATTEMPTS = 10

URL_REQUIRED = "URL is required"
INVALID_URL = "Invalid URL"
INVALID_CODE = "Code must match [A-Za-z0-9]{6,8}"
RESERVED_CODE = "Code is reserved"
CODE_TAKEN = "Code already exists"

def code_exists(db: Session, code: str) -> bool:
    return db.query(models.Link.code).filter_by(code=code).first() is not None

def generate_unique_code(db: Session) -> str:
    """Return a code that is free at the moment of the check.

    Short codes are tried first; once ``MAX_ATTEMPTS`` of them collide the
    allocator moves to the longest allowed length before giving up.
    Store errors from the existence check are not retried.
    """
    for length in (CODE_MIN_LENGTH, CODE_MAX_LENGTH):
        for _ in range(MAX_ATTEMPTS):
            code = generate_code(length)
            if code not in RESERVED_CODES and not code_exists(db, code):
                return code
            logger.debug("Code %s already taken, retrying", code)
    raise CodeSpaceExhausted("Could not allocate a free code")

def create_link(db: Session, url, code=None) -> models.Link:
    if not url or not isinstance(url, str):
        raise InvalidLinkError(URL_REQUIRED)
    if not is_valid_url(url):
        raise InvalidLinkError(INVALID_URL)

    custom = bool(code)
    if custom:
        if not is_valid_code(code):
            raise InvalidLinkError(INVALID_CODE)
        if code in RESERVED_CODES:
            raise InvalidLinkError(RESERVED_CODE)
        if code_exists(db, code):
            raise CodeConflictError(CODE_TAKEN)
    else:
        code = generate_unique_code(db)

    for _ in range(MAX_ATTEMPTS):
        link = models.Link(code=code, url=url, total_clicks=0, created_at=models.utcnow())
        db.add(link)
        try:
            db.commit()
        except IntegrityError:
            # Someone inserted the same code between the check and the insert
            db.rollback()
            if custom:
                raise CodeConflictError(CODE_TAKEN)
            logger.debug("Collision on insert for %s, allocating a new code", code)
            code = generate_unique_code(db)
            continue
        db.refresh(link)
        return link
    raise CodeSpaceExhausted("Could not allocate a free code")

def delete_link(db: Session, code: str) -> bool:
    result = db.execute(
        delete(models.Link)
        .where(models.Link.code == code)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount > 0

def get_link(db: Session, code: str) -> models.Link | None:
    return db.query(models.Link).filter_by(code=code).first()

def get_links(db: Session) -> list[models.Link]:
    return db.query(models.Link).order_by(models.Link.created_at.desc()).all()

def record_click(db: Session, code: str) -> str | None:
    """Count a visit and return the target URL, or None for an unknown code.

    Lookup and increment happen in a single UPDATE ... RETURNING, so
    concurrent visits accumulate and a concurrent delete reads as not found.
    """
    result = db.execute(
        update(models.Link)
        .where(models.Link.code == code)
        .values(
            total_clicks=models.Link.total_clicks + 1,
            last_clicked_at=models.utcnow(),
        )
        .returning(models.Link.url)
        .execution_options(synchronize_session=False)
    )
    url = result.scalar_one_or_none()
    db.commit()
    return url

def ping(db: Session) -> None:
    db.execute(text("SELECT 1"))
