import re
import secrets
import string

from pydantic import AnyUrl, TypeAdapter, ValidationError

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits

CODE_REGEX = re.compile(r"^[A-Za-z0-9]{6,8}$")
CODE_MIN_LENGTH = 6
CODE_MAX_LENGTH = 8

# Paths served by the app that also fit CODE_REGEX
RESERVED_CODES = frozenset({"config", "healthz", "static"})

_url_adapter = TypeAdapter(AnyUrl)


def is_valid_url(value) -> bool:
    """True when ``value`` parses as an absolute URL with a host.

    Any scheme is accepted; nothing is fetched.
    """
    if not isinstance(value, str):
        return False
    try:
        url = _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return bool(url.scheme) and bool(url.host)


def is_valid_code(value) -> bool:
    # fullmatch so a trailing newline does not slip past "$"
    return isinstance(value, str) and CODE_REGEX.fullmatch(value) is not None


def generate_code(length: int = CODE_MIN_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))
