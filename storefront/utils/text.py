# storefront/utils/text.py
import re
import unicodedata
import uuid


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or uuid.uuid4().hex[:8]


def unique_suffix(length: int = 6) -> str:
    return uuid.uuid4().hex[:length]
