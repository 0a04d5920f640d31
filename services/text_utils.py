"""Slug and SKU helpers shared by the import services."""

import random
import re
import string
import time
import unicodedata
from typing import Optional

BASE36_ALPHABET = string.digits + string.ascii_uppercase


def slugify(value: str) -> str:
    """Lowercase, strip accents and collapse non-alphanumerics into single hyphens.

    >>> slugify('Material de Escritório / Papel')
    'material-de-escritorio-papel'
    """
    normalized = unicodedata.normalize('NFD', (value or '').lower())
    without_accents = ''.join(ch for ch in normalized if not unicodedata.combining(ch))
    return re.sub(r'[^a-z0-9]+', '-', without_accents).strip('-')


def to_base36(number: int) -> str:
    if number == 0:
        return '0'
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return ''.join(reversed(digits))


def generate_sku(now_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """Synthetic SKU for products without an internal reference: PROD-<time>-<suffix>."""
    rng = rng or random
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    suffix = ''.join(rng.choice(BASE36_ALPHABET) for _ in range(4))
    return f"PROD-{to_base36(now_ms)}-{suffix}"


def disambiguate_slug(slug: str, external_id: int) -> str:
    """Deterministic suffix for a slug already held by another record."""
    return f"{slug}-{external_id}" if slug else str(external_id)
