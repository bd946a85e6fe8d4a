"""Folder-name driven expiry.

A folder name containing the long-retention token (case-insensitive) keeps the
bucket for LONG_EXPIRY_DAYS; otherwise the medium token gives
MEDIUM_EXPIRY_DAYS; otherwise the bucket lives DEFAULT_EXPIRY_HOURS. The
matched token is removed (first occurrence only) from the stored name.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.core.config import settings

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ExpiryTier:
    name: str
    token: str | None
    lifetime: timedelta


@dataclass(frozen=True)
class ExpiryDecision:
    folder_name: str
    expires_at: datetime
    tier: ExpiryTier


def default_tiers() -> list[ExpiryTier]:
    return [
        ExpiryTier("long", settings.LONG_EXPIRY_TOKEN, timedelta(days=settings.LONG_EXPIRY_DAYS)),
        ExpiryTier("medium", settings.MEDIUM_EXPIRY_TOKEN, timedelta(days=settings.MEDIUM_EXPIRY_DAYS)),
        ExpiryTier("default", None, timedelta(hours=settings.DEFAULT_EXPIRY_HOURS)),
    ]


def normalize_folder_name(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def derive_expiry(raw_name: str, now: datetime, tiers: list[ExpiryTier] | None = None) -> ExpiryDecision:
    tiers = tiers or default_tiers()
    name = raw_name.strip()

    for tier in tiers:
        if tier.token is None:
            return ExpiryDecision(normalize_folder_name(name), now + tier.lifetime, tier)
        pattern = re.compile(re.escape(tier.token), re.IGNORECASE)
        if pattern.search(name):
            stripped = pattern.sub("", name, count=1)
            return ExpiryDecision(normalize_folder_name(stripped), now + tier.lifetime, tier)

    raise ValueError("expiry tiers must end with a tokenless default tier")
