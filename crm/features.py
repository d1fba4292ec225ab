"""
Feature-flag parsing for lead and project records.

Older intake submissions stored the requested features as one string, either
comma separated or concatenated without any delimiter
(``"contact-formblogseo"``). Current rows store a JSON list.
"""
from typing import Iterable, List, Optional, Union

KNOWN_FEATURES = [
    'contact-form', 'social-links', 'analytics', 'mobile-optimized',
    'age-verification', 'basic-only', 'blog', 'gallery', 'testimonials',
    'booking', 'cms', 'portfolio-gallery', 'case-studies', 'resume-download',
    'shopping-cart', 'payment-processing', 'inventory-management',
    'user-accounts', 'admin-dashboard', 'product-search', 'reviews',
    'real-time-updates', 'api-integration', 'database', 'authentication',
    'dashboard', 'notifications', 'file-upload', 'offline-support',
    'tab-management', 'bookmarks', 'sync', 'dark-mode', 'keyboard-shortcuts',
]

# Package tiers that end up in the feature field but are not features
TIER_VALUES = {'basic-only', 'standard', 'premium', 'enterprise'}

# Longest first, so 'portfolio-gallery' wins over 'gallery'
_BY_LENGTH = sorted(KNOWN_FEATURES, key=len, reverse=True)


def parse_features(features_str: Optional[str], known: Iterable[str] = None) -> List[str]:
    """Split a stored feature string into feature slugs.

    Comma-separated input is split and trimmed. Anything else is matched
    greedily against the known features, longest match first, removing each
    match from the remainder; text left over is kept verbatim as one item.
    """
    if not features_str:
        return []
    if ',' in features_str:
        return [f.strip() for f in features_str.split(',') if f.strip()]

    candidates = _BY_LENGTH if known is None else sorted(known, key=len, reverse=True)
    found = []
    remaining = features_str

    while remaining:
        for feature in candidates:
            index = remaining.find(feature)
            if index != -1:
                found.append(feature)
                remaining = remaining[:index] + remaining[index + len(feature):]
                break
        else:
            if remaining.strip():
                found.append(remaining.strip())
            break

    return found


def normalize_features(value: Union[None, str, list]) -> List[str]:
    """Coerce a stored features value (list, legacy string or null) to a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(f) for f in value if f]
    return parse_features(value)


def display_features(value: Union[None, str, list]) -> List[str]:
    """Feature labels for display: tiers dropped, hyphens turned into spaces."""
    return [
        f.replace('-', ' ')
        for f in normalize_features(value)
        if f and f.lower() not in TIER_VALUES
    ]
