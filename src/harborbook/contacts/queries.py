"""Read-only views over the category collection."""

from datetime import datetime, timezone
from typing import List, NamedTuple, Optional

from .models import Category, Contact

_NEVER_USED = datetime.min.replace(tzinfo=timezone.utc)


class SearchHit(NamedTuple):
    contact: Contact
    category: str


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def search(categories: List[Category], query: str) -> List[SearchHit]:
    """
    Find contacts matching query, in collection order.

    Name, organization and role match case-insensitively; phone matches the
    raw query as a plain substring. An empty query matches nothing.
    """
    if not query:
        return []
    lowered = query.lower()
    hits: List[SearchHit] = []
    for category in categories:
        for contact in category.contacts:
            if (
                _contains(contact.name, lowered)
                or query in contact.phone
                or _contains(contact.organization, lowered)
                or _contains(contact.role, lowered)
            ):
                hits.append(SearchHit(contact, category.name))
    return hits


def frequently_used(categories: List[Category], limit: int = 5) -> List[Contact]:
    """Most recently used contacts first; never-used contacts sort last, ties keep scan order."""
    if limit <= 0:
        return []
    contacts = [contact for category in categories for contact in category.contacts]
    ranked = sorted(contacts, key=lambda contact: contact.last_used or _NEVER_USED, reverse=True)
    return ranked[:limit]


def favorites(categories: List[Category]) -> List[SearchHit]:
    return [
        SearchHit(contact, category.name)
        for category in categories
        for contact in category.contacts
        if contact.is_favorite
    ]
