# File: src/processing/tag_filter.py
"""Derives the visible article list from the accumulated set"""
from typing import Iterable, List

from core.models import Article, TagFacet, TagSelection


def matches_facet(article: Article, facet: TagFacet, selection: TagSelection) -> bool:
    """True if the facet is unrestricted or shares at least one tag with the selection"""
    selected = selection.for_facet(facet)
    if not selected:
        return True
    return any(tag in selected for tag in article.tags(facet))


def matches_tags(article: Article, selection: TagSelection) -> bool:
    return all(matches_facet(article, facet, selection) for facet in TagFacet)


def filter_visible(articles: Iterable[Article], selection: TagSelection) -> List[Article]:
    """Articles passing every tag facet.

    The input is never modified; the result keeps the input order.
    """
    return [article for article in articles if matches_tags(article, selection)]


def unique_tags(articles: Iterable[Article], facet: TagFacet) -> List[str]:
    """Distinct tags of a facet in first-seen order"""
    seen = {}
    for article in articles:
        for tag in article.tags(facet):
            seen.setdefault(tag, None)
    return list(seen)
