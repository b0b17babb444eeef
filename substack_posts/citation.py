"""
Citation formatting for cached posts.
"""

from typing import Callable, Dict, TypedDict
from urllib.parse import urlparse

from substack_posts.models import Article

CITATION_STYLES = ("APA", "MLA", "Chicago", "markdown")


class Citation(TypedDict):
    """A formatted citation and the style used to produce it."""

    citation: str
    style: str
    title: str
    link: str


def extract_publication(url: str) -> str:
    """Derives the publication name from a post URL's first host label."""
    hostname = urlparse(url).hostname
    if not hostname:
        return "Substack"
    name = hostname.split(".")[0]
    return name[:1].upper() + name[1:]


def _date_parts(article: Article):
    published = article.published_at
    return published.year, published.strftime("%B"), published.day


def format_apa(article: Article) -> str:
    year, month, day = _date_parts(article)
    publication = extract_publication(article.canonical_url)
    return (
        f"{article.author} ({year}, {month} {day}). {article.title}. "
        f"{publication}. {article.canonical_url}"
    )


def format_mla(article: Article) -> str:
    year, month, day = _date_parts(article)
    publication = extract_publication(article.canonical_url)
    return (
        f'{article.author}. "{article.title}." {publication}, '
        f"{day} {month} {year}, {article.canonical_url}."
    )


def format_chicago(article: Article) -> str:
    year, month, day = _date_parts(article)
    publication = extract_publication(article.canonical_url)
    return (
        f'{article.author}. "{article.title}." {publication}. '
        f"{month} {day}, {year}. {article.canonical_url}."
    )


def format_markdown(article: Article) -> str:
    year, month, day = _date_parts(article)
    return (
        f"[{article.title}]({article.canonical_url}) by {article.author}, "
        f"{month} {day}, {year}"
    )


_FORMATTERS: Dict[str, Callable[[Article], str]] = {
    "APA": format_apa,
    "MLA": format_mla,
    "Chicago": format_chicago,
    "markdown": format_markdown,
}


def generate_citation(article: Article, style: str = "markdown") -> Citation:
    """Formats a citation; unknown styles fall back to markdown."""
    if style not in _FORMATTERS:
        style = "markdown"
    return Citation(
        citation=_FORMATTERS[style](article),
        style=style,
        title=article.title,
        link=article.canonical_url,
    )
