"""Per-dimension archive query strategies.

Each archive dimension turns a slug into an ``ArchiveFilter`` that both
catalog sources know how to translate: query parameters for the commerce
filter endpoint and a GROQ condition for the content backend.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from src.models.data_models import ArchiveDimension


def display_name_for(slug: str) -> str:
    """'larry-heard' -> 'Larry Heard'"""
    return " ".join(word.capitalize() for word in slug.replace("_", "-").split("-") if word)


def slug_variants(slug: str) -> List[str]:
    """Spellings a slug may have been catalogued under, most specific first."""
    variants = []
    for candidate in (display_name_for(slug), slug, slug.replace("-", " ")):
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants


@dataclass(frozen=True)
class ArchiveFilter:
    """Backend-neutral description of an archive listing filter."""
    dimension: ArchiveDimension
    value: str
    display_name: str
    variants: List[str] = field(default_factory=list)
    commerce_params: Dict[str, str] = field(default_factory=dict)
    content_condition: str = ""


class CurationPredicate(Protocol):
    """Restricts artist archives to the subset that belongs on an artist page."""

    def commerce_params(self) -> Dict[str, str]:
        ...

    def content_condition(self) -> str:
        ...


class PrimaryArtistCuration:
    """Only products catalogued under the artist as primary (first-listed) artist."""

    def commerce_params(self) -> Dict[str, str]:
        return {"primaryOnly": "true"}

    def content_condition(self) -> str:
        return "artist[0] in $variants"


class TaggedArtistCuration:
    """Every product that credits the artist anywhere."""

    def commerce_params(self) -> Dict[str, str]:
        return {}

    def content_condition(self) -> str:
        return "count(artist[@ in $variants]) > 0"


class DimensionStrategy(Protocol):
    def build(self, slug: str) -> ArchiveFilter:
        ...


class ArtistStrategy:
    def __init__(self, curation: Optional[CurationPredicate] = None):
        self.curation = curation or PrimaryArtistCuration()

    def build(self, slug: str) -> ArchiveFilter:
        return ArchiveFilter(
            dimension=ArchiveDimension.ARTIST,
            value=slug,
            display_name=display_name_for(slug),
            variants=slug_variants(slug),
            commerce_params=self.curation.commerce_params(),
            content_condition=self.curation.content_condition(),
        )


class FormatStrategy:
    def build(self, slug: str) -> ArchiveFilter:
        variants = slug_variants(slug)
        # "lp" is catalogued as "LP"
        if slug.upper() not in variants:
            variants.append(slug.upper())
        return ArchiveFilter(
            dimension=ArchiveDimension.FORMAT,
            value=slug,
            display_name=display_name_for(slug),
            variants=variants,
            content_condition=(
                "(count(format[@ in $variants]) > 0"
                " || count(format[].main[@ in $variants]) > 0)"
            ),
        )


class TagStrategy:
    def build(self, slug: str) -> ArchiveFilter:
        return ArchiveFilter(
            dimension=ArchiveDimension.TAG,
            value=slug,
            display_name=display_name_for(slug),
            variants=slug_variants(slug),
            content_condition="count(tags[@ in $variants]) > 0",
        )


def default_strategies(curation: Optional[CurationPredicate] = None) -> Dict[ArchiveDimension, DimensionStrategy]:
    return {
        ArchiveDimension.ARTIST: ArtistStrategy(curation),
        ArchiveDimension.FORMAT: FormatStrategy(),
        ArchiveDimension.TAG: TagStrategy(),
    }
