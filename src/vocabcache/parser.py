"""GBIF thesaurus XML parser.

Reads documents of the form::

    <thesaurus dc:identifier="http://iso.org/639-1" dc:issued="2016-05-01" ...>
      <concept dc:identifier="en" dc:URI="..." dc:description="...">
        <preferred><term dc:title="English" xml:lang="en"/></preferred>
        <alternative><term dc:title="..." xml:lang="en"/></alternative>
      </concept>
    </thesaurus>

Namespaces vary between published versions, so elements and attributes are
matched on their local name only.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as SafeET

from vocabcache.errors import VocabularyParseError
from vocabcache.models import Vocabulary, VocabularyConcept, VocabularyTerm

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element


def _local(name: str) -> str:
    return name.rsplit("}", 1)[-1]


def _attrs(el: Element) -> dict[str, str]:
    return {_local(k): v.strip() for k, v in el.attrib.items() if v and v.strip()}


def _children(el: Element, name: str) -> list[Element]:
    return [child for child in el if _local(child.tag) == name]


def _terms(concept: Element, group: str) -> list[VocabularyTerm]:
    terms = []
    for holder in _children(concept, group):
        for term in _children(holder, "term"):
            attrs = _attrs(term)
            title = attrs.get("title") or (term.text or "").strip()
            if title:
                terms.append(VocabularyTerm(title=title, lang=attrs.get("lang")))
    return terms


class ThesaurusParser:
    """Parses a thesaurus document into a ``Vocabulary``."""

    def parse(self, stream: BinaryIO) -> Vocabulary:
        try:
            root = SafeET.parse(stream).getroot()
        except (SafeET.ParseError, DefusedXmlException) as exc:
            raise VocabularyParseError(f"Malformed vocabulary XML: {exc}") from exc

        if _local(root.tag) != "thesaurus":
            raise VocabularyParseError(f"Unexpected root element: {_local(root.tag)!r}")

        attrs = _attrs(root)
        identifier = attrs.get("identifier")
        if not identifier:
            raise VocabularyParseError("Vocabulary has no identifier")

        concepts = []
        for el in _children(root, "concept"):
            c_attrs = _attrs(el)
            c_identifier = c_attrs.get("identifier")
            if not c_identifier:
                continue
            concepts.append(
                VocabularyConcept(
                    identifier=c_identifier,
                    uri=c_attrs.get("URI"),
                    description=c_attrs.get("description"),
                    link=c_attrs.get("relation"),
                    preferred_terms=_terms(el, "preferred"),
                    alternative_terms=_terms(el, "alternative"),
                )
            )

        try:
            return Vocabulary(
                identifier=identifier,
                issued=attrs.get("issued"),
                title=attrs.get("title"),
                description=attrs.get("description"),
                subject=attrs.get("subject"),
                link=attrs.get("relation"),
                concepts=concepts,
            )
        except ValueError as exc:
            # pydantic.ValidationError is a ValueError (bad issued date)
            raise VocabularyParseError(f"Invalid vocabulary metadata: {exc}") from exc
