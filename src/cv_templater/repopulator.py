# Copyright 2026 Justin Cook
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Writes extracted CV data back into a copy of the template container.

Formatting is never synthesized: every generated paragraph is a deep copy of
an exemplar paragraph already in the template, with the text of its first
content run replaced.
"""

import copy
import logging
import re
from typing import Callable, List, Optional, Tuple, Union

from docx.oxml.ns import qn

from cv_templater import defaults
from cv_templater.anonymize import validate
from cv_templater.classifier import BULLET_RE, TRIGRAM_RE, section_kind
from cv_templater.container import DOCUMENT_PART, DocxContainer
from cv_templater.errors import DataValidationError
from cv_templater.markup import (
    iter_paragraphs,
    paragraph_runs,
    paragraph_text,
    run_text,
    set_run_text,
)
from cv_templater.models import ExtractedCV, SectionDescriptor, TemplateStructure

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 10
LIST_KINDS = ("skills", "experience", "education")

CERTIFICATION_RE = re.compile(r"(?<!\w)CERTIFICATION")
STUDIES_RE = re.compile(r"(?<!\w)(?:FORMATION|EDUCATION|DIPL[ÔO]ME|[ÉE]TUDES)")

W14_NS = "http://schemas.microsoft.com/office/word/2010/wordml"
_CLONE_STRIP_TAGS = (qn("w:bookmarkStart"), qn("w:bookmarkEnd"))
_CLONE_STRIP_ATTRS = (f"{{{W14_NS}}}paraId", f"{{{W14_NS}}}textId")


def mission_line(mission) -> str:
    line = f"{mission.role} - {mission.client}"
    return f"{line} ({mission.period})" if mission.period else line


def education_line(entry) -> str:
    line = f"{entry.degree} - {entry.institution}"
    return f"{line} ({entry.year})" if entry.year else line


def section_lists(kind: str, heading: str) -> Tuple[str, ...]:
    """
    Data lists a section of the given kind renders. Education headings are
    split by wording: FORMATION takes education entries, CERTIFICATIONS takes
    certifications, and a combined heading takes both.
    """
    if kind != "education":
        return (kind,)
    upper = heading.upper()
    certifications = bool(CERTIFICATION_RE.search(upper))
    if certifications and STUDIES_RE.search(upper):
        return ("education", "certifications")
    if certifications:
        return ("certifications",)
    return ("education",)


def section_items(lists: Tuple[str, ...], data: ExtractedCV) -> List[str]:
    """Text of each paragraph a list section should contain."""
    items = []
    for name in lists:
        if name == "skills":
            items += [item for group in data.skills for item in group.items if item.strip()]
        elif name == "experience":
            items += [mission_line(m) for m in data.missions]
        elif name == "education":
            items += [education_line(e) for e in data.education]
        elif name == "certifications":
            items += [c for c in data.certifications if c.strip()]
    return items


def content_run(p):
    """First run carrying text other than whitespace or a bare bullet."""
    for r in paragraph_runs(p):
        text = run_text(r)
        if BULLET_RE.sub("", text).strip():
            return r
    return None


class ParagraphArena:
    """
    Document-order list of the paragraphs of one part. Paragraphs are
    addressed by index; indices are only valid until the next splice.
    """

    def __init__(self, root):
        self.root = root
        self.nodes = list(iter_paragraphs(root))
        self.texts = [paragraph_text(p).strip() for p in self.nodes]

    def __len__(self):
        return len(self.nodes)

    def find(self, title: str) -> Optional[int]:
        """Index of the paragraph whose text is title; exact match first, then case-insensitive."""
        wanted = title.strip()
        for i, text in enumerate(self.texts):
            if text == wanted:
                return i
        folded = wanted.casefold()
        for i, text in enumerate(self.texts):
            if text.casefold() == folded:
                return i
        return None

    def region(self, heading: int, is_heading: Callable[[str], bool]) -> Optional[Tuple[int, int]]:
        """
        (exemplar, end) indices following a heading. The region holds the
        heading's sibling paragraphs from the first non-empty one up to the
        next heading; end is exclusive and trailing empty paragraphs are left out.
        """
        parent = self.nodes[heading].getparent()
        exemplar = None
        last = None
        for i in range(heading + 1, len(self.nodes)):
            if self.nodes[i].getparent() is not parent:
                break
            text = self.texts[i]
            if text and is_heading(text):
                break
            if text:
                if exemplar is None:
                    exemplar = i
                last = i
        if exemplar is None:
            return None
        return exemplar, last + 1

    def splice(self, start: int, end: int, replacements: list) -> None:
        anchor = self.nodes[start]
        for node in replacements:
            anchor.addprevious(node)
        for node in self.nodes[start:end]:
            node.getparent().remove(node)
        self.nodes[start:end] = replacements
        self.texts[start:end] = [paragraph_text(p).strip() for p in replacements]


def clone_with_text(exemplar, text: str):
    clone = copy.deepcopy(exemplar)
    for el in list(clone.iter(*_CLONE_STRIP_TAGS)):
        el.getparent().remove(el)
    for attr in _CLONE_STRIP_ATTRS:
        clone.attrib.pop(attr, None)

    run = content_run(clone)
    if run is not None:
        match = BULLET_RE.match(run_text(run))
        prefix = match.group(0) if match else ""
        set_run_text(run, prefix + text)
    return clone


class ContentRepopulator:
    """
    Substitutes extracted data into a template container.

    The TemplateStructure is only read; the container bytes passed in are
    never modified, a new container is returned.
    """

    def __init__(self, trigram_placeholder: str = defaults.TRIGRAM_PLACEHOLDER,
                 title_placeholder: str = defaults.TITLE_PLACEHOLDER):
        self.trigram_placeholder = trigram_placeholder
        self.title_placeholder = title_placeholder

    def repopulate(self, container_bytes: bytes, structure: TemplateStructure,
                   data: Union[ExtractedCV, dict]) -> bytes:
        data = self._coerce(data)
        container = DocxContainer(container_bytes)
        # Parse the body up front so a malformed document fails before any work.
        container.document

        self._replace_identity(container, data)

        rendered = set()
        for section in structure.sections:
            rendered |= self._repopulate_section(container, structure, section, data, rendered)

        return container.to_bytes()

    @staticmethod
    def _coerce(data) -> ExtractedCV:
        if isinstance(data, dict):
            data = ExtractedCV.from_dict(data)
        if not isinstance(data, ExtractedCV):
            raise DataValidationError(f"Unsupported data object: {type(data).__name__}")
        return validate(data)

    # Trigram and professional title

    def _replace_identity(self, container: DocxContainer, data: ExtractedCV):
        trigram = data.header.trigram or self.trigram_placeholder
        title = data.header.title or self.title_placeholder

        for part in [DOCUMENT_PART] + container.header_parts():
            runs = [r for p in iter_paragraphs(container.xml(part)) for r in paragraph_runs(p)]
            for i, r in enumerate(runs):
                if not TRIGRAM_RE.match(run_text(r).strip()):
                    continue
                logger.info(f"    > Trigram '{run_text(r).strip()}' -> '{trigram}' in {part}")
                set_run_text(r, trigram)
                container.mark_modified(part)
                self._replace_title(runs[i + 1:], title, part)
                return
        logger.warning("No trigram placeholder found in template; trigram and title left as is")

    @staticmethod
    def _replace_title(runs, title: str, part: str):
        for r in runs:
            text = run_text(r).strip()
            if len(text) >= MIN_TITLE_LENGTH and not TRIGRAM_RE.match(text):
                logger.info(f"    > Title '{text[:40]}' -> '{title}'")
                set_run_text(r, title)
                return
        logger.warning(f"No title run found after the trigram in {part}")

    # List sections

    def _repopulate_section(self, container: DocxContainer, structure: TemplateStructure,
                            section: SectionDescriptor, data: ExtractedCV, rendered: set) -> set:
        """Fills one list section. Returns the data lists it rendered; each list is rendered once."""
        kind = section.kind or section_kind(section.title) or section_kind(section.name)
        if kind not in LIST_KINDS:
            return set()

        lists = tuple(name for name in section_lists(kind, section.title or section.name)
                      if name not in rendered)
        if not lists:
            logger.info(f"    > Section '{section.title}' data already rendered; left unchanged")
            return set()

        items = section_items(lists, data)
        if not items:
            logger.info(f"    > No {' / '.join(lists)} data; section '{section.title}' left unchanged")
            return set()

        arena = ParagraphArena(container.document)
        heading = arena.find(section.title)
        if heading is None and section.name != section.title:
            heading = arena.find(section.name)
        if heading is None:
            logger.warning(f"Section '{section.title}' not found in template; skipping")
            return set()

        titles = {s.title.strip().casefold() for s in structure.sections}
        titles |= {s.name.strip().casefold() for s in structure.sections}

        def is_heading(text: str) -> bool:
            return text.casefold() in titles or section_kind(text) is not None

        region = arena.region(heading, is_heading)
        if region is None:
            logger.warning(f"Section '{section.title}' has no exemplar paragraph; skipping")
            return set()

        start, end = region
        exemplar = arena.nodes[start]
        clones = [clone_with_text(exemplar, text) for text in items]
        arena.splice(start, end, clones)
        container.mark_modified(DOCUMENT_PART)
        logger.info(
            f"    > Section '{section.title}': replaced {end - start} paragraph(s) with {len(clones)}"
        )
        return set(lists)
