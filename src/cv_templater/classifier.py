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
Paragraph classification.

RULES is an ordered list of (predicate, role) rules; the first rule whose
predicate accepts a paragraph decides its role. The section a paragraph sits
in is tracked by SectionTracker, which only moves when a section title is seen.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from cv_templater.models import ParagraphDescriptor, StyleToken

TRIGRAM_RE = re.compile(r"^[A-Z]{3}$")
BULLET_RE = re.compile(r"^\s*([•\-–—*●○◦▪■➢►])\s*")

MAX_SECTION_TITLE_LENGTH = 60
MIN_TITLE_LENGTH = 10
MISSION_TITLE_LENGTH = (4, 99)

# Matched against the uppercased text. Accented and plain spellings are both
# listed since templates use either.
SECTION_KEYWORDS = (
    ("skills", ("COMPÉTENCE", "COMPETENCE", "SKILL", "SAVOIR-FAIRE")),
    ("experience", ("EXPÉRIENCE", "EXPERIENCE", "PARCOURS PROFESSIONNEL", "EMPLOYMENT", "WORK HISTORY")),
    ("education", ("FORMATION", "EDUCATION", "DIPLÔME", "DIPLOME", "CERTIFICATION", "ÉTUDES", "ETUDES")),
    ("profile", ("PROFIL", "PROFILE", "SUMMARY", "À PROPOS", "A PROPOS")),
)
_SECTION_PATTERNS = tuple(
    (kind, tuple(re.compile(r"(?<!\w)" + re.escape(k)) for k in keywords))
    for kind, keywords in SECTION_KEYWORDS
)
SKILL_LABEL_KEYWORDS = ("technique", "outils", "langues")
ENVIRONMENT_KEYWORDS = ("environnement", "technologie")


class SectionState(Enum):
    NONE = "none"
    PROFILE = "profile"
    SKILLS = "skills"
    EXPERIENCE = "experience"
    EDUCATION = "education"


def section_kind(text: str) -> Optional[str]:
    """Kind of section a heading names, or None when it is not a section title."""
    upper = text.strip().upper()
    if not upper or len(upper) >= MAX_SECTION_TITLE_LENGTH:
        return None
    for kind, patterns in _SECTION_PATTERNS:
        if any(p.search(upper) for p in patterns):
            return kind
    return None


def bullet_character(text: str) -> Optional[str]:
    match = BULLET_RE.match(text)
    return match.group(1) if match else None


@dataclass(frozen=True)
class ParagraphFacts:
    """What a rule can see about one paragraph."""
    text: str
    style: StyleToken
    paragraph: ParagraphDescriptor

    @property
    def bullet(self) -> Optional[str]:
        return bullet_character(self.text)

    @property
    def is_bulleted(self) -> bool:
        return self.bullet is not None or self.paragraph.numbering is not None

    @property
    def has_hyphen(self) -> bool:
        return "-" in self.text


class SectionTracker:
    """State machine over SectionState; transitions only on section titles."""

    def __init__(self):
        self.state = SectionState.NONE
        self.entered = 0

    def enter(self, kind: str) -> SectionState:
        self.state = SectionState(kind)
        self.entered += 1
        return self.state

    @property
    def any_section(self) -> bool:
        return self.entered > 0

    def inside(self, state: SectionState) -> bool:
        return self.state is state


@dataclass
class ClassificationContext:
    sections: SectionTracker
    trigram_seen: bool = False
    title_seen: bool = False
    body_text_seen: bool = False


@dataclass(frozen=True)
class ClassificationRule:
    role: str
    predicate: Callable[[ParagraphFacts, ClassificationContext], bool]
    description: str = ""

    def matches(self, facts: ParagraphFacts, ctx: ClassificationContext) -> bool:
        return self.predicate(facts, ctx)


def _is_trigram(f, ctx):
    return bool(TRIGRAM_RE.match(f.text.strip()))


def _is_section_title(f, ctx):
    return section_kind(f.text) is not None


def _is_title(f, ctx):
    return (
        not ctx.sections.any_section
        and ctx.trigram_seen
        and not ctx.title_seen
        and len(f.text.strip()) >= MIN_TITLE_LENGTH
    )


def _is_mission_title(f, ctx):
    low, high = MISSION_TITLE_LENGTH
    return ctx.sections.inside(SectionState.EXPERIENCE) and f.style.bold and low <= len(f.text.strip()) <= high


def _is_mission_context(f, ctx):
    # Any hyphen qualifies, so later rules only see hyphen-free, non-italic text.
    return f.style.italic or f.has_hyphen


def _is_environment_marker(f, ctx):
    lower = f.text.lower()
    return any(k in lower for k in ENVIRONMENT_KEYWORDS)


def _is_skills_label(f, ctx):
    if not ctx.sections.inside(SectionState.SKILLS):
        return False
    lower = f.text.lower()
    return f.style.bold or any(k in lower for k in SKILL_LABEL_KEYWORDS)


def _is_skills_item(f, ctx):
    return ctx.sections.inside(SectionState.SKILLS) and (f.is_bulleted or f.has_hyphen)


def _is_education_degree(f, ctx):
    return ctx.sections.inside(SectionState.EDUCATION) and f.style.bold and not f.has_hyphen


def _is_education_info(f, ctx):
    return ctx.sections.inside(SectionState.EDUCATION) and (f.style.italic or f.has_hyphen)


def _is_bullet(f, ctx):
    return f.bullet is not None


def _is_body_text(f, ctx):
    return not ctx.body_text_seen


RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule("trigram", _is_trigram, "exactly three uppercase letters"),
    ClassificationRule("section_title", _is_section_title, "short text naming a section"),
    ClassificationRule("title", _is_title, "first long line after the trigram, before any section"),
    ClassificationRule("mission_title", _is_mission_title, "bold line in the experience section"),
    ClassificationRule("mission_context", _is_mission_context, "italic or hyphenated text"),
    ClassificationRule("mission_environment", _is_environment_marker, "environment label; styles the next paragraph"),
    ClassificationRule("skills_label", _is_skills_label, "bold or labelled line in the skills section"),
    ClassificationRule("skills_item", _is_skills_item, "bulleted line in the skills section"),
    ClassificationRule("education_degree", _is_education_degree, "bold line in the education section"),
    ClassificationRule("education_info", _is_education_info, "italic line in the education section"),
    ClassificationRule("bullet_style", _is_bullet, "leading bullet character"),
    ClassificationRule("body_text", _is_body_text, "first unclassified paragraph"),
)


def classify(facts: ParagraphFacts, ctx: ClassificationContext, rules=RULES) -> Optional[ClassificationRule]:
    for rule in rules:
        if rule.matches(facts, ctx):
            return rule
    return None
