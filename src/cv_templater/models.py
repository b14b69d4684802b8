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
Data models for CV Templater.

Two families live here: the Template Structure Model (what a template looks
like) and the Extracted CV (what an anonymized résumé says). Both serialize to
plain JSON-shaped dicts via to_dict()/from_dict().
"""

import re
from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict, List, Optional

from cv_templater import defaults
from cv_templater.errors import DataValidationError

TRIGRAM_PATTERN = re.compile(r"^[A-Z]{3}$")


def _known(cls, raw: Optional[dict]) -> dict:
    """Keeps only the keys of raw that are fields of cls."""
    if not isinstance(raw, dict):
        return {}
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in raw.items() if k in names}


# --- Template Structure Model ---------------------------------------------

@dataclass(frozen=True)
class StyleToken:
    """Visual attributes of a single run."""
    font: str = defaults.BODY_FONT
    size: float = defaults.BODY_SIZE
    color: str = "#000000"
    bold: bool = False
    italic: bool = False
    underline: bool = False
    underline_color: Optional[str] = None
    case: str = "mixed"

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "StyleToken":
        return cls(**_known(cls, raw))


@dataclass(frozen=True)
class BorderEdge:
    style: str = "single"
    width_pt: float = 0.5
    color: str = defaults.BORDER_COLOR

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> Optional["BorderEdge"]:
        if not isinstance(raw, dict):
            return None
        return cls(**_known(cls, raw))


@dataclass(frozen=True)
class NumberingRef:
    level: int = 0
    num_id: str = ""

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> Optional["NumberingRef"]:
        if not isinstance(raw, dict):
            return None
        return cls(**_known(cls, raw))


@dataclass(frozen=True)
class ParagraphDescriptor:
    """Paragraph-level layout that accompanies a representative StyleToken."""
    alignment: str = "left"
    indent_left_mm: float = 0.0
    first_line_indent_mm: float = 0.0
    spacing_before_pt: float = 0.0
    spacing_after_pt: float = 0.0
    shading: Optional[str] = None
    borders: Dict[str, BorderEdge] = field(default_factory=dict)
    numbering: Optional[NumberingRef] = None

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "ParagraphDescriptor":
        values = _known(cls, raw)
        values["borders"] = {
            edge: BorderEdge.from_dict(b)
            for edge, b in (values.get("borders") or {}).items()
            if isinstance(b, dict)
        }
        values["numbering"] = NumberingRef.from_dict(values.get("numbering"))
        return cls(**values)


@dataclass(frozen=True)
class ElementStyle:
    """A semantic role's representative style, plus the text it was learned from."""
    style: StyleToken = field(default_factory=StyleToken)
    paragraph: ParagraphDescriptor = field(default_factory=ParagraphDescriptor)
    text: Optional[str] = None
    position: str = "body"

    @classmethod
    def from_dict(cls, raw: Optional[dict], fallback: Optional["ElementStyle"] = None) -> "ElementStyle":
        if not isinstance(raw, dict):
            return fallback or cls()
        return cls(
            style=StyleToken.from_dict(raw.get("style")),
            paragraph=ParagraphDescriptor.from_dict(raw.get("paragraph")),
            text=raw.get("text"),
            position=raw.get("position", fallback.position if fallback else "body"),
        )


def default_element_style(role: str) -> ElementStyle:
    preset = defaults.ROLE_DEFAULTS[role]
    return ElementStyle(
        style=StyleToken(**preset.get("style", {})),
        paragraph=ParagraphDescriptor(**preset.get("paragraph", {})),
        position=preset.get("position", "body"),
    )


def _role(name: str):
    return field(default_factory=lambda: default_element_style(name))


@dataclass
class ElementStyles:
    """Named element-style map. Every role is always present."""
    commercial_contact: ElementStyle = _role("commercial_contact")
    trigram: ElementStyle = _role("trigram")
    title: ElementStyle = _role("title")
    section_title: ElementStyle = _role("section_title")
    mission_title: ElementStyle = _role("mission_title")
    mission_context: ElementStyle = _role("mission_context")
    mission_achievement: ElementStyle = _role("mission_achievement")
    mission_environment: ElementStyle = _role("mission_environment")
    skills_label: ElementStyle = _role("skills_label")
    skills_item: ElementStyle = _role("skills_item")
    education_degree: ElementStyle = _role("education_degree")
    education_info: ElementStyle = _role("education_info")
    bullet_style: ElementStyle = _role("bullet_style")
    body_text: ElementStyle = _role("body_text")

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "ElementStyles":
        raw = raw if isinstance(raw, dict) else {}
        return cls(**{
            role: ElementStyle.from_dict(raw.get(role), default_element_style(role))
            for role in defaults.ROLES
        })


@dataclass
class SectionDescriptor:
    name: str
    title: str
    kind: str = ""
    position: str = "body"
    title_style: ElementStyle = _role("section_title")
    spacing_before_pt: float = defaults.SECTION_SPACING_PT
    spacing_after_pt: float = defaults.PARAGRAPH_SPACING_PT

    @classmethod
    def from_dict(cls, raw: dict) -> "SectionDescriptor":
        values = _known(cls, raw)
        name = values.get("name") or values.get("title") or defaults.DEFAULT_SECTION_NAME
        values["name"] = name
        values.setdefault("title", name)
        values["title_style"] = ElementStyle.from_dict(
            raw.get("title_style"), default_element_style("section_title")
        )
        return cls(**values)


def default_section() -> SectionDescriptor:
    return SectionDescriptor(
        name=defaults.DEFAULT_SECTION_NAME, title=defaults.DEFAULT_SECTION_NAME, kind="profile"
    )


@dataclass
class VisualAssetReference:
    """An image lifted out of the template and written to the asset store."""
    position: str
    width_mm: float
    height_mm: float
    wrap: str = "inline"
    alignment: str = "left"
    storage_path: str = ""
    extension: str = ""

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> Optional["VisualAssetReference"]:
        if not isinstance(raw, dict):
            return None
        values = _known(cls, raw)
        values.setdefault("position", "body")
        values.setdefault("width_mm", 0.0)
        values.setdefault("height_mm", 0.0)
        return cls(**values)


@dataclass
class TableInfo:
    rows: int
    columns: int
    has_borders: bool = False


@dataclass
class BulletStyle:
    character: str = defaults.BULLET_CHARACTER
    indent_mm: float = defaults.BULLET_INDENT_MM
    style: StyleToken = field(default_factory=StyleToken)


@dataclass
class VisualElements:
    logo: Optional[VisualAssetReference] = None
    tables: List[TableInfo] = field(default_factory=list)
    border_style: Optional[BorderEdge] = None
    bullet_style: BulletStyle = field(default_factory=BulletStyle)

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "VisualElements":
        raw = raw if isinstance(raw, dict) else {}
        bullet = raw.get("bullet_style") if isinstance(raw.get("bullet_style"), dict) else {}
        return cls(
            logo=VisualAssetReference.from_dict(raw.get("logo")),
            tables=[TableInfo(**_known(TableInfo, t)) for t in raw.get("tables") or [] if isinstance(t, dict)],
            border_style=BorderEdge.from_dict(raw.get("border_style")),
            bullet_style=BulletStyle(
                character=bullet.get("character", defaults.BULLET_CHARACTER),
                indent_mm=bullet.get("indent_mm", defaults.BULLET_INDENT_MM),
                style=StyleToken.from_dict(bullet.get("style")),
            ),
        )


@dataclass
class PageLayout:
    margins: Dict[str, float] = field(default_factory=lambda: dict(defaults.MARGINS_MM))
    orientation: str = defaults.ORIENTATION
    page_size: str = defaults.PAGE_SIZE
    columns: int = 1
    column_widths: List[int] = field(default_factory=lambda: [100])

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "PageLayout":
        values = _known(cls, raw)
        margins = dict(defaults.MARGINS_MM)
        margins.update(values.get("margins") or {})
        values["margins"] = margins
        return cls(**values)


@dataclass
class ColorPalette:
    primary: str = defaults.PRIMARY_COLOR
    secondary: str = defaults.SECONDARY_COLOR
    text: str = defaults.TEXT_COLOR
    background: str = defaults.BACKGROUND_COLOR
    accent: str = defaults.ACCENT_COLOR
    border: str = defaults.BORDER_COLOR


@dataclass
class FontSet:
    title_font: str = defaults.TITLE_FONT
    title_size: float = defaults.TITLE_SIZE
    title_weight: str = "bold"
    body_font: str = defaults.BODY_FONT
    body_size: float = defaults.BODY_SIZE
    body_weight: str = "normal"
    line_height: float = defaults.LINE_HEIGHT


@dataclass
class Spacing:
    section_spacing_pt: float = defaults.SECTION_SPACING_PT
    paragraph_spacing_pt: float = defaults.PARAGRAPH_SPACING_PT
    bullet_indent_mm: float = defaults.BULLET_INDENT_MM
    line_height: float = defaults.LINE_HEIGHT


@dataclass
class TemplateStructure:
    """
    The schema learned from a template document.

    A model is produced wholesale by one analysis run; it is never merged with
    a previous one and never mutated by repopulation.
    """
    page_layout: PageLayout = field(default_factory=PageLayout)
    colors: ColorPalette = field(default_factory=ColorPalette)
    fonts: FontSet = field(default_factory=FontSet)
    sections: List[SectionDescriptor] = field(default_factory=lambda: [default_section()])
    element_styles: ElementStyles = field(default_factory=ElementStyles)
    skill_subcategories: List[str] = field(default_factory=lambda: list(defaults.SKILL_SUBCATEGORIES))
    visual_elements: VisualElements = field(default_factory=VisualElements)
    spacing: Spacing = field(default_factory=Spacing)
    has_header: bool = False
    has_footer: bool = False

    @classmethod
    def default(cls) -> "TemplateStructure":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "TemplateStructure":
        """Builds a model from stored JSON, filling anything missing from the defaults."""
        raw = raw if isinstance(raw, dict) else {}
        sections = [SectionDescriptor.from_dict(s) for s in raw.get("sections") or [] if isinstance(s, dict)]
        return cls(
            page_layout=PageLayout.from_dict(raw.get("page_layout")),
            colors=ColorPalette(**_known(ColorPalette, raw.get("colors"))),
            fonts=FontSet(**_known(FontSet, raw.get("fonts"))),
            sections=sections or [default_section()],
            element_styles=ElementStyles.from_dict(raw.get("element_styles")),
            skill_subcategories=list(raw.get("skill_subcategories") or defaults.SKILL_SUBCATEGORIES),
            visual_elements=VisualElements.from_dict(raw.get("visual_elements")),
            spacing=Spacing(**_known(Spacing, raw.get("spacing"))),
            has_header=bool(raw.get("has_header", False)),
            has_footer=bool(raw.get("has_footer", False)),
        )

    def section_names(self) -> List[str]:
        return [s.name for s in self.sections]


# --- Extracted CV ----------------------------------------------------------

@dataclass
class CVHeader:
    trigram: Optional[str] = None
    title: str = ""
    commercial_contact: bool = False
    commercial_contact_text: str = ""


@dataclass
class CVFooter:
    text: str = ""


@dataclass
class SkillGroup:
    """A skill subcategory. Each item renders as its own paragraph."""
    subcategory: str
    items: List[str] = field(default_factory=list)


@dataclass
class Education:
    degree: str
    institution: str = ""
    year: str = ""
    location: str = ""


@dataclass
class Mission:
    client: str
    role: str = ""
    start: str = ""
    end: str = ""
    location: str = ""
    context: str = ""
    achievements: List[str] = field(default_factory=list)
    environment: List[str] = field(default_factory=list)

    @property
    def period(self) -> str:
        return f"{self.start} - {self.end}".strip(" -")


@dataclass
class ExtractedCV:
    """
    Structured, anonymized résumé data.
    This is the data object consumed by the repopulation engine.
    """
    header: CVHeader = field(default_factory=CVHeader)
    footer: CVFooter = field(default_factory=CVFooter)
    years_experience: Optional[float] = None
    skills: List[SkillGroup] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)
    certifications: List[str] = field(default_factory=list)
    education: List[Education] = field(default_factory=list)
    missions: List[Mission] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Any) -> "ExtractedCV":
        """
        Reads either the persisted shape produced by to_dict() or the AI
        collaborator's raw shape (personal block, skills.subcategories,
        date_start/date_end). Raises DataValidationError on malformed input.
        """
        if not isinstance(raw, dict):
            raise DataValidationError("Extracted data must be a JSON object")

        try:
            header_raw = raw.get("header") or raw.get("personal") or {}
            contact = raw.get("commercial_contact") or {}
            header = CVHeader(
                trigram=header_raw.get("trigram") or raw.get("trigramme") or None,
                title=header_raw.get("title") or raw.get("titre_poste") or "",
                commercial_contact=bool(header_raw.get("commercial_contact", contact.get("enabled", False))),
                commercial_contact_text=header_raw.get("commercial_contact_text", contact.get("text", "")) or "",
            )

            footer_raw = raw.get("footer") or {}
            footer = CVFooter(text=footer_raw.get("text", "") if isinstance(footer_raw, dict) else str(footer_raw))

            skills_raw = raw.get("skills") or []
            languages = raw.get("languages") or []
            certifications = raw.get("certifications") or []
            if isinstance(skills_raw, dict):
                languages = languages or skills_raw.get("languages") or []
                certifications = certifications or skills_raw.get("certifications") or []
                skills_raw = skills_raw.get("subcategories") or []

            years = raw.get("years_experience", header_raw.get("years_experience"))

            return cls(
                header=header,
                footer=footer,
                years_experience=float(years) if years not in (None, "") else None,
                skills=[_skill_group(s) for s in _as_list(skills_raw, "skills")],
                languages=[str(x) for x in _as_list(languages, "languages")],
                certifications=[str(x) for x in _as_list(certifications, "certifications")],
                education=[_education(e) for e in _as_list(raw.get("education"), "education")],
                missions=[_mission(m) for m in _as_list(raw.get("missions"), "missions")],
            )
        except DataValidationError:
            raise
        except (AttributeError, TypeError, ValueError) as e:
            raise DataValidationError(f"Malformed extracted data: {e}") from e


def _as_list(value, name: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DataValidationError(f"'{name}' must be a list")
    return value


def _items(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return [str(v) for v in value if str(v).strip()]


def _normalize_date(value) -> str:
    # The extraction prompt asks for MM-YYYY; the documents use MM/YYYY.
    text = str(value or "").strip()
    return re.sub(r"^(\d{2})-(\d{4})$", r"\1/\2", text)


def _skill_group(raw) -> SkillGroup:
    if not isinstance(raw, dict):
        raise DataValidationError("Each skill group must be an object")
    return SkillGroup(
        subcategory=str(raw.get("subcategory") or raw.get("name") or raw.get("category") or ""),
        items=_items(raw.get("items", raw.get("skills"))),
    )


def _education(raw) -> Education:
    if not isinstance(raw, dict):
        raise DataValidationError("Each education entry must be an object")
    return Education(
        degree=str(raw.get("degree") or raw.get("titre") or ""),
        institution=str(raw.get("institution") or raw.get("etablissement") or ""),
        year=str(raw.get("year") or raw.get("annee") or ""),
        location=str(raw.get("location") or ""),
    )


def _mission(raw) -> Mission:
    if not isinstance(raw, dict):
        raise DataValidationError("Each mission must be an object")
    return Mission(
        client=str(raw.get("client") or raw.get("entreprise") or ""),
        role=str(raw.get("role") or raw.get("titre") or ""),
        start=_normalize_date(raw.get("start", raw.get("date_start"))),
        end=_normalize_date(raw.get("end", raw.get("date_end"))),
        location=str(raw.get("location") or ""),
        context=str(raw.get("context") or raw.get("contexte") or ""),
        achievements=_items(raw.get("achievements")),
        environment=_items(raw.get("environment", raw.get("environnement"))),
    )
