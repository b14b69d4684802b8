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
Learns a TemplateStructure from a template document.
"""

import logging
from typing import Dict, List, Optional

from docx.oxml.ns import qn

from cv_templater import defaults
from cv_templater.assets import AssetExtractor
from cv_templater.classifier import (
    RULES,
    ClassificationContext,
    ParagraphFacts,
    SectionState,
    SectionTracker,
    classify,
    section_kind,
)
from cv_templater.container import DOCUMENT_PART, DocxContainer
from cv_templater.markup import (
    StyleSheet,
    first_text_run,
    has_styled_run,
    iter_paragraphs,
    page_layout,
    paragraph_descriptor,
    paragraph_runs,
    paragraph_text,
    style_token,
)
from cv_templater.models import (
    BulletStyle,
    ElementStyle,
    SectionDescriptor,
    TableInfo,
    TemplateStructure,
    default_section,
)

logger = logging.getLogger(__name__)

SUPPORTED_TYPES = ("docx",)
MIN_TEXT_LENGTH = 2

# Roles that follow the latest matching paragraph; every other role keeps
# the first paragraph that matched it.
ROLLING_ROLES = {"section_title", "bullet_style", "mission_achievement"}

_NEUTRAL_COLORS = {"#000000", "#ffffff"}


class StructureAnalyzer:
    """
    Walks body, header and footer markup and assembles a TemplateStructure.

    The analyzer holds no state between calls; every analyze() starts from
    the default model.
    """

    def __init__(self, asset_extractor: Optional[AssetExtractor] = None, rules=RULES):
        self.asset_extractor = asset_extractor
        self.rules = rules

    def analyze(self, body, styles=None, header=None, footer=None, settings=None,
                header_rels: Optional[Dict[str, str]] = None,
                body_rels: Optional[Dict[str, str]] = None) -> TemplateStructure:
        sheet = StyleSheet(styles)
        structure = TemplateStructure.default()
        structure.sections = []
        structure.page_layout = page_layout(settings if settings is not None else body)
        structure.has_header = header is not None
        structure.has_footer = footer is not None

        if header is not None:
            self._analyze_header(header, sheet, structure)

        self._analyze_body(body, sheet, structure)

        if not structure.sections:
            logger.info("    > No section titles found; using default PROFIL section")
            structure.sections = [default_section()]

        structure.visual_elements.tables = _tables(body)
        border = _first_border(body, sheet)
        if border is not None:
            structure.visual_elements.border_style = border
            structure.colors.border = border.color

        if self.asset_extractor is not None:
            structure.visual_elements.logo = self.asset_extractor.extract_logo(
                header, body, header_rels or {}, body_rels or {}
            )
            if structure.visual_elements.logo:
                logger.info(f"    > Logo found in {structure.visual_elements.logo.position}")

        logger.info(
            f"    > Analysis complete: {len(structure.sections)} section(s), "
            f"primary colour {structure.colors.primary}"
        )
        return structure

    def _analyze_header(self, header, sheet: StyleSheet, structure: TemplateStructure):
        for p in iter_paragraphs(header):
            text = paragraph_text(p).strip()
            if not text or not has_styled_run(p):
                continue
            structure.element_styles.commercial_contact = ElementStyle(
                style=style_token(first_text_run(p), p, sheet),
                paragraph=paragraph_descriptor(p, sheet),
                text=text,
                position="header",
            )
            logger.debug(f"    > Commercial contact style from header: '{text[:30]}'")
            return

    def _analyze_body(self, body, sheet: StyleSheet, structure: TemplateStructure):
        ctx = ClassificationContext(sections=SectionTracker())
        assigned = set()
        colors: List[str] = []
        subcategories: List[str] = []
        environment_pending = False

        for p in iter_paragraphs(body):
            text = paragraph_text(p).strip()
            if len(text) < MIN_TEXT_LENGTH:
                continue

            facts = ParagraphFacts(
                text=text,
                style=style_token(first_text_run(p), p, sheet),
                paragraph=paragraph_descriptor(p, sheet),
            )
            for r in paragraph_runs(p):
                color = sheet.resolve_run(r, p).get("color")
                if color and color not in _NEUTRAL_COLORS and color not in colors:
                    colors.append(color)

            element = ElementStyle(style=facts.style, paragraph=facts.paragraph, text=text)

            if environment_pending:
                self._assign(structure, assigned, "mission_environment", element)
                environment_pending = False

            rule = classify(facts, ctx, self.rules)
            if rule is None:
                continue
            role = rule.role
            logger.debug(f"    > [{role}] {text[:40]}")

            if role == "trigram":
                ctx.trigram_seen = True
            elif role == "section_title":
                self._add_section(structure, ctx, facts, element)
            elif role == "title":
                ctx.title_seen = True
            elif role == "mission_environment":
                environment_pending = True
                continue
            elif role == "skills_label":
                label = text.rstrip(" :").strip()
                if label and label not in subcategories:
                    subcategories.append(label)
            elif role == "bullet_style":
                structure.visual_elements.bullet_style = BulletStyle(
                    character=facts.bullet or defaults.BULLET_CHARACTER,
                    indent_mm=defaults.BULLET_INDENT_MM,
                    style=facts.style,
                )
                structure.spacing.bullet_indent_mm = defaults.BULLET_INDENT_MM
                if ctx.sections.inside(SectionState.EXPERIENCE):
                    self._assign(structure, assigned, "mission_achievement", element)
            elif role == "body_text":
                ctx.body_text_seen = True
                structure.fonts.body_font = facts.style.font
                structure.fonts.body_size = facts.style.size
                if facts.style.color not in _NEUTRAL_COLORS:
                    structure.colors.text = facts.style.color

            self._assign(structure, assigned, role, element)

        if colors:
            structure.colors.primary = colors[0]
        if len(colors) > 1:
            structure.colors.secondary = colors[1]
        if subcategories:
            structure.skill_subcategories = subcategories

    def _add_section(self, structure: TemplateStructure, ctx: ClassificationContext,
                     facts: ParagraphFacts, element: ElementStyle):
        kind = section_kind(facts.text)
        ctx.sections.enter(kind)

        structure.fonts.title_font = facts.style.font
        structure.fonts.title_size = facts.style.size
        structure.fonts.title_weight = "bold" if facts.style.bold else "normal"

        name = facts.text.upper()
        if name in structure.section_names():
            return
        structure.sections.append(SectionDescriptor(
            name=name,
            title=facts.text,
            kind=kind,
            position="top-center" if facts.paragraph.alignment == "center" else "left-column",
            title_style=element,
            spacing_before_pt=facts.paragraph.spacing_before_pt or defaults.SECTION_SPACING_PT,
            spacing_after_pt=facts.paragraph.spacing_after_pt or defaults.PARAGRAPH_SPACING_PT,
        ))
        logger.info(f"    > Section found: '{name}' ({kind})")

    @staticmethod
    def _assign(structure: TemplateStructure, assigned: set, role: str, element: ElementStyle):
        if role in assigned and role not in ROLLING_ROLES:
            return
        setattr(structure.element_styles, role, element)
        assigned.add(role)


def _tables(body) -> List[TableInfo]:
    tables = []
    for tbl in body.iter(qn("w:tbl")):
        rows = tbl.findall(qn("w:tr"))
        grid = tbl.find(qn("w:tblGrid"))
        if grid is not None and len(grid):
            columns = len(grid.findall(qn("w:gridCol")))
        else:
            columns = max((len(r.findall(qn("w:tc"))) for r in rows), default=0)
        borders = tbl.find(f"{qn('w:tblPr')}/{qn('w:tblBorders')}")
        has_borders = borders is not None and any(
            (edge.get(qn("w:val")) or "single") not in ("nil", "none") for edge in borders
        )
        tables.append(TableInfo(rows=len(rows), columns=columns, has_borders=has_borders))
    return tables


def _first_border(body, sheet: StyleSheet):
    for p in iter_paragraphs(body):
        borders = paragraph_descriptor(p, sheet).borders
        if borders:
            return next(iter(borders.values()))
    return None


def _pick_header(container: DocxContainer) -> Optional[str]:
    """First header part carrying text or a drawing; falls back to the first header."""
    parts = container.header_parts()
    for part in parts:
        root = container.xml(part)
        has_text = any((t.text or "").strip() for t in root.iter(qn("w:t")))
        if has_text or next(root.iter(qn("w:drawing")), None) is not None:
            return part
    return parts[0] if parts else None


def analyze_container(data: bytes, file_type: str = "docx", asset_store=None) -> TemplateStructure:
    """
    Analyzes raw template bytes. Never raises: any failure is logged and the
    default TemplateStructure is returned instead.
    """
    kind = (file_type or "").lower().lstrip(".")
    if kind not in SUPPORTED_TYPES:
        logger.warning(f"Template type '{file_type}' cannot be analyzed; using default structure")
        return TemplateStructure.default()

    try:
        container = DocxContainer(data)
        header_part = _pick_header(container)
        footer_part = container.first_footer()

        extractor = None
        if asset_store is not None:
            extractor = AssetExtractor(
                asset_store,
                read_part=lambda name: container.read(name) if container.has(name) else None,
            )

        analyzer = StructureAnalyzer(asset_extractor=extractor)
        return analyzer.analyze(
            container.document,
            styles=container.styles,
            header=container.xml(header_part) if header_part else None,
            footer=container.xml(footer_part) if footer_part else None,
            header_rels=container.relationship_targets(header_part) if header_part else {},
            body_rels=container.relationship_targets(DOCUMENT_PART),
        )
    except Exception as e:
        logger.error(f"Template analysis failed, falling back to default structure: {e}")
        return TemplateStructure.default()
