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
Readers for WordprocessingML markup.

Turns w:p / w:r elements into StyleToken and ParagraphDescriptor values,
resolving inherited formatting through styles.xml, and reads page geometry
from the body's section properties.
"""

import logging
from typing import Dict, List, Optional

from docx.oxml.ns import nsmap, qn
from lxml import etree

from cv_templater import defaults
from cv_templater.models import (
    BorderEdge,
    NumberingRef,
    PageLayout,
    ParagraphDescriptor,
    StyleToken,
)

logger = logging.getLogger(__name__)

NS = {prefix: nsmap[prefix] for prefix in ("w", "wp", "a", "pic", "r")}

TWIPS_PER_MM = 56.7
EMU_PER_MM = 36000

# Run containers that still belong to the paragraph's visible text.
_RUN_XPATH = etree.XPath(
    "./w:r | ./w:hyperlink/w:r | ./w:ins/w:r | ./w:smartTag/w:r | ./w:sdt/w:sdtContent/w:r",
    namespaces=NS,
)
_TEXT_XPATH = etree.XPath("./w:t", namespaces=NS)

_ALIGNMENTS = {
    "left": "left",
    "start": "left",
    "center": "center",
    "right": "right",
    "end": "right",
    "both": "justify",
    "distribute": "justify",
}

_FALSE_VALUES = {"0", "false", "off", "none"}


def twips_to_mm(value) -> float:
    return round(float(value) / TWIPS_PER_MM, 1)


def emu_to_mm(value) -> float:
    return round(float(value) / EMU_PER_MM, 1)


def twips_to_pt(value) -> float:
    return round(float(value) / 20, 1)


def half_points_to_pt(value) -> float:
    return float(value) / 2


def normalize_color(value: Optional[str]) -> Optional[str]:
    """Returns '#rrggbb' (lowercase), or None for anything that is not a hex colour."""
    if not value:
        return None
    if value.lower() == "auto":
        return "#000000"
    value = value.lstrip("#")
    if len(value) != 6:
        return None
    try:
        int(value, 16)
    except ValueError:
        return None
    return f"#{value.lower()}"


def _attr(el, name: str) -> Optional[str]:
    if el is None:
        return None
    return el.get(qn(name))


def _on(el) -> Optional[bool]:
    """Reads a CT_OnOff toggle: absent -> None, bare element -> True."""
    if el is None:
        return None
    val = _attr(el, "w:val")
    return val is None or val.lower() not in _FALSE_VALUES


def _number(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# --- Property extraction ----------------------------------------------------

def run_properties(rPr) -> Dict:
    """Explicit run formatting carried by one w:rPr element."""
    props = {}
    if rPr is None:
        return props

    fonts = rPr.find(qn("w:rFonts"))
    if fonts is not None:
        font = _attr(fonts, "w:ascii") or _attr(fonts, "w:hAnsi")
        if font:
            props["font"] = font

    size = _number(_attr(rPr.find(qn("w:sz")), "w:val"))
    if size is not None:
        props["size"] = half_points_to_pt(size)

    color = normalize_color(_attr(rPr.find(qn("w:color")), "w:val"))
    if color:
        props["color"] = color

    for key, tag in (("bold", "w:b"), ("italic", "w:i"), ("caps", "w:caps")):
        value = _on(rPr.find(qn(tag)))
        if value is not None:
            props[key] = value

    u = rPr.find(qn("w:u"))
    if u is not None:
        val = _attr(u, "w:val") or "single"
        props["underline"] = val.lower() != "none"
        underline_color = normalize_color(_attr(u, "w:color"))
        if underline_color:
            props["underline_color"] = underline_color
    return props


def paragraph_properties(pPr) -> Dict:
    """Explicit paragraph formatting carried by one w:pPr element."""
    props = {}
    if pPr is None:
        return props

    jc = _attr(pPr.find(qn("w:jc")), "w:val")
    if jc:
        props["alignment"] = _ALIGNMENTS.get(jc, "left")

    ind = pPr.find(qn("w:ind"))
    if ind is not None:
        left = _number(_attr(ind, "w:left") or _attr(ind, "w:start"))
        if left is not None:
            props["indent_left_mm"] = twips_to_mm(left)
        first = _number(_attr(ind, "w:firstLine"))
        hanging = _number(_attr(ind, "w:hanging"))
        if hanging is not None:
            props["first_line_indent_mm"] = -twips_to_mm(hanging)
        elif first is not None:
            props["first_line_indent_mm"] = twips_to_mm(first)

    spacing = pPr.find(qn("w:spacing"))
    if spacing is not None:
        before = _number(_attr(spacing, "w:before"))
        after = _number(_attr(spacing, "w:after"))
        if before is not None:
            props["spacing_before_pt"] = twips_to_pt(before)
        if after is not None:
            props["spacing_after_pt"] = twips_to_pt(after)

    shading = normalize_color(_attr(pPr.find(qn("w:shd")), "w:fill"))
    if shading:
        props["shading"] = shading

    borders = {}
    pBdr = pPr.find(qn("w:pBdr"))
    if pBdr is not None:
        for edge in pBdr:
            style = _attr(edge, "w:val") or "single"
            if style in ("nil", "none"):
                continue
            size = _number(_attr(edge, "w:sz")) or 4
            borders[etree.QName(edge).localname] = BorderEdge(
                style=style,
                width_pt=size / 8,
                color=normalize_color(_attr(edge, "w:color")) or defaults.BORDER_COLOR,
            )
    if borders:
        props["borders"] = borders

    numPr = pPr.find(qn("w:numPr"))
    if numPr is not None:
        num_id = _attr(numPr.find(qn("w:numId")), "w:val")
        level = _number(_attr(numPr.find(qn("w:ilvl")), "w:val")) or 0
        if num_id and num_id != "0":
            props["numbering"] = NumberingRef(level=int(level), num_id=num_id)
    return props


class StyleSheet:
    """
    Resolves effective formatting through styles.xml.

    Precedence, lowest first: document defaults, the paragraph style chain,
    the character style chain, then direct formatting on the element.
    """

    def __init__(self, styles_root=None):
        self._styles = {}
        self._default_paragraph_style = None
        self._doc_rpr = {}
        self._doc_ppr = {}
        if styles_root is not None:
            self._load(styles_root)

    def _load(self, root):
        doc_defaults = root.find(qn("w:docDefaults"))
        if doc_defaults is not None:
            self._doc_rpr = run_properties(doc_defaults.find(f"{qn('w:rPrDefault')}/{qn('w:rPr')}"))
            self._doc_ppr = paragraph_properties(doc_defaults.find(f"{qn('w:pPrDefault')}/{qn('w:pPr')}"))

        for style in root.iter(qn("w:style")):
            style_id = _attr(style, "w:styleId")
            if not style_id:
                continue
            based_on = _attr(style.find(qn("w:basedOn")), "w:val")
            self._styles[style_id] = {
                "based_on": based_on,
                "rpr": run_properties(style.find(qn("w:rPr"))),
                "ppr": paragraph_properties(style.find(qn("w:pPr"))),
            }
            if _attr(style, "w:type") == "paragraph" and (_attr(style, "w:default") or "").lower() in ("1", "true", "on"):
                self._default_paragraph_style = style_id

    def _chain(self, style_id: Optional[str], key: str) -> Dict:
        chain = []
        seen = set()
        while style_id and style_id in self._styles and style_id not in seen:
            seen.add(style_id)
            chain.append(self._styles[style_id][key])
            style_id = self._styles[style_id]["based_on"]
        merged = {}
        for props in reversed(chain):
            merged.update(props)
        return merged

    def paragraph_style_id(self, p) -> Optional[str]:
        pPr = p.find(qn("w:pPr"))
        style_id = _attr(pPr.find(qn("w:pStyle")), "w:val") if pPr is not None else None
        return style_id or self._default_paragraph_style

    def resolve_run(self, r, p=None) -> Dict:
        props = dict(self._doc_rpr)
        if p is not None:
            props.update(self._chain(self.paragraph_style_id(p), "rpr"))
        rPr = r.find(qn("w:rPr"))
        if rPr is not None:
            props.update(self._chain(_attr(rPr.find(qn("w:rStyle")), "w:val"), "rpr"))
            props.update(run_properties(rPr))
        return props

    def resolve_paragraph(self, p) -> Dict:
        props = dict(self._doc_ppr)
        props.update(self._chain(self.paragraph_style_id(p), "ppr"))
        props.update(paragraph_properties(p.find(qn("w:pPr"))))
        return props


# --- Text access --------------------------------------------------------------

MC_FALLBACK = "{http://schemas.openxmlformats.org/markup-compatibility/2006}Fallback"


def iter_paragraphs(root):
    """Paragraphs in document order, including tables and text boxes.

    Text boxes are stored twice (mc:Choice and mc:Fallback); the fallback copy
    is skipped.
    """
    for p in root.iter(qn("w:p")):
        if any(a.tag == MC_FALLBACK for a in p.iterancestors()):
            continue
        yield p


def paragraph_runs(p) -> List:
    return _RUN_XPATH(p)


def run_text(r) -> str:
    return "".join(t.text or "" for t in _TEXT_XPATH(r))


def paragraph_text(p) -> str:
    return "".join(run_text(r) for r in paragraph_runs(p))


def first_text_run(p):
    """The first run with visible text, or None."""
    for r in paragraph_runs(p):
        if run_text(r).strip():
            return r
    return None


def set_run_text(r, text: str) -> None:
    """Replaces a run's text, keeping its first w:t and dropping the rest."""
    texts = _TEXT_XPATH(r)
    if not texts:
        t = etree.SubElement(r, qn("w:t"))
        texts = [t]
    first = texts[0]
    first.text = text
    first.set("{http://www.w3.org/XML/1998/namespace}space", "preserve")
    for extra in texts[1:]:
        r.remove(extra)


# --- Descriptors --------------------------------------------------------------

def text_case(text: str, caps: bool = False) -> str:
    if caps or (text.isupper()):
        return "upper"
    if text.islower():
        return "lower"
    return "mixed"


def style_token(r, p, sheet: StyleSheet) -> StyleToken:
    props = sheet.resolve_run(r, p)
    text = run_text(r) if r is not None else ""
    return StyleToken(
        font=props.get("font", defaults.BODY_FONT),
        size=props.get("size", defaults.BODY_SIZE),
        color=props.get("color", "#000000"),
        bold=props.get("bold", False),
        italic=props.get("italic", False),
        underline=props.get("underline", False),
        underline_color=props.get("underline_color"),
        case=text_case(text, props.get("caps", False)),
    )


def paragraph_descriptor(p, sheet: StyleSheet) -> ParagraphDescriptor:
    props = sheet.resolve_paragraph(p)
    return ParagraphDescriptor(
        alignment=props.get("alignment", "left"),
        indent_left_mm=props.get("indent_left_mm", 0.0),
        first_line_indent_mm=props.get("first_line_indent_mm", 0.0),
        spacing_before_pt=props.get("spacing_before_pt", 0.0),
        spacing_after_pt=props.get("spacing_after_pt", 0.0),
        shading=props.get("shading"),
        borders=props.get("borders", {}),
        numbering=props.get("numbering"),
    )


def has_styled_run(p) -> bool:
    return any(r.find(qn("w:rPr")) is not None for r in paragraph_runs(p))


# --- Page geometry --------------------------------------------------------------

def page_layout(body_root) -> PageLayout:
    """Reads margins, size, orientation and columns from the body's w:sectPr."""
    layout = PageLayout()
    sect_prs = list(body_root.iter(qn("w:sectPr")))
    if not sect_prs:
        return layout
    # The trailing sectPr of w:body governs the last (usually only) section.
    sect = sect_prs[-1]

    margins = sect.find(qn("w:pgMar"))
    if margins is not None:
        for edge in ("top", "right", "bottom", "left"):
            value = _number(_attr(margins, f"w:{edge}"))
            if value is not None:
                layout.margins[edge] = twips_to_mm(abs(value))

    size = sect.find(qn("w:pgSz"))
    if size is not None:
        width = _number(_attr(size, "w:w")) or 0
        height = _number(_attr(size, "w:h")) or 0
        landscape = _attr(size, "w:orient") == "landscape" or width > height
        layout.orientation = "landscape" if landscape else "portrait"
        short, long_ = sorted((width, height))
        if short >= 12200 and long_ <= 15900:
            layout.page_size = "Letter"
        else:
            layout.page_size = "A4"

    cols = sect.find(qn("w:cols"))
    if cols is not None:
        count = int(_number(_attr(cols, "w:num")) or 1)
        layout.columns = max(count, 1)
        if layout.columns == 2:
            layout.column_widths = list(defaults.TWO_COLUMN_WIDTHS)
        else:
            layout.column_widths = [round(100 / layout.columns)] * layout.columns
    return layout
