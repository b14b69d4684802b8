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
Literal fallback values for the Template Structure Model.

These are used whenever analysis fails or a template yields no signal for a
given slot, so they must stay stable: stored models and generated documents
depend on them.
"""

PRIMARY_COLOR = "#2563eb"
SECONDARY_COLOR = "#64748b"
TEXT_COLOR = "#1e293b"
BACKGROUND_COLOR = "#ffffff"
ACCENT_COLOR = "#3b82f6"
BORDER_COLOR = "#e2e8f0"

TITLE_FONT = "Arial"
TITLE_SIZE = 18.0
BODY_FONT = "Calibri"
BODY_SIZE = 11.0
LINE_HEIGHT = 1.15

BULLET_CHARACTER = "•"
BULLET_INDENT_MM = 12.0

PAGE_SIZE = "A4"
ORIENTATION = "portrait"
MARGINS_MM = {"top": 20.0, "right": 15.0, "bottom": 20.0, "left": 15.0}
TWO_COLUMN_WIDTHS = [35, 65]

SECTION_SPACING_PT = 12.0
PARAGRAPH_SPACING_PT = 6.0

DEFAULT_SECTION_NAME = "PROFIL"
SKILL_SUBCATEGORIES = ["Langage/BDD", "OS", "Outils", "Méthodologies"]

TRIGRAM_PLACEHOLDER = "XXX"
TITLE_PLACEHOLDER = "Professionnel"
COMMERCIAL_CONTACT_TEXT = "Contact Commercial"

# Per-role fallbacks: "style" feeds StyleToken, "paragraph" feeds
# ParagraphDescriptor. Anything not listed takes the dataclass default.
ROLE_DEFAULTS = {
    "commercial_contact": {
        "style": {"font": BODY_FONT, "size": 9.0, "color": SECONDARY_COLOR},
        "paragraph": {"alignment": "right"},
        "position": "header",
    },
    "trigram": {
        "style": {"font": TITLE_FONT, "size": 24.0, "color": PRIMARY_COLOR, "bold": True, "case": "upper"},
        "paragraph": {"alignment": "center"},
    },
    "title": {
        "style": {"font": TITLE_FONT, "size": 14.0, "color": TEXT_COLOR, "bold": True},
        "paragraph": {"alignment": "center", "spacing_after_pt": SECTION_SPACING_PT},
    },
    "section_title": {
        "style": {"font": TITLE_FONT, "size": 16.0, "color": PRIMARY_COLOR, "bold": True, "case": "upper"},
        "paragraph": {"spacing_before_pt": SECTION_SPACING_PT, "spacing_after_pt": PARAGRAPH_SPACING_PT},
    },
    "mission_title": {
        "style": {"font": BODY_FONT, "size": BODY_SIZE, "color": TEXT_COLOR, "bold": True},
        "paragraph": {"spacing_before_pt": PARAGRAPH_SPACING_PT},
    },
    "mission_context": {
        "style": {"font": BODY_FONT, "size": BODY_SIZE, "color": TEXT_COLOR, "italic": True},
    },
    "mission_achievement": {
        "style": {"font": BODY_FONT, "size": BODY_SIZE, "color": TEXT_COLOR},
        "paragraph": {"indent_left_mm": BULLET_INDENT_MM},
    },
    "mission_environment": {
        "style": {"font": BODY_FONT, "size": BODY_SIZE, "color": TEXT_COLOR, "italic": True},
    },
    "skills_label": {
        "style": {"font": BODY_FONT, "size": BODY_SIZE, "color": TEXT_COLOR, "bold": True},
    },
    "skills_item": {
        "style": {"font": BODY_FONT, "size": BODY_SIZE, "color": TEXT_COLOR},
    },
    "education_degree": {
        "style": {"font": BODY_FONT, "size": BODY_SIZE, "color": TEXT_COLOR, "bold": True},
    },
    "education_info": {
        "style": {"font": BODY_FONT, "size": BODY_SIZE, "color": TEXT_COLOR, "italic": True},
    },
    "bullet_style": {
        "style": {"font": BODY_FONT, "size": BODY_SIZE, "color": TEXT_COLOR},
        "paragraph": {"indent_left_mm": BULLET_INDENT_MM},
    },
    "body_text": {
        "style": {"font": BODY_FONT, "size": BODY_SIZE, "color": TEXT_COLOR},
    },
}

ROLES = tuple(ROLE_DEFAULTS)
