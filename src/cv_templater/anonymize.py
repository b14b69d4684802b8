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
Turns the AI collaborator's raw response into an anonymized ExtractedCV.

The collaborator is asked to drop personal data itself; this module does not
trust that. The personal block is discarded, the trigram is derived when
missing, and any email, phone number or personal link still present makes
the object invalid.
"""

import logging
import re
import unicodedata
from typing import Any, Dict, Iterator, List, Optional

from cv_templater import defaults
from cv_templater.errors import DataValidationError
from cv_templater.models import TRIGRAM_PATTERN, ExtractedCV, TemplateStructure

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[a-zA-Z]{2,}")
PHONE_RES = (
    re.compile(r"(?:\+|\b00)\d{1,3}[\s.-]?\(?\d\)?(?:[\s.-]?\d{2}){4}\b"),
    re.compile(r"\b0\d(?:[\s.-]?\d{2}){4}\b"),
    re.compile(r"\+\d{1,3}[\s.-]?\(?\d{2,4}\)?[\s.-]?\d{3,4}[\s.-]?\d{3,4}\b"),
)
LINK_RE = re.compile(r"(?:https?://|www\.)\S+|\b(?:linkedin|github|gitlab)\.com/\S*", re.IGNORECASE)

STRAY_BULLET_RE = re.compile(r"^(?:[•\-*°●▪]\s*|É\s+)")

# Keys of the collaborator's personal block that are never kept.
PERSONAL_KEYS = (
    "first_name", "last_name", "email_found", "phone_found",
    "address_found", "linkedin_found", "personal_links_found",
)


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text or "")
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def derive_trigram(first_name: Optional[str], last_name: Optional[str]) -> Optional[str]:
    """
    First-name initial + last-name initial + last letter of the last name.

    Jean DUPONT -> JDT, Éloïse Nguyễn -> ENN
    """
    first = re.sub(r"[^A-Za-z]", "", _fold(first_name))
    last = re.sub(r"[^A-Za-z]", "", _fold(last_name))
    if not first or not last:
        return None
    return f"{first[0]}{last[0]}{last[-1]}".upper()


def _strings(value: Any, path: str = "") -> Iterator[tuple]:
    if isinstance(value, str):
        yield path, value
    elif isinstance(value, dict):
        for key, item in value.items():
            yield from _strings(item, f"{path}.{key}" if path else str(key))
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            yield from _strings(item, f"{path}[{i}]")


def find_pii(data: ExtractedCV) -> List[str]:
    """Paths of fields that still hold an email, phone number or link."""
    hits = []
    for path, text in _strings(data.to_dict()):
        if EMAIL_RE.search(text):
            hits.append(f"{path}: email")
        elif any(p.search(text) for p in PHONE_RES):
            hits.append(f"{path}: phone")
        elif LINK_RE.search(text):
            hits.append(f"{path}: link")
    return hits


def validate(data: ExtractedCV) -> ExtractedCV:
    """Raises DataValidationError unless data is well-formed and anonymized."""
    trigram = data.header.trigram
    if trigram is not None and not TRIGRAM_PATTERN.match(trigram):
        raise DataValidationError(f"Trigram must be three uppercase letters, got '{trigram}'")

    hits = find_pii(data)
    if hits:
        raise DataValidationError(f"Extracted data still contains personal data: {', '.join(hits)}")
    return data


def _clean_items(items: List[str]) -> List[str]:
    cleaned = [STRAY_BULLET_RE.sub("", i).strip() for i in items]
    return [i for i in cleaned if i]


def anonymize(raw: Dict[str, Any], structure: Optional[TemplateStructure] = None) -> ExtractedCV:
    """
    Builds a validated ExtractedCV from the collaborator's raw JSON.
    """
    if not isinstance(raw, dict):
        raise DataValidationError("Extracted data must be a JSON object")

    raw = dict(raw)
    try:
        personal = dict(raw.pop("personal", None) or {})
        header = raw.get("header") if isinstance(raw.get("header"), dict) else {}
        trigram = personal.get("trigram") or header.get("trigram") or raw.get("trigramme")
        if trigram is not None and not isinstance(trigram, str):
            raise DataValidationError(f"Trigram must be a string, got {type(trigram).__name__}")
        if trigram:
            trigram = trigram.strip().upper() or None
        if not trigram:
            trigram = derive_trigram(personal.get("first_name"), personal.get("last_name"))
            if trigram:
                logger.info(f"    > Derived trigram {trigram}")
    except DataValidationError:
        raise
    except (AttributeError, TypeError, ValueError) as e:
        raise DataValidationError(f"Malformed personal data: {e}") from e

    for key in PERSONAL_KEYS:
        personal.pop(key, None)
    personal["trigram"] = trigram
    raw["header"] = {**header, **personal}

    data = ExtractedCV.from_dict(raw)

    if structure is not None:
        contact = structure.element_styles.commercial_contact
        has_contact = structure.has_header and contact.position == "header" and contact.text is not None
        data.header.commercial_contact = has_contact
        data.header.commercial_contact_text = defaults.COMMERCIAL_CONTACT_TEXT if has_contact else ""

    for group in data.skills:
        group.items = _clean_items(group.items)
    for mission in data.missions:
        mission.achievements = _clean_items(mission.achievements)
        mission.environment = _clean_items(mission.environment)

    return validate(data)
