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
Handles ingestion of résumé text from DOCX and PDF files, and downloading
templates from URLs.
"""

import os
import re
import json
import logging
import tempfile
from typing import Dict, List

import requests
from docx import Document
from pypdf import PdfReader

from cv_templater.errors import ExtractionError, RecordNotFoundError

logger = logging.getLogger(__name__)

STRAY_BULLET_RE = re.compile(r"^[•\-*É°●]\s*")
SUPPORTED_EXTENSIONS = (".docx", ".pdf")


def _clean(text: str) -> str:
    return re.sub(r"\s+", " ", STRAY_BULLET_RE.sub("", text)).strip()


def read_docx_structured(source) -> List[Dict]:
    """
    Extracts paragraphs from a DOCX file with the formatting of their first run.
    source is a path or a binary stream.
    """
    try:
        doc = Document(source)
        paragraphs = []
        for para in doc.paragraphs:
            raw = para.text.strip()
            if not raw:
                continue
            first = para.runs[0] if para.runs else None
            size = first.font.size if first is not None else None
            style_name = para.style.name if para.style is not None else ""
            paragraphs.append({
                "text": _clean(raw),
                "style": {
                    "bold": bool(first is not None and first.bold),
                    "italic": bool(first is not None and first.italic),
                    "size": size.pt if size is not None else None,
                    "bullet": bool(STRAY_BULLET_RE.match(raw)) or "list" in style_name.lower(),
                },
            })
        return paragraphs
    except Exception as e:
        logger.error(f"Error reading {source}: {e}")
        return []


def read_docx(source) -> str:
    """
    Extracts text from a DOCX file.
    """
    return "\n".join(p["text"] for p in read_docx_structured(source))


def read_pdf(source) -> str:
    """
    Extracts text from a PDF file.
    """
    try:
        reader = PdfReader(source)
        full_text = []
        for page in reader.pages:
            full_text.append(page.extract_text() or "")
        return _clean_lines("\n".join(full_text))
    except Exception as e:
        logger.error(f"Error reading PDF {source}: {e}")
        return ""


def _clean_lines(text: str) -> str:
    lines = (_clean(line) for line in text.splitlines())
    return "\n".join(line for line in lines if line)


def read_document(file_path: str) -> str:
    """
    Text sent to the extraction collaborator. DOCX paragraphs are serialized
    with their formatting so headings and bullets survive; PDF is plain text.
    """
    if not os.path.exists(file_path):
        raise RecordNotFoundError(f"CV file not found: {file_path}")

    ext = os.path.splitext(file_path)[1].lower()
    if ext == ".docx":
        structured = read_docx_structured(file_path)
        text = json.dumps(structured, ensure_ascii=False, indent=2) if structured else ""
    elif ext == ".pdf":
        text = read_pdf(file_path)
    else:
        raise ExtractionError(
            f"Unsupported CV format '{ext or file_path}'. Supported: {', '.join(SUPPORTED_EXTENSIONS)}"
        )

    if not text:
        raise ExtractionError(f"Could not extract any text from {file_path}")
    logger.info(f"    > Extracted {len(text)} characters from {os.path.basename(file_path)}")
    return text


def download(url: str, suffix: str = ".docx", verify=True) -> str:
    """Downloads a file from a URL to a temporary file and returns its path."""
    logger.info(f"Downloading from: {url}")
    try:
        resp = requests.get(url, timeout=15, verify=verify)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise RecordNotFoundError(f"Failed to download {url}: {e}") from e

    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        tmp.write(resp.content)
        return tmp.name
