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
JSON-file persistence for template and CV document records.

Layout under the records directory:
  templates/<id>.json
  cv_documents/<id>.json
  processing_log.jsonl
"""

import os
import json
import uuid
import logging
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from cv_templater.errors import CVTemplaterError, RecordNotFoundError

logger = logging.getLogger(__name__)


class Status(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    PROCESSED = "processed"
    ERROR = "error"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class TemplateRecord:
    id: str
    name: str
    file_path: str
    file_type: str = "docx"
    status: str = Status.PENDING.value
    error_message: Optional[str] = None
    structure: Optional[Dict[str, Any]] = None
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)


@dataclass
class CVDocumentRecord:
    id: str
    file_path: str
    file_type: str = "docx"
    template_id: Optional[str] = None
    status: str = Status.PENDING.value
    error_message: Optional[str] = None
    trigram: Optional[str] = None
    extracted_data: Optional[Dict[str, Any]] = None
    generated_file_path: Optional[str] = None
    processing_time_ms: Optional[int] = None
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)


class RecordStore:
    """
    Stores records as one JSON file each. Not safe for concurrent writers to
    the same record.
    """

    def __init__(self, root):
        self.root = Path(root)
        self.templates_dir = self.root / "templates"
        self.cvs_dir = self.root / "cv_documents"
        self.log_file = self.root / "processing_log.jsonl"

    # Generic helpers

    def _write(self, path: Path, payload: Dict):
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        os.replace(tmp, path)

    def _read(self, path: Path, kind: str, record_id: str) -> Dict:
        if not path.exists():
            raise RecordNotFoundError(f"{kind} '{record_id}' not found")
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    @staticmethod
    def _build(cls, raw: Dict):
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in raw.items() if k in names})

    # Templates

    def create_template(self, name: str, file_path: str, file_type: str = "docx") -> TemplateRecord:
        record = TemplateRecord(id=uuid.uuid4().hex, name=name, file_path=str(file_path), file_type=file_type)
        self.save_template(record)
        logger.debug(f"Created template record {record.id} for {file_path}")
        return record

    def get_template(self, template_id: str) -> TemplateRecord:
        raw = self._read(self.templates_dir / f"{template_id}.json", "Template", template_id)
        return self._build(TemplateRecord, raw)

    def save_template(self, record: TemplateRecord) -> TemplateRecord:
        record.updated_at = _now()
        self._write(self.templates_dir / f"{record.id}.json", asdict(record))
        return record

    def list_templates(self) -> List[TemplateRecord]:
        return [self.get_template(p.stem) for p in sorted(self.templates_dir.glob("*.json"))]

    # CV documents

    def create_cv(self, file_path: str, template_id: Optional[str] = None, file_type: str = "docx") -> CVDocumentRecord:
        record = CVDocumentRecord(
            id=uuid.uuid4().hex, file_path=str(file_path), file_type=file_type, template_id=template_id
        )
        self.save_cv(record)
        logger.debug(f"Created CV record {record.id} for {file_path}")
        return record

    def get_cv(self, cv_id: str) -> CVDocumentRecord:
        raw = self._read(self.cvs_dir / f"{cv_id}.json", "CV document", cv_id)
        return self._build(CVDocumentRecord, raw)

    def save_cv(self, record: CVDocumentRecord) -> CVDocumentRecord:
        path = self.cvs_dir / f"{record.id}.json"
        if path.exists():
            stored = self.get_cv(record.id)
            if stored.status == Status.PROCESSED.value and stored.extracted_data != record.extracted_data:
                raise CVTemplaterError(f"Extracted data of CV '{record.id}' is immutable once processed")
        record.updated_at = _now()
        self._write(path, asdict(record))
        return record

    def list_cvs(self) -> List[CVDocumentRecord]:
        return [self.get_cv(p.stem) for p in sorted(self.cvs_dir.glob("*.json"))]

    # Processing log

    def log(self, cv_id: str, step: str, message: str, details: Optional[Dict] = None):
        entry = {"cv_document_id": cv_id, "step": step, "message": message, "details": details or {}, "at": _now()}
        self.root.mkdir(parents=True, exist_ok=True)
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")

    def read_log(self, cv_id: Optional[str] = None) -> List[Dict]:
        if not self.log_file.exists():
            return []
        with open(self.log_file, "r", encoding="utf-8") as f:
            entries = [json.loads(line) for line in f if line.strip()]
        if cv_id is None:
            return entries
        return [e for e in entries if e.get("cv_document_id") == cv_id]
