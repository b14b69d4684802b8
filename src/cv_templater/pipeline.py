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
Orchestrates template analysis, CV extraction and CV generation, recording
status against the persisted records.
"""

import os
import re
import time
import logging
from pathlib import Path
from typing import Optional, Tuple

from cv_templater.analyzer import analyze_container
from cv_templater.anonymize import anonymize
from cv_templater.assets import GCSAssetStore, LocalAssetStore
from cv_templater.config import Settings
from cv_templater.errors import CVTemplaterError, ExtractionError, RecordNotFoundError
from cv_templater.ingest import read_document
from cv_templater.llm_client import LLMClient
from cv_templater.models import ExtractedCV, TemplateStructure
from cv_templater.repopulator import ContentRepopulator
from cv_templater.store import CVDocumentRecord, RecordStore, Status, TemplateRecord

logger = logging.getLogger(__name__)


def file_type_of(path) -> str:
    return os.path.splitext(str(path))[1].lower().lstrip(".") or "docx"


def make_asset_store(settings: Settings):
    if settings.asset_bucket:
        return GCSAssetStore(settings.asset_bucket, settings.asset_prefix)
    return LocalAssetStore(settings.assets_dir)


def output_filename(data: ExtractedCV, millis: Optional[int] = None) -> str:
    """{trigram}_{title}_{millis}.docx with the title reduced to [A-Za-z0-9_]."""
    trigram = data.header.trigram or "CV"
    title = re.sub(r"[^a-zA-Z0-9]", "_", data.header.title) if data.header.title else "Document"
    millis = int(time.time() * 1000) if millis is None else millis
    return f"{trigram}_{title}_{millis}.docx"


def _read_bytes(path, kind: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        raise RecordNotFoundError(f"{kind} file not found: {path}") from None


class Pipeline:
    """
    Entry points used by the CLI. Collaborators are injected so tests can
    substitute fakes.
    """

    def __init__(self, settings: Settings, store: Optional[RecordStore] = None,
                 llm_client: Optional[LLMClient] = None, asset_store=None,
                 repopulator: Optional[ContentRepopulator] = None):
        self.settings = settings
        self.store = store or RecordStore(settings.records_dir)
        self._llm_client = llm_client
        self.asset_store = asset_store if asset_store is not None else make_asset_store(settings)
        self.repopulator = repopulator or ContentRepopulator()

    @property
    def llm_client(self) -> LLMClient:
        if self._llm_client is None:
            self._llm_client = LLMClient(self.settings)
        return self._llm_client

    def analyze_template(self, template_path, name: Optional[str] = None) -> TemplateRecord:
        """
        Analyzes a template file and stores its structure. Analysis failures
        yield the default structure, so only a missing file is an error.
        """
        data = _read_bytes(template_path, "Template")
        record = self.store.create_template(
            name or Path(template_path).stem, str(template_path), file_type_of(template_path)
        )
        record.status = Status.ANALYZING.value
        self.store.save_template(record)

        logger.info(f"Analyzing template: {template_path}")
        structure = analyze_container(data, record.file_type, self.asset_store)

        record.structure = structure.to_dict()
        record.status = Status.PROCESSED.value
        self.store.save_template(record)
        logger.info(f"    > Template stored as {record.id}")
        return record

    def template_structure(self, template_id: Optional[str]) -> TemplateStructure:
        if not template_id:
            return TemplateStructure.default()
        return TemplateStructure.from_dict(self.store.get_template(template_id).structure)

    def process_cv(self, cv_path, template_id: Optional[str] = None) -> CVDocumentRecord:
        """
        Extracts and anonymizes a CV. Failures mark the record as 'error' with
        the message, then propagate.
        """
        structure = self.template_structure(template_id)
        record = self.store.create_cv(str(cv_path), template_id, file_type_of(cv_path))
        record.status = Status.ANALYZING.value
        self.store.save_cv(record)
        start = time.time()

        try:
            logger.info(f"Reading CV: {cv_path}")
            text = read_document(str(cv_path))

            logger.info("Extracting CV data (this may take a moment)...")
            raw = self.llm_client.extract_cv(text, structure.section_names(), structure.skill_subcategories)
            data = anonymize(raw, structure)
        except CVTemplaterError as e:
            self._record_failure(record, e)
            raise
        except Exception as e:
            self._record_failure(record, e)
            raise ExtractionError(f"CV processing failed: {e}") from e

        record.extracted_data = data.to_dict()
        record.trigram = data.header.trigram
        record.processing_time_ms = int((time.time() - start) * 1000)
        record.status = Status.PROCESSED.value
        self.store.save_cv(record)
        self.store.log(
            record.id, "extraction", "CV data extracted successfully",
            {"processing_time_ms": record.processing_time_ms},
        )
        logger.info(f"    > CV stored as {record.id} (trigram {record.trigram or 'n/a'})")
        return record

    def _record_failure(self, record: CVDocumentRecord, error: Exception):
        record.status = Status.ERROR.value
        record.error_message = str(error)
        self.store.save_cv(record)
        self.store.log(record.id, "extraction", f"Error: {error}")

    def generate_cv(self, cv_id: str, template_id: Optional[str] = None,
                    output_dir: Optional[str] = None) -> str:
        """
        Repopulates the template with a processed CV's data. Returns the path
        of the generated file; nothing is written on failure.
        """
        record = self.store.get_cv(cv_id)
        if record.status != Status.PROCESSED.value or record.extracted_data is None:
            raise CVTemplaterError(f"CV '{cv_id}' has not been processed (status: {record.status})")

        template_id = template_id or record.template_id
        if not template_id:
            raise RecordNotFoundError(f"No template associated with CV '{cv_id}'")
        template = self.store.get_template(template_id)

        data = ExtractedCV.from_dict(record.extracted_data)
        structure = TemplateStructure.from_dict(template.structure)
        template_bytes = _read_bytes(template.file_path, "Template")

        logger.info(f"Generating CV from template '{template.name}'")
        output = self.repopulator.repopulate(template_bytes, structure, data)

        out_dir = Path(output_dir) if output_dir else self.settings.generated_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        out_path = out_dir / output_filename(data)
        out_path.write_bytes(output)

        record.generated_file_path = str(out_path)
        self.store.save_cv(record)
        self.store.log(record.id, "generation", "CV generated", {"file": str(out_path)})
        logger.info(f"    > Generated: {out_path}")
        return str(out_path)

    def run(self, cv_path, template_path, output_dir: Optional[str] = None) -> Tuple[TemplateRecord, CVDocumentRecord, str]:
        template = self.analyze_template(template_path)
        record = self.process_cv(cv_path, template.id)
        output = self.generate_cv(record.id, template.id, output_dir)
        return template, self.store.get_cv(record.id), output
