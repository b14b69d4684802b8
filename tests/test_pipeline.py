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

import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from docx import Document
from lxml import etree

from cv_templater.config import Settings
from cv_templater.container import DOCUMENT_PART
from cv_templater.errors import CVTemplaterError, DataValidationError, ExtractionError, RecordNotFoundError
from cv_templater.markup import iter_paragraphs, paragraph_text
from cv_templater.models import CVHeader, ExtractedCV
from cv_templater.pipeline import Pipeline, output_filename
from cv_templater.store import Status
from docx_factory import build_docx, read_part, text_para

RAW = {
    "personal": {"first_name": "Jean", "last_name": "Dupont", "title": "Ingénieur Data"},
    "skills": {"subcategories": [{"name": "Outils", "items": ["Docker", "Git"]}]},
    "missions": [],
}


class TestPipeline(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.settings = Settings(content_root=Path(self.test_dir))
        self.llm = MagicMock()
        self.llm.extract_cv.return_value = dict(RAW)
        self.pipeline = Pipeline(self.settings, llm_client=self.llm, asset_store=MagicMock())

        self.template_path = os.path.join(self.test_dir, "template.docx")
        with open(self.template_path, "wb") as f:
            f.write(build_docx(
                text_para("ABC", bold=True)
                + text_para("Titre du consultant")
                + text_para("Compétences", bold=True, color="#2563eb")
                + text_para("• Java")
            ))

        self.cv_path = os.path.join(self.test_dir, "cv.docx")
        doc = Document()
        doc.add_paragraph("Jean Dupont")
        doc.add_paragraph("Docker, Git")
        doc.save(self.cv_path)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_analyze_template(self):
        record = self.pipeline.analyze_template(self.template_path)
        self.assertEqual(record.status, Status.PROCESSED.value)
        self.assertEqual(record.name, "template")
        stored = self.pipeline.store.get_template(record.id)
        self.assertEqual(stored.structure["sections"][0]["name"], "COMPÉTENCES")

    def test_analyze_missing_template(self):
        with self.assertRaises(RecordNotFoundError):
            self.pipeline.analyze_template(os.path.join(self.test_dir, "missing.docx"))

    def test_process_cv_passes_template_sections(self):
        template = self.pipeline.analyze_template(self.template_path)
        record = self.pipeline.process_cv(self.cv_path, template.id)

        self.assertEqual(record.status, Status.PROCESSED.value)
        self.assertEqual(record.trigram, "JDT")
        self.assertIsNotNone(record.processing_time_ms)
        _, sections, _ = self.llm.extract_cv.call_args[0]
        self.assertEqual(sections, ["COMPÉTENCES"])
        self.assertNotIn("Dupont", str(record.extracted_data))
        self.assertEqual(self.pipeline.store.read_log(record.id)[-1]["step"], "extraction")

    def test_process_cv_records_error(self):
        self.llm.extract_cv.side_effect = ExtractionError("quota exceeded")
        with self.assertRaises(ExtractionError):
            self.pipeline.process_cv(self.cv_path)

        record = self.pipeline.store.list_cvs()[0]
        self.assertEqual(record.status, Status.ERROR.value)
        self.assertEqual(record.error_message, "quota exceeded")

    def test_process_cv_rejects_personal_data(self):
        self.llm.extract_cv.return_value = {"personal": {"trigram": "JDT"}, "languages": ["jean@example.com"]}
        with self.assertRaises(DataValidationError):
            self.pipeline.process_cv(self.cv_path)
        self.assertEqual(self.pipeline.store.list_cvs()[0].status, Status.ERROR.value)

    def test_process_cv_malformed_response_records_error(self):
        self.llm.extract_cv.return_value = {"personal": {"first_name": 5, "last_name": "Dupont"}}
        with self.assertRaises(DataValidationError):
            self.pipeline.process_cv(self.cv_path)

        record = self.pipeline.store.list_cvs()[0]
        self.assertEqual(record.status, Status.ERROR.value)
        self.assertTrue(record.error_message)

    def test_process_cv_unexpected_failure_records_error(self):
        self.llm.extract_cv.side_effect = RuntimeError("connection reset")
        with self.assertRaises(ExtractionError):
            self.pipeline.process_cv(self.cv_path)

        record = self.pipeline.store.list_cvs()[0]
        self.assertEqual(record.status, Status.ERROR.value)
        self.assertEqual(record.error_message, "connection reset")
        self.assertEqual(self.pipeline.store.read_log(record.id)[-1]["message"], "Error: connection reset")

    def test_generate_requires_processed_cv(self):
        record = self.pipeline.store.create_cv(self.cv_path)
        with self.assertRaises(CVTemplaterError):
            self.pipeline.generate_cv(record.id)

    def test_run_end_to_end(self):
        output_dir = os.path.join(self.test_dir, "out")
        template, record, output = self.pipeline.run(self.cv_path, self.template_path, output_dir)

        self.assertTrue(output.startswith(output_dir))
        self.assertTrue(os.path.basename(output).startswith("JDT_Ing_nieur_Data_"))
        self.assertEqual(record.generated_file_path, output)

        with open(output, "rb") as f:
            root = etree.fromstring(read_part(f.read(), DOCUMENT_PART))
        texts = [paragraph_text(p) for p in iter_paragraphs(root)]
        self.assertEqual(texts, ["JDT", "Ingénieur Data", "Compétences", "• Docker", "• Git"])


class TestOutputFilename(unittest.TestCase):
    def test_name(self):
        data = ExtractedCV(header=CVHeader(trigram="JDT", title="Lead Dev / Data"))
        self.assertEqual(output_filename(data, millis=42), "JDT_Lead_Dev___Data_42.docx")

    def test_fallbacks(self):
        self.assertEqual(output_filename(ExtractedCV(), millis=1), "CV_Document_1.docx")


if __name__ == '__main__':
    unittest.main()
