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

import json
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch, MagicMock

import requests
from docx import Document
from docx.shared import Pt

from cv_templater import ingest
from cv_templater.errors import ExtractionError, RecordNotFoundError


class TestIngest(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def _make_docx(self):
        path = os.path.join(self.test_dir, "cv.docx")
        doc = Document()
        heading = doc.add_paragraph().add_run("EXPÉRIENCE")
        heading.bold = True
        heading.font.size = Pt(14)
        doc.add_paragraph("")
        doc.add_paragraph("• Migration   vers Spark")
        doc.save(path)
        return path

    def test_read_docx_structured(self):
        paragraphs = ingest.read_docx_structured(self._make_docx())
        self.assertEqual(len(paragraphs), 2)
        self.assertEqual(paragraphs[0]["text"], "EXPÉRIENCE")
        self.assertTrue(paragraphs[0]["style"]["bold"])
        self.assertEqual(paragraphs[0]["style"]["size"], 14.0)
        self.assertEqual(paragraphs[1]["text"], "Migration vers Spark")
        self.assertTrue(paragraphs[1]["style"]["bullet"])

    def test_read_docx_missing_file(self):
        content = ingest.read_docx(os.path.join(self.test_dir, "nonexistent.docx"))
        self.assertEqual(content, "")

    def test_read_document_docx_is_json(self):
        text = ingest.read_document(self._make_docx())
        self.assertEqual(json.loads(text)[0]["text"], "EXPÉRIENCE")

    def test_read_document_missing(self):
        with self.assertRaises(RecordNotFoundError):
            ingest.read_document(os.path.join(self.test_dir, "nope.docx"))

    def test_read_document_unsupported(self):
        path = os.path.join(self.test_dir, "cv.txt")
        with open(path, "w") as f:
            f.write("hello")
        with self.assertRaises(ExtractionError):
            ingest.read_document(path)

    def test_read_document_empty_docx(self):
        path = os.path.join(self.test_dir, "empty.docx")
        Document().save(path)
        with self.assertRaises(ExtractionError):
            ingest.read_document(path)

    @patch('cv_templater.ingest.PdfReader')
    def test_read_pdf(self, mock_reader):
        page = MagicMock()
        page.extract_text.return_value = "● Python\n\n  Spark   SQL "
        mock_reader.return_value.pages = [page]
        self.assertEqual(ingest.read_pdf("cv.pdf"), "Python\nSpark SQL")

    @patch('cv_templater.ingest.requests.get')
    def test_download(self, mock_get):
        mock_response = MagicMock()
        mock_response.content = b"PK\x03\x04"
        mock_get.return_value = mock_response

        path = ingest.download("https://example.com/template.docx", verify="/etc/ssl/corp.pem")
        try:
            with open(path, "rb") as f:
                self.assertEqual(f.read(), b"PK\x03\x04")
            self.assertTrue(path.endswith(".docx"))
        finally:
            os.remove(path)
        mock_get.assert_called_once_with("https://example.com/template.docx", timeout=15, verify="/etc/ssl/corp.pem")

    @patch('cv_templater.ingest.requests.get')
    def test_download_failure(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        with self.assertRaises(RecordNotFoundError):
            ingest.download("https://example.com/template.docx")


if __name__ == '__main__':
    unittest.main()
