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

import shutil
import tempfile
import unittest

from cv_templater.errors import CVTemplaterError, RecordNotFoundError
from cv_templater.store import RecordStore, Status


class TestRecordStore(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.store = RecordStore(self.test_dir)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_template_round_trip(self):
        record = self.store.create_template("Acme", "/tmp/acme.docx")
        record.structure = {"sections": [{"name": "PROFIL"}]}
        record.status = Status.PROCESSED.value
        self.store.save_template(record)

        loaded = self.store.get_template(record.id)
        self.assertEqual(loaded.name, "Acme")
        self.assertEqual(loaded.status, "processed")
        self.assertEqual(loaded.structure, {"sections": [{"name": "PROFIL"}]})
        self.assertEqual([t.id for t in self.store.list_templates()], [record.id])

    def test_missing_records(self):
        with self.assertRaises(RecordNotFoundError):
            self.store.get_template("nope")
        with self.assertRaises(RecordNotFoundError):
            self.store.get_cv("nope")

    def test_cv_defaults(self):
        record = self.store.create_cv("/tmp/cv.pdf", template_id="t1", file_type="pdf")
        loaded = self.store.get_cv(record.id)
        self.assertEqual(loaded.status, Status.PENDING.value)
        self.assertEqual(loaded.template_id, "t1")
        self.assertIsNone(loaded.extracted_data)

    def test_extracted_data_immutable_once_processed(self):
        record = self.store.create_cv("/tmp/cv.docx")
        record.extracted_data = {"header": {"trigram": "JDT"}}
        record.status = Status.PROCESSED.value
        self.store.save_cv(record)

        record.generated_file_path = "/tmp/out.docx"
        self.store.save_cv(record)

        record.extracted_data = {"header": {"trigram": "ABC"}}
        with self.assertRaises(CVTemplaterError):
            self.store.save_cv(record)
        self.assertEqual(self.store.get_cv(record.id).extracted_data, {"header": {"trigram": "JDT"}})

    def test_processing_log(self):
        self.store.log("cv1", "extraction", "ok", {"processing_time_ms": 12})
        self.store.log("cv2", "extraction", "Error: boom")
        self.assertEqual(len(self.store.read_log()), 2)
        entries = self.store.read_log("cv1")
        self.assertEqual(entries[0]["step"], "extraction")
        self.assertEqual(entries[0]["details"], {"processing_time_ms": 12})


if __name__ == '__main__':
    unittest.main()
