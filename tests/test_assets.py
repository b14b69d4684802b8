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
from unittest.mock import MagicMock

from lxml import etree

from cv_templater.assets import AssetExtractor, GCSAssetStore, LocalAssetStore, storage_key
from cv_templater.errors import AssetStoreError
from docx_factory import PNG_BYTES, document_xml, drawing, para, part_xml


def _tree(xml):
    return etree.fromstring(xml.encode("utf-8"))


class TestLocalAssetStore(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_put_writes_file(self):
        store = LocalAssetStore(os.path.join(self.test_dir, "assets"))
        key = store.put(b"data", ".PNG")
        self.assertTrue(key.endswith(".png"))
        with open(os.path.join(self.test_dir, "assets", key), "rb") as f:
            self.assertEqual(f.read(), b"data")

    def test_storage_key_without_extension(self):
        self.assertTrue(storage_key("").endswith(".bin"))

    def test_unwritable_root(self):
        blocker = os.path.join(self.test_dir, "file")
        with open(blocker, "w") as f:
            f.write("x")
        with self.assertRaises(AssetStoreError):
            LocalAssetStore(os.path.join(blocker, "assets")).put(b"data", "png")


class TestGCSAssetStore(unittest.TestCase):
    def test_put_uploads_under_prefix(self):
        client = MagicMock()
        store = GCSAssetStore("my-bucket", prefix="/logos/", client=client)
        key = store.put(b"data", "png")
        self.assertTrue(key.startswith("logos/"))
        client.bucket.assert_called_once_with("my-bucket")
        client.bucket.return_value.blob.assert_called_once_with(key)
        client.bucket.return_value.blob.return_value.upload_from_string.assert_called_once_with(b"data")

    def test_upload_failure(self):
        client = MagicMock()
        client.bucket.return_value.blob.return_value.upload_from_string.side_effect = RuntimeError("denied")
        with self.assertRaises(AssetStoreError):
            GCSAssetStore("my-bucket", client=client).put(b"data", "png")


class TestAssetExtractor(unittest.TestCase):
    def setUp(self):
        self.store = MagicMock()
        self.store.put.return_value = "123.png"
        self.parts = {"word/media/image1.png": PNG_BYTES}
        self.extractor = AssetExtractor(self.store, read_part=self.parts.get)

    def test_header_logo_with_square_wrap(self):
        header = _tree(part_xml("hdr", para(drawing("rId10", 40, 40, wrap="square", align="right"))))
        ref = self.extractor.extract_logo(header, None, {"rId10": "word/media/image1.png"}, {})
        self.assertEqual(ref.position, "header")
        self.assertEqual(ref.width_mm, 40.0)
        self.assertEqual(ref.height_mm, 40.0)
        self.assertEqual(ref.wrap, "square")
        self.assertEqual(ref.alignment, "right")
        self.assertEqual(ref.storage_path, "123.png")
        self.assertEqual(ref.extension, "png")
        self.store.put.assert_called_once_with(PNG_BYTES, "png")

    def test_inline_body_image_takes_paragraph_alignment(self):
        body = _tree(document_xml(para(drawing("rId10", 25, 10, wrap="inline"), align="center")))
        ref = self.extractor.extract_logo(None, body, {}, {"rId10": "word/media/image1.png"})
        self.assertEqual(ref.position, "body")
        self.assertEqual(ref.wrap, "inline")
        self.assertEqual(ref.alignment, "center")

    def test_header_is_searched_before_body(self):
        header = _tree(part_xml("hdr", para(drawing("rId10", 40, 40))))
        body = _tree(document_xml(para(drawing("rId10", 20, 20))))
        rels = {"rId10": "word/media/image1.png"}
        refs = self.extractor.extract(header, body, rels, rels)
        self.assertEqual([r.position for r in refs], ["header", "body"])

    def test_unresolvable_image_is_skipped(self):
        header = _tree(part_xml("hdr", para(drawing("rId99", 40, 40))))
        self.assertIsNone(self.extractor.extract_logo(header, None, {}, {}))
        self.store.put.assert_not_called()

    def test_store_failure_is_isolated(self):
        self.store.put.side_effect = [AssetStoreError("full"), "456.png"]
        header = _tree(part_xml("hdr", para(drawing("rId10", 40, 40))))
        body = _tree(document_xml(para(drawing("rId10", 20, 20))))
        rels = {"rId10": "word/media/image1.png"}
        refs = self.extractor.extract(header, body, rels, rels)
        self.assertEqual(len(refs), 1)
        self.assertEqual(refs[0].position, "body")
        self.assertEqual(refs[0].storage_path, "456.png")


if __name__ == '__main__':
    unittest.main()
