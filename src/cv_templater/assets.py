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
Embedded image extraction and the stores the images are written to.
"""

import logging
import posixpath
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

from docx.oxml.ns import qn

from cv_templater.errors import AssetStoreError
from cv_templater.markup import NS, emu_to_mm, paragraph_properties
from cv_templater.models import VisualAssetReference

logger = logging.getLogger(__name__)


def storage_key(extension: str) -> str:
    ext = extension.lstrip(".").lower() or "bin"
    return f"{time.time_ns()}.{ext}"


class LocalAssetStore:
    """Writes assets under a local directory."""

    def __init__(self, root):
        self.root = Path(root)

    def put(self, data: bytes, extension: str) -> str:
        key = storage_key(extension)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            (self.root / key).write_bytes(data)
        except OSError as e:
            raise AssetStoreError(f"Failed to write asset {key}: {e}") from e
        logger.debug(f"Stored asset {key} ({len(data)} bytes) in {self.root}")
        return key


class GCSAssetStore:
    """
    Uploads assets to a Google Cloud Storage bucket.
    gs://<bucket>/<prefix>/<key>
    """

    def __init__(self, bucket: str, prefix: str = "template-assets", client=None):
        self.bucket_name = bucket
        self.prefix = prefix.strip("/")
        self._client = client

    def _bucket(self):
        if self._client is None:
            from google.cloud import storage
            self._client = storage.Client()
        return self._client.bucket(self.bucket_name)

    def put(self, data: bytes, extension: str) -> str:
        key = storage_key(extension)
        blob_name = f"{self.prefix}/{key}" if self.prefix else key
        try:
            blob = self._bucket().blob(blob_name)
            blob.upload_from_string(data)
        except Exception as e:
            raise AssetStoreError(f"Failed to upload gs://{self.bucket_name}/{blob_name}: {e}") from e
        logger.info(f"    > Uploaded asset gs://{self.bucket_name}/{blob_name}")
        return blob_name


class AssetExtractor:
    """
    Finds w:drawing images in the header and body, stores their bytes and
    returns references in discovery order (header first).
    """

    def __init__(self, store, read_part: Callable[[str], Optional[bytes]]):
        self.store = store
        self.read_part = read_part

    def extract(self, header_tree, body_tree, header_rels: Dict[str, str],
                body_rels: Dict[str, str]) -> List[VisualAssetReference]:
        found = []
        for position, tree, rels in (("header", header_tree, header_rels), ("body", body_tree, body_rels)):
            if tree is None:
                continue
            for drawing in tree.iter(qn("w:drawing")):
                ref = self._extract_one(drawing, position, rels or {})
                if ref is not None:
                    found.append(ref)
        logger.debug(f"Extracted {len(found)} image asset(s)")
        return found

    def extract_logo(self, header_tree, body_tree, header_rels, body_rels) -> Optional[VisualAssetReference]:
        assets = self.extract(header_tree, body_tree, header_rels, body_rels)
        return assets[0] if assets else None

    def _extract_one(self, drawing, position: str, rels: Dict[str, str]) -> Optional[VisualAssetReference]:
        try:
            blip = drawing.find(".//a:blip", NS)
            rel_id = blip.get(qn("r:embed")) if blip is not None else None
            target = rels.get(rel_id) if rel_id else None
            if not target:
                logger.debug(f"Drawing without resolvable image (rId={rel_id}); skipping")
                return None

            data = self.read_part(target)
            if data is None:
                logger.warning(f"Image target {target} not found in container; skipping")
                return None

            extension = posixpath.splitext(target)[1].lstrip(".").lower()
            key = self.store.put(data, extension)

            width_mm, height_mm = _extent(drawing)
            return VisualAssetReference(
                position=position,
                width_mm=width_mm,
                height_mm=height_mm,
                wrap=_wrap_mode(drawing),
                alignment=_alignment(drawing),
                storage_path=key,
                extension=extension,
            )
        except Exception as e:
            logger.warning(f"Failed to extract image from {position}: {e}")
            return None


def _extent(drawing):
    extent = drawing.find(".//wp:extent", NS)
    if extent is None:
        return 0.0, 0.0
    return emu_to_mm(extent.get("cx", 0)), emu_to_mm(extent.get("cy", 0))


def _wrap_mode(drawing) -> str:
    anchor = drawing.find("wp:anchor", NS)
    if anchor is None:
        return "inline"
    if anchor.find("wp:wrapSquare", NS) is not None:
        return "square"
    if anchor.find("wp:wrapTight", NS) is not None or anchor.find("wp:wrapThrough", NS) is not None:
        return "tight"
    return "inline"


def _alignment(drawing) -> str:
    align = drawing.find("wp:anchor/wp:positionH/wp:align", NS)
    if align is not None and align.text:
        return align.text.strip()
    for ancestor in drawing.iterancestors(qn("w:p")):
        return paragraph_properties(ancestor.find(qn("w:pPr"))).get("alignment", "left")
    return "left"
