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
Access to the parts of a .docx container.

A container is read once into memory. Parts are parsed lazily; parts that are
marked modified are re-serialized on save, every other entry is copied back
byte-for-byte in its original order.
"""

import io
import logging
import posixpath
import zipfile
from typing import Dict, List, Optional

from lxml import etree

from cv_templater.errors import ContainerError

logger = logging.getLogger(__name__)

DOCUMENT_PART = "word/document.xml"
STYLES_PART = "word/styles.xml"
RELS_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
HEADER_REL = "/header"
FOOTER_REL = "/footer"

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


def rels_part_for(part_name: str) -> str:
    """word/document.xml -> word/_rels/document.xml.rels"""
    folder, name = posixpath.split(part_name)
    return posixpath.join(folder, "_rels", f"{name}.rels")


class DocxContainer:
    """
    In-memory view of a WordprocessingML package.
    """

    def __init__(self, data: bytes):
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
            self._infos = self._zip.infolist()
            self._raw = {info.filename: self._zip.read(info) for info in self._infos}
        except (zipfile.BadZipFile, OSError, RuntimeError, ValueError) as e:
            raise ContainerError(f"Not a readable office container: {e}") from e

        if DOCUMENT_PART not in self._raw:
            raise ContainerError(f"Container has no {DOCUMENT_PART}")

        self._trees = {}
        self._modified = set()

    def has(self, name: str) -> bool:
        return name in self._raw

    def read(self, name: str) -> bytes:
        try:
            return self._raw[name]
        except KeyError:
            raise ContainerError(f"Missing part: {name}") from None

    def xml(self, name: str):
        """Parsed root element of an XML part (cached; edits mutate the cache)."""
        if name not in self._trees:
            try:
                self._trees[name] = etree.fromstring(self.read(name), _PARSER)
            except etree.XMLSyntaxError as e:
                raise ContainerError(f"Malformed XML in {name}: {e}") from e
        return self._trees[name]

    def optional_xml(self, name: str):
        return self.xml(name) if self.has(name) else None

    @property
    def document(self):
        return self.xml(DOCUMENT_PART)

    @property
    def styles(self):
        return self.optional_xml(STYLES_PART)

    def mark_modified(self, name: str) -> None:
        self._modified.add(name)

    # Relationships

    def relationships(self, part_name: str) -> List[Dict[str, str]]:
        """Relationships of a part, with targets resolved to container paths."""
        rels_name = rels_part_for(part_name)
        if not self.has(rels_name):
            return []
        folder = posixpath.dirname(part_name)
        result = []
        for rel in self.xml(rels_name).iter(f"{{{RELS_NS}}}Relationship"):
            target = rel.get("Target", "")
            external = rel.get("TargetMode") == "External"
            if not external:
                if target.startswith("/"):
                    target = target.lstrip("/")
                else:
                    target = posixpath.normpath(posixpath.join(folder, target))
            result.append({
                "id": rel.get("Id", ""),
                "type": rel.get("Type", ""),
                "target": target,
                "external": external,
            })
        return result

    def relationship_targets(self, part_name: str) -> Dict[str, str]:
        """rId -> internal path, internal targets only."""
        return {r["id"]: r["target"] for r in self.relationships(part_name) if not r["external"]}

    def _related_parts(self, suffix: str) -> List[str]:
        return [
            r["target"]
            for r in self.relationships(DOCUMENT_PART)
            if r["type"].endswith(suffix) and not r["external"] and self.has(r["target"])
        ]

    def header_parts(self) -> List[str]:
        return self._related_parts(HEADER_REL)

    def footer_parts(self) -> List[str]:
        return self._related_parts(FOOTER_REL)

    def first_footer(self) -> Optional[str]:
        parts = self.footer_parts()
        return parts[0] if parts else None

    # Output

    def to_bytes(self) -> bytes:
        """Rezips the container. Only modified parts are re-serialized."""
        out = io.BytesIO()
        with zipfile.ZipFile(out, "w") as zout:
            for info in self._infos:
                name = info.filename
                if name in self._modified and name in self._trees:
                    payload = etree.tostring(
                        self._trees[name], xml_declaration=True, encoding="UTF-8", standalone=True
                    )
                    logger.debug(f"Re-serialized part {name} ({len(payload)} bytes)")
                else:
                    payload = self._raw[name]
                zout.writestr(info, payload)
        return out.getvalue()
