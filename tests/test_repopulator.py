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

import unittest

from docx.oxml.ns import qn
from lxml import etree

from cv_templater.analyzer import analyze_container
from cv_templater.container import DOCUMENT_PART
from cv_templater.errors import ContainerError, DataValidationError
from cv_templater.markup import iter_paragraphs, paragraph_runs, paragraph_text, run_text
from cv_templater.models import ExtractedCV, SectionDescriptor, TemplateStructure
from cv_templater.repopulator import ContentRepopulator, ParagraphArena, clone_with_text
from docx_factory import build_docx, document_xml, para, part_names, read_part, run, text_para

BLUE = "#2563eb"

SKILL_EXEMPLAR = para(run("Java", color="#333333"), run(" - niveau expert", italic=True), num_id="1")

TEMPLATE_BODY = (
    text_para("ABC", bold=True)
    + text_para("Ingénieur Data Senior")
    + text_para("Compétences", bold=True, color=BLUE)
    + SKILL_EXEMPLAR
    + "<w:p/>"
    + text_para("Expérience", bold=True)
    + text_para("Dev - Ancien client (01/2010 - 01/2012)", bold=True)
    + text_para("Autre mission")
    + text_para("Formation", bold=True)
    + text_para("Licence - Université (2008)")
)


def _structure():
    structure = TemplateStructure.default()
    structure.sections = [
        SectionDescriptor(name="COMPÉTENCES", title="Compétences", kind="skills"),
        SectionDescriptor(name="EXPÉRIENCE", title="Expérience", kind="experience"),
        SectionDescriptor(name="FORMATION", title="Formation", kind="education"),
    ]
    return structure


def _data(**overrides):
    raw = {
        "header": {"trigram": "JDT", "title": "Ingénieur Data"},
        "skills": [{"subcategory": "Langage/BDD", "items": ["Python", "Go"]}],
        "missions": [{"client": "Banque", "role": "Lead", "start": "01/2021", "end": "Actuellement"}],
        "education": [{"degree": "Master", "institution": "Lyon", "year": "2015"}],
    }
    raw.update(overrides)
    return ExtractedCV.from_dict(raw)


def _paragraphs(data):
    root = etree.fromstring(read_part(data, DOCUMENT_PART))
    return list(iter_paragraphs(root))


def _texts(data):
    return [paragraph_text(p) for p in _paragraphs(data)]


class TestContentRepopulator(unittest.TestCase):
    def setUp(self):
        self.template = build_docx(TEMPLATE_BODY, header=text_para("Contact Commercial", bold=True))
        self.repopulator = ContentRepopulator()

    def test_full_repopulation(self):
        out = self.repopulator.repopulate(self.template, _structure(), _data())
        self.assertEqual(_texts(out), [
            "JDT",
            "Ingénieur Data",
            "Compétences",
            "Python - niveau expert",
            "Go - niveau expert",
            "",
            "Expérience",
            "Lead - Banque (01/2021 - Actuellement)",
            "Formation",
            "Master - Lyon (2015)",
        ])

    def test_skill_clones_keep_exemplar_markup(self):
        out = self.repopulator.repopulate(self.template, _structure(), _data())
        paragraphs = _paragraphs(out)
        exemplar = etree.fromstring(document_xml(SKILL_EXEMPLAR).encode("utf-8")).find(f".//{qn('w:p')}")

        for p, item in zip(paragraphs[3:5], ["Python", "Go"]):
            runs = paragraph_runs(p)
            self.assertEqual(run_text(runs[0]), item)
            self.assertEqual(run_text(runs[1]), " - niveau expert")
            self.assertEqual(
                etree.tostring(runs[0].find(qn("w:rPr"))),
                etree.tostring(exemplar.find(f"{qn('w:r')}/{qn('w:rPr')}")),
            )
            self.assertIsNotNone(p.find(f"{qn('w:pPr')}/{qn('w:numPr')}"))

    def test_placeholders_when_identity_missing(self):
        data = _data(header={})
        out = self.repopulator.repopulate(self.template, _structure(), data)
        texts = _texts(out)
        self.assertEqual(texts[0], "XXX")
        self.assertEqual(texts[1], "Professionnel")

    def test_untouched_parts_are_byte_identical(self):
        out = self.repopulator.repopulate(self.template, _structure(), _data())
        self.assertEqual(part_names(out), part_names(self.template))
        for name in part_names(self.template):
            if name == DOCUMENT_PART:
                continue
            self.assertEqual(read_part(out, name), read_part(self.template, name))

    def test_template_bytes_not_modified(self):
        before = bytes(self.template)
        self.repopulator.repopulate(self.template, _structure(), _data())
        self.assertEqual(self.template, before)

    def test_heading_matched_case_insensitively(self):
        structure = _structure()
        structure.sections = [SectionDescriptor(name="COMPÉTENCES", title="COMPÉTENCES", kind="skills")]
        out = self.repopulator.repopulate(self.template, structure, _data())
        self.assertIn("Go - niveau expert", _texts(out))

    def test_kind_inferred_from_title(self):
        structure = _structure()
        structure.sections = [SectionDescriptor(name="COMPÉTENCES", title="Compétences")]
        out = self.repopulator.repopulate(self.template, structure, _data())
        self.assertIn("Python - niveau expert", _texts(out))

    def test_missing_section_is_skipped(self):
        structure = _structure()
        structure.sections.append(SectionDescriptor(name="CERTIFICATIONS", title="Certifications", kind="education"))
        out = self.repopulator.repopulate(self.template, structure, _data())
        self.assertEqual(_texts(out).count("Master - Lyon (2015)"), 1)

    def _education_template(self, *headings):
        body = ""
        for heading, exemplar in headings:
            body += text_para(heading, bold=True) + text_para(exemplar)
        sections = [
            SectionDescriptor(name=heading.upper(), title=heading, kind="education") for heading, _ in headings
        ]
        structure = TemplateStructure.default()
        structure.sections = sections
        return build_docx(body), structure

    def test_education_and_certification_sections_render_their_own_lists(self):
        template, structure = self._education_template(
            ("FORMATION", "Licence - Université (2008)"), ("CERTIFICATIONS", "AWS SA"),
        )
        out = self.repopulator.repopulate(template, structure, _data(certifications=["GCP Architect"]))
        self.assertEqual(_texts(out), ["FORMATION", "Master - Lyon (2015)", "CERTIFICATIONS", "GCP Architect"])

    def test_certification_section_without_data_left_unchanged(self):
        template, structure = self._education_template(
            ("FORMATION", "Licence - Université (2008)"), ("CERTIFICATIONS", "AWS SA"),
        )
        out = self.repopulator.repopulate(template, structure, _data())
        texts = _texts(out)
        self.assertEqual(texts.count("Master - Lyon (2015)"), 1)
        self.assertEqual(texts, ["FORMATION", "Master - Lyon (2015)", "CERTIFICATIONS", "AWS SA"])

    def test_combined_heading_takes_education_and_certifications(self):
        template, structure = self._education_template(("Formations & Certifications", "Licence"))
        out = self.repopulator.repopulate(template, structure, _data(certifications=["GCP Architect"]))
        self.assertEqual(
            _texts(out), ["Formations & Certifications", "Master - Lyon (2015)", "GCP Architect"]
        )

    def test_education_rendered_once_across_headings(self):
        template, structure = self._education_template(("Formation", "Licence"), ("Diplômes", "BTS"))
        out = self.repopulator.repopulate(template, structure, _data())
        self.assertEqual(_texts(out), ["Formation", "Master - Lyon (2015)", "Diplômes", "BTS"])

    def test_open_ended_mission_has_no_dangling_separator(self):
        data = _data(missions=[{"client": "Banque", "role": "Lead", "start": "01/2021"}])
        out = self.repopulator.repopulate(self.template, _structure(), data)
        self.assertIn("Lead - Banque (01/2021)", _texts(out))

    def test_empty_lists_leave_document_unchanged(self):
        template = build_docx(
            text_para("Compétences", bold=True) + SKILL_EXEMPLAR + text_para("Formation") + text_para("Licence")
        )
        data = ExtractedCV.from_dict({"header": {"title": "Architecte"}})
        out = self.repopulator.repopulate(template, _structure(), data)
        self.assertEqual(read_part(out, DOCUMENT_PART), read_part(template, DOCUMENT_PART))

    def test_accepts_raw_dict(self):
        out = self.repopulator.repopulate(self.template, _structure(), _data().to_dict())
        self.assertEqual(_texts(out)[0], "JDT")

    def test_malformed_container(self):
        with self.assertRaises(ContainerError):
            self.repopulator.repopulate(b"not a zip", _structure(), _data())

    def test_personal_data_rejected(self):
        data = _data(missions=[{"client": "Banque", "context": "Contact: jean.dupont@example.com"}])
        with self.assertRaises(DataValidationError):
            self.repopulator.repopulate(self.template, _structure(), data)

    def test_invalid_trigram_rejected(self):
        with self.assertRaises(DataValidationError):
            self.repopulator.repopulate(self.template, _structure(), _data(header={"trigram": "jd"}))

    def test_round_trip_with_analyzed_structure(self):
        structure = analyze_container(self.template)
        self.assertEqual(structure.section_names(), ["COMPÉTENCES", "EXPÉRIENCE", "FORMATION"])
        out = self.repopulator.repopulate(self.template, structure, _data())
        self.assertEqual(_texts(out)[3:5], ["Python - niveau expert", "Go - niveau expert"])


class TestParagraphArena(unittest.TestCase):
    def _arena(self, body):
        return ParagraphArena(etree.fromstring(document_xml(body).encode("utf-8")))

    def test_region_stops_at_table(self):
        body = (
            text_para("Compétences")
            + text_para("Java")
            + '<w:tbl><w:tr><w:tc><w:p><w:r><w:t>cell</w:t></w:r></w:p></w:tc></w:tr></w:tbl>'
        )
        arena = self._arena(body)
        self.assertEqual(arena.region(0, lambda t: False), (1, 2))

    def test_region_without_exemplar(self):
        arena = self._arena(text_para("Compétences") + "<w:p/>" + text_para("Formation"))
        self.assertIsNone(arena.region(0, lambda t: t == "Formation"))

    def test_clone_keeps_bullet_prefix(self):
        arena = self._arena(text_para("• Java"))
        clone = clone_with_text(arena.nodes[0], "Python")
        self.assertEqual(paragraph_text(clone), "• Python")

    def test_clone_drops_bookmarks(self):
        arena = self._arena(
            '<w:p><w:bookmarkStart w:id="0" w:name="skills"/><w:r><w:t>Java</w:t></w:r>'
            '<w:bookmarkEnd w:id="0"/></w:p>'
        )
        clone = clone_with_text(arena.nodes[0], "Python")
        self.assertIsNone(clone.find(qn("w:bookmarkStart")))
        self.assertIsNone(clone.find(qn("w:bookmarkEnd")))
        self.assertIsNotNone(arena.nodes[0].find(qn("w:bookmarkStart")))


if __name__ == '__main__':
    unittest.main()
