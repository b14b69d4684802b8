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
Client for the AI extraction step.
Supports Google AI Studio (google-genai) and OpenAI.
"""

import re
import json
import logging
from typing import Dict, List, Optional, Sequence

from cv_templater import defaults
from cv_templater.config import Settings
from cv_templater.errors import ExtractionError

# Logger is configured in main.py
logger = logging.getLogger(__name__)

SECTION_SYNONYMS = {
    "Compétences": ["compétences", "skills", "technologies", "savoir-faire", "outils"],
    "Expérience": ["expérience", "expériences", "parcours", "missions", "experience", "work history"],
    "Formations & Certifications": [
        "formation", "formations", "certification", "certifications", "diplôme",
        "diplome", "education", "études", "etudes", "study", "studies",
    ],
}

MOCK_RESPONSE = """
{
    "personal": {
        "first_name": "Jean",
        "last_name": "Dupont",
        "trigram": "JDT",
        "title": "Ingénieur Data Senior",
        "years_experience": 8,
        "email_found": "jean.dupont@example.com",
        "phone_found": "06 12 34 56 78",
        "linkedin_found": "linkedin.com/in/jeandupont"
    },
    "commercial_contact": {"text": "Contact Commercial", "enabled": true},
    "skills": {
        "subcategories": [
            {"name": "Langage/BDD", "items": ["Python, SQL, Spark"]},
            {"name": "Outils", "items": ["Airflow, Docker, Git"]}
        ],
        "languages": ["Anglais: courant"],
        "certifications": ["AWS Certified Data Analytics"]
    },
    "education": [
        {"degree": "Master Informatique", "institution": "Université de Lyon", "year": "2015"}
    ],
    "missions": [
        {
            "client": "Banque Exemple",
            "date_start": "01-2021",
            "date_end": "Actuellement",
            "role": "Lead Data Engineer",
            "context": "Refonte de la plateforme de données.",
            "achievements": ["Migration vers Spark", "Mise en place de la CI"],
            "environment": ["Python", "Spark", "AWS"]
        }
    ]
}
"""


class LLMClient:
    """
    Abstraction layer for LLM providers.
    Sends CV text with the extraction/anonymization prompt and returns the raw JSON.
    """
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()
        self.provider = self.settings.provider
        self.api_key = self.settings.api_key
        if not self.api_key:
            logger.warning("No API key found. Extraction will fall back to Mock Data.")

    def build_prompt(self, section_names: Sequence[str], skill_subcategories: Sequence[str]) -> str:
        """
        System prompt for extraction. Section names and skill subcategories come
        from the template so the response maps onto it.
        """
        section_names = list(section_names) or list(SECTION_SYNONYMS)
        subcategories = list(skill_subcategories) or list(defaults.SKILL_SUBCATEGORIES)
        synonyms = "\n".join(f"   - {name} : {', '.join(words)}" for name, words in SECTION_SYNONYMS.items())

        return f"""Tu es un expert en extraction et anonymisation de CV. Analyse ce CV et extrais TOUTES les informations en les ANONYMISANT, en respectant la structure du template suivant : {json.dumps(section_names, ensure_ascii=False)}.

ÉTAPES D'ANONYMISATION CRITIQUES :
1. Créer un TRIGRAMME : première lettre du prénom + première lettre du nom + dernière lettre du nom (tout en MAJUSCULE)
   Exemple : Jean DUPONT → JDT
2. SUPPRIMER toutes informations personnelles : nom complet, prénom, email, téléphone, adresse, photos, QR codes, liens personnels (LinkedIn, GitHub, etc.)
3. Identifier les sections en utilisant les noms EXACTS du template ({', '.join(section_names)}) et leurs synonymes :
{synonyms}
4. Extraire les sous-catégories de compétences ({', '.join(subcategories)}) avec leurs items séparés par des virgules, SANS puces ni sauts de ligne. Exemple : "Langage/BDD: Spark, Hive, Hadoop".
5. Supprimer tout caractère parasite comme 'É', '•', '°', ou autres devant les compétences.
6. Extraire les compétences, formations et missions professionnelles.

Retourne UNIQUEMENT un JSON avec cette structure EXACTE :
{{
  "personal": {{
    "first_name": "prénom extrait (à ne pas inclure dans le CV final)",
    "last_name": "nom extrait (à ne pas inclure dans le CV final)",
    "trigram": "TRIGRAMME (ex: JDT)",
    "title": "titre professionnel",
    "years_experience": nombre_années
  }},
  "skills": {{
    "subcategories": [{{"name": "Langage/BDD", "items": ["compétence1, compétence2"]}}],
    "languages": ["langue1: niveau"],
    "certifications": ["cert1"]
  }},
  "education": [{{"degree": "diplôme", "institution": "établissement", "year": "année", "location": "ville"}}],
  "missions": [
    {{
      "client": "nom client",
      "date_start": "MM-YYYY",
      "date_end": "MM-YYYY ou 'Actuellement'",
      "role": "poste occupé",
      "location": "ville",
      "context": "contexte de la mission",
      "achievements": ["réalisation1"],
      "environment": ["tech1"]
    }}
  ]
}}"""

    def _call_llm(self, system_prompt: str, content: str) -> str:
        """
        Mockable wrapper for LLM calls.
        Without an API key the mock response is returned; with one, any
        provider failure raises ExtractionError.
        """
        if not self.api_key:
            logger.warning("[!] Using MOCK DATA for demonstration (API keys missing).")
            return MOCK_RESPONSE

        # Ensure custom CA bundle is visible to httpx-based SDKs
        self.settings.configure_ssl_env()

        try:
            if self.provider == "openai" or self.api_key.startswith("sk-"):
                return self._call_openai(system_prompt, content)
            return self._call_gemini(system_prompt, content)
        except ImportError as e:
            raise ExtractionError(f"Missing dependency for provider '{self.provider}': {e}") from e
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"LLM call failed: {e}") from e

    def _call_openai(self, system_prompt: str, content: str) -> str:
        import openai
        client = openai.OpenAI(api_key=self.api_key)
        logger.info(f"Calling OpenAI model: {self.settings.openai_model}")
        response = client.chat.completions.create(
            model=self.settings.openai_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": content},
            ],
            temperature=0.1,
        )
        return response.choices[0].message.content

    def _call_gemini(self, system_prompt: str, content: str) -> str:
        from google import genai

        client = genai.Client(api_key=self.api_key)
        prompt = f"{system_prompt}\n\n{content}"

        last_exception = None
        for model_name in self.settings.models:
            try:
                logger.info(f"Attempting model: {model_name}")
                response = client.models.generate_content(model=model_name, contents=prompt)
                return response.text
            except Exception as e:
                logger.warning(f"Model {model_name} failed: {e}")
                last_exception = e
        raise ExtractionError(f"All models failed: {last_exception}")

    def extract_cv(self, text: str, section_names: List[str], skill_subcategories: List[str]) -> Dict:
        """
        Runs extraction on CV text. Returns the collaborator's raw JSON object.
        """
        system_prompt = self.build_prompt(section_names, skill_subcategories)
        response = self._call_llm(system_prompt, f"Texte extrait du CV avec styles :\n\n{text}")
        if not response:
            raise ExtractionError("No content in AI response")

        try:
            data = json.loads(self._clean_json(response))
        except json.JSONDecodeError as e:
            logger.error("Failed to decode LLM response for CV extraction")
            raise ExtractionError(f"Failed to parse AI extraction result: {e}") from e

        if not isinstance(data, dict):
            raise ExtractionError("AI extraction result is not a JSON object")
        return data

    def _clean_json(self, text: str) -> str:
        """Helper to strip code fences (or surrounding prose) from LLM output"""
        if "```json" in text:
            text = text.split("```json")[1].split("```")[0]
        elif "```" in text:
            text = text.split("```")[1].split("```")[0]
        else:
            match = re.search(r"\{[\s\S]*\}", text)
            if match:
                text = match.group(0)
        return text.strip()
