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
Runtime configuration.

Settings are resolved once from the environment (and CLI flags) and handed to
each component's constructor; nothing here is a process-wide singleton.

CA bundle resolution order:
  1. Explicit override (--ca-bundle)
  2. REQUESTS_CA_BUNDLE
  3. CURL_CA_BUNDLE
  4. SSL_CERT_FILE
  5. System defaults (True, delegating to certifi or the OS trust store)
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MODELS = ["gemini-2.5-flash", "gemini-1.5-flash"]
CA_BUNDLE_ENV_VARS = ("REQUESTS_CA_BUNDLE", "CURL_CA_BUNDLE", "SSL_CERT_FILE")


@dataclass
class Settings:
    """Configuration shared by the pipeline, stores and LLM client."""
    content_root: Path = Path("user_content")
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    provider: str = "gemini"
    models: List[str] = field(default_factory=lambda: list(DEFAULT_MODELS))
    openai_model: str = "gpt-4o-mini"
    asset_bucket: Optional[str] = None
    asset_prefix: str = "template-assets"
    ca_bundle_override: Optional[str] = None

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        models = [m.strip() for m in env.get("CV_TEMPLATER_MODELS", "").split(",") if m.strip()]
        return cls(
            content_root=Path(env.get("CV_TEMPLATER_HOME", "user_content")),
            gemini_api_key=env.get("GEMINI_API_KEY") or None,
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            provider=env.get("CV_TEMPLATER_PROVIDER", "gemini"),
            models=models or list(DEFAULT_MODELS),
            openai_model=env.get("CV_TEMPLATER_OPENAI_MODEL", "gpt-4o-mini"),
            asset_bucket=env.get("CV_TEMPLATER_ASSET_BUCKET") or None,
        )

    @property
    def api_key(self) -> Optional[str]:
        if self.provider == "openai":
            return self.openai_api_key or self.gemini_api_key
        return self.gemini_api_key or self.openai_api_key

    # Directory layout under content_root

    @property
    def templates_dir(self) -> Path:
        return self.content_root / "templates"

    @property
    def uploads_dir(self) -> Path:
        return self.content_root / "uploads"

    @property
    def generated_dir(self) -> Path:
        return self.content_root / "generated"

    @property
    def assets_dir(self) -> Path:
        return self.content_root / "assets"

    @property
    def records_dir(self) -> Path:
        return self.content_root / "records"

    @property
    def logs_dir(self) -> Path:
        return self.content_root / "logs"

    def get_ca_bundle(self) -> str | bool:
        """
        Resolve the CA bundle to use for outbound HTTPS requests.

        Returns:
            str: Path to a CA bundle file, or
            bool: True to use the default system/certifi trust store.
        """
        if self.ca_bundle_override:
            return self.ca_bundle_override

        for var in CA_BUNDLE_ENV_VARS:
            value = os.environ.get(var)
            if value:
                logger.debug(f"Using CA bundle from {var}: {value}")
                return value

        return True

    def configure_ssl_env(self) -> None:
        """
        Export SSL_CERT_FILE when a custom bundle is configured, for the
        httpx-based SDKs (Google GenAI, OpenAI) that only read the environment.
        """
        bundle = self.get_ca_bundle()
        if isinstance(bundle, str) and os.environ.get("SSL_CERT_FILE") != bundle:
            os.environ["SSL_CERT_FILE"] = bundle
            logger.debug(f"Set SSL_CERT_FILE={bundle} for SDK clients")
