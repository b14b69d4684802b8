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
Exception hierarchy for CV Templater.

Local recoveries (asset writes, analysis fallbacks, missing sections) never
raise; these classes are for conditions that abort an operation.
"""


class CVTemplaterError(Exception):
    """Base class for every fatal condition raised by the package."""


class RecordNotFoundError(CVTemplaterError):
    """A template or CV document record (or its file) does not exist."""


class ContainerError(CVTemplaterError):
    """The office container is not a readable zip of XML parts."""


class AssetStoreError(CVTemplaterError):
    """Writing an extracted asset to the asset store failed."""


class ExtractionError(CVTemplaterError):
    """The AI extraction call failed or returned something unparseable."""


class DataValidationError(CVTemplaterError):
    """The extracted data object is malformed or still carries personal data."""
