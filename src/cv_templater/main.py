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
Main entry point for the CV Templater CLI.
"""

import argparse
import json
import os
import sys
import logging
from collections import deque
from pathlib import Path

from rich.console import Console
from rich.live import Live
from rich.text import Text

from cv_templater.config import Settings
from cv_templater.errors import CVTemplaterError
from cv_templater.ingest import download
from cv_templater.pipeline import Pipeline

logger = logging.getLogger(__name__)


class StatusLogHandler(logging.Handler):
    """
    Custom handler to store the last N logs for a scrolling status display.
    """
    def __init__(self, console, maxlen=5):
        super().__init__()
        self.console = console
        self.maxlen = maxlen
        self.logs = deque(maxlen=maxlen)
        self.live = None

    def emit(self, record):
        try:
            msg = self.format(record)
            self.logs.append(msg)
            if self.live:
                self.live.update(self.get_renderable())
        except Exception:
            self.handleError(record)

    def get_renderable(self):
        return Text("\n".join(self.logs), style="dim grey50")


def setup_logging(verbosity: int, quiet: bool = False, custom_handler: logging.Handler = None,
                  log_dir: Path = Path("user_content/logs")):
    """
    Configures logging:
    - File: <log_dir>/cv_templater.log (DEBUG)
    - Console: -q=ERROR, -v=WARNING, -vv=INFO, -vvv=DEBUG
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "cv_templater.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    if quiet:
        level = logging.ERROR
    elif verbosity == 1:
        level = logging.WARNING
    elif verbosity == 2:
        level = logging.INFO
    elif verbosity >= 3:
        level = logging.DEBUG
    else:
        level = logging.ERROR

    handler = custom_handler or logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter('%(message)s'))
    root.addHandler(handler)

    # Silence some noisy libs if not in super debug
    if verbosity < 3:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def upload_to_gcs(local_path: str, gcs_path: str) -> str:
    """
    Uploads a file to Google Cloud Storage.
    gcs_path should be in format: gs://bucket-name/path/to/object
    A path ending in '/' (or a bare bucket) is treated as a directory.
    """
    if not gcs_path.startswith("gs://"):
        raise CVTemplaterError(f"Invalid GCS path: {gcs_path}")

    bucket_name, _, blob_name = gcs_path[5:].partition("/")
    if not blob_name or blob_name.endswith("/"):
        blob_name = f"{blob_name}{os.path.basename(local_path)}"

    try:
        from google.cloud import storage
    except ImportError:
        raise CVTemplaterError("google-cloud-storage not installed. Cannot upload to GCS.") from None

    logger.info(f"Uploading to GCS: gs://{bucket_name}/{blob_name}")
    try:
        client = storage.Client()
        client.bucket(bucket_name).blob(blob_name).upload_from_filename(local_path)
    except Exception as e:
        raise CVTemplaterError(f"Failed to upload to GCS: {e}") from e
    logger.info(f"    > Upload success: https://storage.cloud.google.com/{bucket_name}/{blob_name}")
    return f"gs://{bucket_name}/{blob_name}"


def _resolve_path(path: str, subdir: Path) -> str:
    """
    Resolves a path.
    1. If it exists as is, or is a URL, return it.
    2. If it exists in <content root>/<subdir>/<path>, return that.
    3. Return original path (to let downstream fail/handle it).
    """
    if not path:
        return path
    if os.path.exists(path) or path.startswith(("http://", "https://")):
        return path

    candidate = subdir / path
    if candidate.exists():
        logger.info(f"Resolved '{path}' to '{candidate}'")
        return str(candidate)
    return path


def _fetch_template(path: str, settings: Settings) -> str:
    resolved = _resolve_path(path, settings.templates_dir)
    if resolved.startswith(("http://", "https://")):
        return download(resolved, verify=settings.get_ca_bundle())
    return resolved


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Anonymized CV generation from branded templates")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase output verbosity (-v=WARNING, -vv=INFO, -vvv=DEBUG)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress status output (ERROR only)")
    parser.add_argument("--home", help="Content root (default: $CV_TEMPLATER_HOME or ./user_content)")
    parser.add_argument("--provider", choices=["gemini", "openai"], help="LLM provider for extraction")
    parser.add_argument("--ca-bundle", help="Path to a custom CA certificate bundle for HTTPS verification (proxy environments)")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("analyze", help="Analyze a template and store its structure")
    p.add_argument("template", help="Path or URL to a DOCX template")
    p.add_argument("--name", help="Template name (default: file name)")
    p.add_argument("--json", action="store_true", help="Print the learned structure as JSON")

    p = sub.add_parser("extract", help="Extract and anonymize a CV")
    p.add_argument("cv", help="Path to the CV (DOCX or PDF)")
    p.add_argument("--template-id", help="Template whose sections guide extraction")
    p.add_argument("--json", action="store_true", help="Print the extracted data as JSON")

    p = sub.add_parser("generate", help="Generate a CV document from a processed CV")
    p.add_argument("cv_id", help="CV document id returned by 'extract'")
    p.add_argument("--template-id", help="Template id (default: the CV's template)")
    p.add_argument("--output-dir", help="Output directory (default: <content root>/generated)")
    p.add_argument("--upload", help="gs://bucket/path to copy the output to")

    p = sub.add_parser("run", help="Analyze, extract and generate in one go")
    p.add_argument("--cv", required=True, help="Path to the CV (DOCX or PDF)")
    p.add_argument("--template", required=True, help="Path or URL to a DOCX template")
    p.add_argument("--output-dir", help="Output directory (default: <content root>/generated)")
    p.add_argument("--upload", help="gs://bucket/path to copy the output to")
    return parser


def main(argv=None):
    try:
        sys.exit(_main_cli(argv))
    except KeyboardInterrupt:
        # Use stderr so it captures attention even if stdout is redirected or rich
        sys.stderr.write("\n\033[31m[-] Cancelled by user\033[0m\n")
        sys.exit(130)


def _main_cli(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    if args.home:
        settings.content_root = Path(args.home)
    if args.provider:
        settings.provider = args.provider
    if args.ca_bundle:
        settings.ca_bundle_override = args.ca_bundle

    console = Console()

    if args.quiet or args.verbose:
        setup_logging(args.verbose, quiet=args.quiet, log_dir=settings.logs_dir)
        return _run_guarded(args, settings, console)

    # Default mode: scrolling Rich status log
    status_handler = StatusLogHandler(console)
    setup_logging(2, custom_handler=status_handler, log_dir=settings.logs_dir)
    with Live(status_handler.get_renderable(), refresh_per_second=4, console=console) as live:
        status_handler.live = live
        logger.info("--- CV Templater ---")
        return _run_guarded(args, settings, console)


def _run_guarded(args, settings: Settings, console: Console) -> int:
    try:
        _run_command(args, settings, console)
    except CVTemplaterError as e:
        logger.error(f"Error: {e}")
        return 1
    logger.info("Done!")
    return 0


def _run_command(args, settings: Settings, console: Console):
    pipeline = Pipeline(settings)

    if args.command == "analyze":
        record = pipeline.analyze_template(_fetch_template(args.template, settings), name=args.name)
        console.print(f"Template id: [bold]{record.id}[/bold]")
        if args.json:
            console.print_json(json.dumps(record.structure, ensure_ascii=False))

    elif args.command == "extract":
        cv_path = _resolve_path(args.cv, settings.uploads_dir)
        record = pipeline.process_cv(cv_path, args.template_id)
        console.print(f"CV id: [bold]{record.id}[/bold] (trigram {record.trigram or 'n/a'})")
        if args.json:
            console.print_json(json.dumps(record.extracted_data, ensure_ascii=False))

    elif args.command == "generate":
        output = pipeline.generate_cv(args.cv_id, args.template_id, args.output_dir)
        console.print(f"Generated: [bold]{output}[/bold]")
        if args.upload:
            upload_to_gcs(output, args.upload)

    elif args.command == "run":
        cv_path = _resolve_path(args.cv, settings.uploads_dir)
        _, record, output = pipeline.run(cv_path, _fetch_template(args.template, settings), args.output_dir)
        console.print(f"CV id: [bold]{record.id}[/bold]  Generated: [bold]{output}[/bold]")
        if args.upload:
            upload_to_gcs(output, args.upload)


if __name__ == "__main__":
    main()
