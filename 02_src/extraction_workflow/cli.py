"""CLI interface for the extraction workflow.

Lists templates or runs the whole workflow for one parsed document: template
selection or field analysis, schema generation, extraction, save and export.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .core.catalog import TemplateCatalog, template_association
from .core.export import FileExportSink
from .core.folders import DocumentServiceFolderResolver
from .core.orchestrator import ExtractionPage
from .core.service_client import HttpExtractionClient
from .core.state import DiskHandoffStore, MemoryHandoffStore, store_extraction_context
from .core.template_selection import TemplateSelectionCoordinator
from .core.workflow import ExtractionWorkflow, WorkflowStep
from .schemas.config import ServiceConfig, WorkflowConfig
from .schemas.document import Document, OrgContext

LOG_FORMAT = "%(asctime)s | %(name)s | %(message)s"
LOG_DATEFMT = "%H:%M:%S"

logger = logging.getLogger(__name__)


class WorkflowFailed(Exception):
    """Raised by run_workflow when a step does not succeed."""


def setup_logging(log_level: str, log_file: Optional[Path] = None) -> None:
    """Setup logging: console + optional file handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file (UTF-8). If None, console only.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stdout,
        force=True,
    )

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        logging.getLogger().addHandler(fh)


def parse_field_list(raw: Optional[str]) -> List[str]:
    """Split a comma-separated field list, dropping blanks."""
    if not raw:
        return []
    return [name.strip() for name in raw.split(",") if name.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="extraction-workflow",
        description="Run the document field-extraction workflow against the extraction service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  extraction-workflow templates --folder Invoices
  extraction-workflow run invoice_001.pdf --org-name "Acme Corp" --org-id 1 --folder Invoices --all-fields
  extraction-workflow run invoice_001.pdf --org-name "Acme Corp" --org-id 1 --folder Invoices \\
      --template inv-template --save --export-dir ./exports

Service endpoints come from EXTRACTION_API_URL / DOCUMENT_API_URL (a .env file is loaded).
        """,
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Also log to this file")

    sub = parser.add_subparsers(dest="command", required=True)

    templates = sub.add_parser("templates", help="List saved extraction templates")
    templates.add_argument("--folder", type=str, default=None, help="Only templates of this folder")

    run = sub.add_parser("run", help="Run the extraction workflow for a document")
    run.add_argument("document_name", type=str, help="Document file name, e.g. invoice_001.pdf")
    run.add_argument("--document-id", type=str, default=None, help="Document id (default: the name)")
    run.add_argument("--org-name", type=str, required=True, help="Organization name")
    run.add_argument("--org-id", type=str, required=True, help="Organization id")
    run.add_argument("--folder", type=str, default=None, help="Folder name of the document")
    run.add_argument("--folder-id", type=str, default=None, help="Folder id, resolved when --folder is absent")
    run.add_argument("--type-hint", type=str, default=None, help="Document type hint, e.g. invoice")

    choice = run.add_mutually_exclusive_group()
    choice.add_argument("--template", type=str, default=None, help="Reuse a saved template")
    choice.add_argument("--fields", type=str, default=None, help="Comma-separated field names to extract")
    choice.add_argument("--all-fields", action="store_true", help="Extract every discovered field")

    run.add_argument("--template-name", type=str, default=None, help="Name for the generated template")
    run.add_argument("--no-save-template", action="store_true", help="Do not save the generated schema")
    run.add_argument("--save", action="store_true", help="Save the extracted data")
    run.add_argument("--export-dir", type=Path, default=None, help="Export the result as Excel into this dir")
    run.add_argument("--state-dir", type=Path, default=None, help="Keep the handoff store on disk here")

    return parser


def list_templates(client: HttpExtractionClient, folder: Optional[str]) -> int:
    catalog = TemplateCatalog(client)
    if not catalog.refresh():
        print(f"Error: {catalog.error}", file=sys.stderr)
        return 1

    templates = catalog.filter_by_folder(folder) if folder else catalog.templates
    for t in templates:
        print(f"{t.name}\t{t.document_type}\t{t.field_count} fields\t{template_association(t) or '-'}")
    print(f"{len(templates)} template(s)")
    return 0


def _check(ok: bool, workflow: ExtractionWorkflow, what: str) -> None:
    if not ok:
        raise WorkflowFailed(f"{what} failed: {workflow.error or 'unknown error'}")


def run_workflow(
    args: argparse.Namespace,
    client: HttpExtractionClient,
    config: WorkflowConfig,
) -> ExtractionWorkflow:
    """Drive one document through the workflow using the page orchestrator.

    Raises:
        WorkflowFailed: If any step does not succeed
    """
    org = OrgContext(org_id=args.org_id, org_name=args.org_name)
    resolver = DocumentServiceFolderResolver(default_folder=config.default_folder)
    document = Document(
        id=args.document_id or args.document_name,
        name=args.document_name,
        folder_id=args.folder_id,
        folder_name=args.folder,
    )
    folder_name = resolver.resolve(document, org.org_id)

    store = DiskHandoffStore(config.state_dir) if config.state_dir else MemoryHandoffStore()
    store_extraction_context(store, document.id, document, None, folder_name)

    workflow = ExtractionWorkflow(
        client,
        org=org,
        folder_resolver=resolver,
        export_sink=FileExportSink(config.export_dir),
    )
    catalog = TemplateCatalog(client)
    coordinator = TemplateSelectionCoordinator(catalog)
    page = ExtractionPage(document.id, store, workflow, coordinator)

    if not page.initialize():
        raise WorkflowFailed(page.init_error or "initialization failed")

    if page.show_template_selection:
        template = catalog.get(args.template) if args.template else None
        if template is not None and template in coordinator.filtered_templates:
            coordinator.select_template(template)
            if not coordinator.proceed_with_template():
                raise WorkflowFailed(f"Template '{args.template}' could not be used: {coordinator.error}")
        else:
            if args.template:
                logger.warning(f"Template '{args.template}' is not available for folder '{folder_name}'")
            coordinator.proceed_with_analyze()
    elif args.template:
        template = catalog.get(args.template)
        if template is None:
            raise WorkflowFailed(f"Template '{args.template}' not found")
        _check(workflow.select_template(template), workflow, "Loading template")
        workflow.go_to_step(WorkflowStep.EXTRACT)

    if workflow.step == WorkflowStep.ANALYZE:
        if args.type_hint:
            workflow.document_type_hint = args.type_hint
        _check(workflow.analyze_fields(), workflow, "Field analysis")

        wanted = parse_field_list(args.fields)
        if args.all_fields or not wanted:
            workflow.select_all_fields()
        else:
            for field in workflow.discovered_fields + workflow.line_item_fields:
                if field.field_name in wanted and not workflow.selection.is_selected(field.field_name):
                    workflow.toggle_field_selection(field)

        template_name = args.template_name or f"{workflow.document_type or 'document'}-{folder_name}"
        _check(
            workflow.generate_schema(template_name, save_template=not args.no_save_template),
            workflow,
            "Schema generation",
        )

    _check(workflow.extract_data(), workflow, "Extraction")

    if args.save:
        _check(workflow.save_extracted_data(), workflow, "Saving")
    if args.export_dir is not None:
        _check(workflow.export_to_excel(), workflow, "Export")

    return workflow


def print_summary(workflow: ExtractionWorkflow) -> None:
    print()
    print("=" * 60)
    print("Extraction completed successfully!")
    print("=" * 60)
    print(f"Document:        {workflow.document.name if workflow.document else '-'}")
    print(f"Template:        {workflow.active_template_name or '-'}")
    print(f"Job id:          {workflow.extraction_job_id}")
    print(f"Fields:          {workflow.extracted_field_count}")
    if workflow.token_usage is not None:
        print(f"Tokens:          {workflow.token_usage.total_tokens}")
    if workflow.last_export_path is not None:
        print(f"Export:          {workflow.last_export_path}")
    print("=" * 60)
    for key, value in (workflow.extracted_data or {}).items():
        print(f"  {key}: {value}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        0 on success, 1 on error
    """
    args = build_parser().parse_args(argv)

    try:
        load_dotenv()
        setup_logging(args.log_level, args.log_file)

        client = HttpExtractionClient(ServiceConfig())

        if args.command == "templates":
            return list_templates(client, args.folder)

        config = WorkflowConfig(
            state_dir=args.state_dir,
            export_dir=args.export_dir or Path("."),
            log_level=args.log_level,
        )
        workflow = run_workflow(args, client, config)
        print_summary(workflow)
        return 0

    except WorkflowFailed as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nExtraction interrupted by user", file=sys.stderr)
        return 1

    except Exception as e:
        logger.exception(f"Error during extraction: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
