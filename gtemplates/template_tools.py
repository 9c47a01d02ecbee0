"""
Google Docs Template MCP Tools

This module provides MCP tools for filling Google Docs templates: scanning a
template for markers, substituting variables and asset sections, building
section tables, and generating/exporting finished documents.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

from core.config import (
    ASSET_SECTION_MIN_PADDING,
    SECTION_BODY_FONT_SIZE,
    SECTION_TITLE_FONT_SIZE,
)
from core.google_services import get_google_services
from core.server import server
from core.utils import handle_http_errors
from gtemplates.pipeline import TemplatePipeline, document_link
from gtemplates.sections import (
    AssetSection,
    Section,
    parse_template_fields,
    render_asset_sections_preview,
    validate_asset_section,
)
from gtemplates.store import GoogleDocumentStore
from gtemplates.variables import scan_text

logger = logging.getLogger(__name__)


def _pipeline(tab_id: Optional[str] = None) -> TemplatePipeline:
    docs_service, drive_service = get_google_services()
    return TemplatePipeline(
        GoogleDocumentStore(docs_service, drive_service),
        tab_id=tab_id,
        min_padding=ASSET_SECTION_MIN_PADDING,
        title_font_size=SECTION_TITLE_FONT_SIZE,
        body_font_size=SECTION_BODY_FONT_SIZE,
    )


def parse_asset_sections(asset_sections: Optional[List[Dict[str, Any]]]) -> List[AssetSection]:
    """Build AssetSections from tool input, logging validation problems."""
    parsed = [AssetSection.from_dict(data) for data in asset_sections or []]
    for section in parsed:
        problems = validate_asset_section(section)
        if problems:
            logger.warning(f"Asset section '{section.title}' has problems: {'; '.join(problems)}")
    return parsed


def parse_sections(sections: Optional[Dict[str, Dict[str, Any]]]) -> Dict[str, Section]:
    return {name: Section.from_dict(data) for name, data in (sections or {}).items()}


@server.tool()
@handle_http_errors("scan_template", is_read_only=True)
async def scan_template(document_id: str, tab_id: Optional[str] = None) -> str:
    """
    Find every template marker in a Google Doc.

    Reports variables ({{name}} or {{name:type}}), asset section blocks
    ({{#ASSET_SECTION:Name}}...{{/#ASSET_SECTION:Name}}) with the field
    names their template uses, [[section:Name]] table markers, and
    diagnostics for malformed blocks.

    Args:
        document_id: ID of the template document
        tab_id: Optional tab to scan (defaults to the first tab)

    Returns:
        str: JSON description of the template's markers
    """
    logger.info(f"[scan_template] Doc={document_id}")
    snapshot = await _pipeline(tab_id).snapshot(document_id)
    scan = scan_text(snapshot.linear_text)

    result = scan.to_dict()
    for block in result["asset_sections"]:
        block["fields"] = parse_template_fields(block["template"])
    result.update(
        {
            "document_id": document_id,
            "title": snapshot.title,
            "revision_id": snapshot.revision_id,
            "document_link": document_link(document_id),
        }
    )
    return json.dumps(result, indent=2)


@server.tool()
@handle_http_errors("fill_template_variables")
async def fill_template_variables(
    document_id: str,
    values: Dict[str, str],
    asset_sections: Optional[List[Dict[str, Any]]] = None,
    tab_id: Optional[str] = None,
) -> str:
    """
    Replace template variables and asset section blocks in a Google Doc.

    Every spelling of each variable ({{name}}, {{ name }}, {{name:type}}) is
    replaced. Asset section blocks are replaced by all supplied asset
    sections rendered as aligned "key : value" text; blocks are left as-is
    when no asset sections are supplied.

    Args:
        document_id: ID of the document to fill (usually a copy of a template)
        values: Variable name -> value
        asset_sections: Optional list of {"title": str, "fields": [{"key": str, "value": str}]}
        tab_id: Optional tab to fill (defaults to the first tab)

    Returns:
        str: JSON summary of the applied batch
    """
    logger.info(f"[fill_template_variables] Doc={document_id}, variables={len(values)}")
    parsed = parse_asset_sections(asset_sections)
    result = await _pipeline(tab_id).fill_variables(document_id, values, parsed)

    response = result.to_dict()
    if parsed:
        response["asset_sections_preview"] = render_asset_sections_preview(parsed)
    return json.dumps(response, indent=2)


@server.tool()
@handle_http_errors("insert_section_tables")
async def insert_section_tables(
    document_id: str,
    sections: Dict[str, Dict[str, Any]],
    tab_id: Optional[str] = None,
) -> str:
    """
    Replace [[section:Name]] markers with formatted 2-column tables.

    Each table has the section title merged across the first row, then one
    row per key/value pair (bold key, regular value), without borders.
    Markers with no matching data, or whose data has no title or no
    complete key/value pair, are left in place and reported as skipped.

    Args:
        document_id: ID of the document
        sections: Section name -> {"title": str, "key_value_pairs": [{"key": str, "value": str}]}
        tab_id: Optional tab (defaults to the first tab)

    Returns:
        str: JSON listing rendered and skipped sections
    """
    logger.info(f"[insert_section_tables] Doc={document_id}, sections={list(sections)}")
    result = await _pipeline(tab_id).render_section_tables(document_id, parse_sections(sections))

    response = result.to_dict()
    response["document_link"] = document_link(document_id)
    return json.dumps(response, indent=2)


@server.tool()
@handle_http_errors("generate_document_from_template")
async def generate_document_from_template(
    template_id: str,
    title: str,
    values: Optional[Dict[str, str]] = None,
    asset_sections: Optional[List[Dict[str, Any]]] = None,
    sections: Optional[Dict[str, Dict[str, Any]]] = None,
) -> str:
    """
    Create a filled document from a template.

    Copies the template, substitutes variables and asset sections in the
    copy, then builds section tables. The template itself is not modified.

    Args:
        template_id: ID of the template document to copy
        title: Title of the new document
        values: Variable name -> value
        asset_sections: Optional list of {"title": str, "fields": [{"key": str, "value": str}]}
        sections: Optional section name -> {"title": str, "key_value_pairs": [...]}

    Returns:
        str: JSON with the new document's ID and link
    """
    logger.info(f"[generate_document_from_template] Template={template_id}, title='{title}'")
    generated = await _pipeline().generate_document(
        template_id,
        title,
        values=values or {},
        asset_sections=parse_asset_sections(asset_sections),
        sections=parse_sections(sections),
    )
    return json.dumps(generated.to_dict(), indent=2)


@server.tool()
@handle_http_errors("export_document_pdf", is_read_only=True)
async def export_document_pdf(document_id: str, output_path: str) -> str:
    """
    Export a Google Doc as a PDF file.

    Args:
        document_id: ID of the document to export
        output_path: Local path the PDF is written to

    Returns:
        str: Confirmation with the file path and size
    """
    logger.info(f"[export_document_pdf] Doc={document_id}, path={output_path}")
    content = await _pipeline().export_pdf(document_id)

    directory = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(directory, exist_ok=True)
    with open(output_path, "wb") as f:
        f.write(content)

    return f"Exported document {document_id} to {output_path} ({len(content):,} bytes)."
