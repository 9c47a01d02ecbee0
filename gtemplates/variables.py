"""
Variable resolution and template scanning.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Union

from gtemplates.document_model import DocumentBody
from gtemplates.markers import (
    AssetSectionBlock,
    SectionTableMarker,
    Variable,
    VariableType,
    find_malformed_markers,
    tokenize,
)
from gtemplates.text_extractor import LinearText, extract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedVariable:
    name: str
    placeholder: str
    type: VariableType

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "placeholder": self.placeholder, "type": self.type.value}


def resolve(tokens: Iterable[Any]) -> List[ResolvedVariable]:
    """
    Deduplicate variable tokens by exact name, keeping first-seen order.

    The first occurrence's literal placeholder and type win; later
    occurrences of the same name are dropped. Non-variable tokens are
    ignored so a full token stream can be passed in.
    """
    resolved: List[ResolvedVariable] = []
    seen = set()
    for token in tokens:
        if not isinstance(token, Variable) or token.name in seen:
            continue
        seen.add(token.name)
        resolved.append(
            ResolvedVariable(name=token.name, placeholder=token.raw_placeholder, type=token.type)
        )
    return resolved


@dataclass(frozen=True)
class TemplateScan:
    """Result of extracting and tokenizing one document fetch."""
    linear_text: LinearText
    variables: List[ResolvedVariable]
    variable_tokens: List[Variable]
    asset_section_templates: List[AssetSectionBlock]
    section_markers: List[SectionTableMarker]
    diagnostics: list = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "variables": [v.to_dict() for v in self.variables],
            "asset_sections": [
                {"name": b.section_name, "placeholder": b.raw_block, "template": b.inner_template}
                for b in self.asset_section_templates
            ],
            "section_markers": [m.section_name for m in self.section_markers],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


def scan_text(linear_text: LinearText) -> TemplateScan:
    """Tokenize already-extracted text into a TemplateScan."""
    tokens = tokenize(linear_text.text)
    variable_tokens = [t for t in tokens if isinstance(t, Variable)]
    return TemplateScan(
        linear_text=linear_text,
        variables=resolve(variable_tokens),
        variable_tokens=variable_tokens,
        asset_section_templates=[t for t in tokens if isinstance(t, AssetSectionBlock)],
        section_markers=[t for t in tokens if isinstance(t, SectionTableMarker)],
        diagnostics=find_malformed_markers(linear_text.text),
    )


def extract_and_tokenize(document_body: Union[DocumentBody, Dict[str, Any]]) -> TemplateScan:
    """
    Extract a document's text and find every template marker in it.

    Args:
        document_body: Parsed DocumentBody or raw document/body JSON

    Returns:
        TemplateScan with resolved variables, asset section blocks and
        section table markers
    """
    scan = scan_text(extract(document_body))
    logger.info(
        f"Found {len(scan.variables)} variable(s), {len(scan.asset_section_templates)} asset section(s), "
        f"{len(scan.section_markers)} section marker(s)"
    )
    return scan
