"""
Google Docs Template Engine

Finds template markers in Google Docs and plans the document mutations that
fill them: {{variables}}, {{#ASSET_SECTION:Name}} blocks and
[[section:Name]] table markers.
"""

from .planner import plan_section_tables, plan_substitution
from .variables import extract_and_tokenize

__all__ = [
    "extract_and_tokenize",
    "plan_substitution",
    "plan_section_tables",
]
