"""
Template Renderer for auto-inserted CTA markup.
Handles Jinja2 template loading and rendering.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

if TYPE_CHECKING:
    from ..chain.models import ChainDescriptor, ChainEntry


class TemplateRenderer:
    """
    Renders the CTA wrapper and the chain payload block.

    Usage:
        renderer = TemplateRenderer()
        html = renderer.render_wrapper(entry, chain_index=0, chain_length=2)
    """

    def __init__(self, templates_dir: Optional[Path] = None):
        """
        Initialize the template renderer.

        Args:
            templates_dir: Path to templates directory.
                          Defaults to ./templates relative to this file.
        """
        if templates_dir is None:
            templates_dir = Path(__file__).parent / "templates"

        self.templates_dir = templates_dir
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "xml", "jinja2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_wrapper(
        self,
        entry: ChainEntry,
        chain_index: Optional[int] = None,
        chain_length: Optional[int] = None,
        hidden: bool = False,
        include_condition: bool = False,
    ) -> str:
        """
        Render the wrapper element around a chain entry's content.

        Args:
            entry: Chain entry whose sanitized content goes inside the wrapper
            chain_index: Position of the entry in its chain (view-time only)
            chain_length: Total chain length (view-time only)
            hidden: Add an inline display:none (build-time conditional entries)
            include_condition: Carry the compiled condition as a data attribute

        Returns:
            Rendered HTML string
        """
        storage_condition = None
        if include_condition:
            storage_condition = json.dumps(
                entry.compiled_condition_expr, separators=(",", ":"), ensure_ascii=False
            )
        return self.render_from_dict(
            "wrapper.html.jinja2",
            {
                "cta_id": entry.cta_id,
                "content": entry.content,
                "chain_index": chain_index,
                "chain_length": chain_length,
                "storage_condition": storage_condition,
                "has_conditions": entry.has_conditions,
                "hidden": hidden,
            },
        )

    def render_payload(self, descriptor: ChainDescriptor, element_id: str) -> str:
        """
        Render the JSON data block that carries a chain to view time.

        Args:
            descriptor: Materialized fallback chain
            element_id: DOM id the orchestrator looks the block up by

        Returns:
            Rendered <script type="application/json"> element
        """
        return self.render_from_dict(
            "payload.html.jinja2",
            {"payload": descriptor.model_dump(mode="json"), "element_id": element_id},
        )

    def render_from_dict(self, template_name: str, context: dict[str, Any]) -> str:
        """
        Render a template from a raw dictionary.

        Args:
            template_name: Template file name
            context: Template variables as dictionary

        Returns:
            Rendered string
        """
        template = self.env.get_template(template_name)
        return template.render(**context)
