# Template Engine Module
# Jinja2 templates for the CTA wrapper and the chain payload block

from .renderer import TemplateRenderer

__all__ = ["TemplateRenderer"]
