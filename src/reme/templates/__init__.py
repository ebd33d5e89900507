"""Project template models and loader exports."""

from .loader import TemplateLoadError, TemplateLoader, TemplateNotFoundError, create_project_from_template
from .models import Template, TemplateFile

__all__ = [
    "Template",
    "TemplateFile",
    "TemplateLoadError",
    "TemplateLoader",
    "TemplateNotFoundError",
    "create_project_from_template",
]
