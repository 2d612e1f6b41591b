"""Document obligations: types, templates, the template engine and expiry tracking."""

from hr_compliance.documents.models import (
    Document,
    DocumentTemplate,
    DocumentType,
    TemplateItem,
)

__all__ = ["Document", "DocumentTemplate", "DocumentType", "TemplateItem"]
