"""Exceptions raised by the template editing core."""


class TemplateError(Exception):
    """Base class for template problems."""


class TemplateValidationError(TemplateError):
    """A snapshot breaks a structural rule and cannot be committed."""


class TemplateImportError(TemplateError):
    """An imported document is malformed and was rejected as a whole."""
