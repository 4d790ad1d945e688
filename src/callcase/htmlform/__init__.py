"""HTML forms for wrapped functions.

- form: field inference and rendering
- handler: ``FormHandler`` serving the form and calling the function on submit
"""

from .form import FileLike, FormField, Option, UploadedFile, form_fields, render_field, render_form
from .handler import FormHandler, first_form_values

__all__ = [
    "FileLike", "UploadedFile", "Option", "FormField", "form_fields", "render_form", "render_field",
    "FormHandler", "first_form_values",
]
