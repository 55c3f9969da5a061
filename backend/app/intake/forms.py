"""Helpers for reading multipart form data.

Browsers send list fields either as repeated ``name[]`` values or as a
single ``name`` value; both spellings are accepted.
"""
from typing import Any, Optional

from starlette.datastructures import FormData, UploadFile


def form_text(form: FormData, name: str) -> Optional[str]:
    value = form.get(name)
    if value is None or isinstance(value, UploadFile):
        return None
    return str(value)


def form_list(form: FormData, *names: str) -> Any:
    """Return the raw values of the first list field present, or None.

    A single value is returned unwrapped so comma and JSON strings can be
    told apart from repeated values.
    """
    for name in names:
        for key in (f"{name}[]", name):
            values = [v for v in form.getlist(key) if not isinstance(v, UploadFile)]
            if not values:
                continue
            return values[0] if len(values) == 1 else values
    return None


def form_file(form: FormData, name: str) -> Optional[UploadFile]:
    value = form.get(name)
    if isinstance(value, UploadFile):
        return value
    return None
