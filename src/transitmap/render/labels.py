"""Label interpolation and label styling."""

import html
from collections.abc import Mapping
from typing import Any

import pandas as pd

from transitmap.errors import RenderError


class _BlankMissing(dict):
    """format_map mapping that renders unknown fields as empty strings."""

    def __missing__(self, key: str) -> str:
        return ""


def escape_value(value: Any) -> str:
    """HTML-escape an attribute value; nulls become empty strings."""
    if value is None or (not isinstance(value, (list, tuple, dict)) and pd.isna(value)):
        return ""
    # Labels end up inside JS template literals
    return html.escape(str(value)).replace("`", "&#96;").replace("$", "&#36;")


def render_label(template: str, fields: Mapping[str, Any]) -> str:
    """
    Fill a label template with escaped attribute values.

    Args:
        template: HTML with {field} placeholders.
        fields: Attribute values of one feature.

    Returns:
        Label HTML.

    Raises:
        RenderError: If the template is malformed.
    """
    values = _BlankMissing({key: escape_value(value) for key, value in fields.items()})
    try:
        return template.format_map(values)
    except (ValueError, IndexError, AttributeError) as e:
        msg = f"Invalid label template {template!r}: {e}"
        raise RenderError(msg) from e


def label_css(base_style: Mapping[str, str], border_color: str) -> str:
    """Inline CSS for a label box."""
    style = {**base_style, "border-color": border_color}
    return "; ".join(f"{key}: {value}" for key, value in style.items())
