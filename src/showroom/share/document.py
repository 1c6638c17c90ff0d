"""The caller-owned document state that share links read from and write into."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class DocumentState:
    """Live proposal state: viewer context, form fields and image sources.

    Image values are data URIs, ``asset:<id>`` references, plain URLs, or "".
    """

    role: str = "admin"
    mode: str = "edit"
    form_data: dict[str, Any] = field(default_factory=dict)
    images: dict[str, str] = field(default_factory=dict)

    @property
    def is_presentation(self) -> bool:
        return self.mode == "presentation"

    def apply(
        self,
        role: str,
        mode: str,
        form_data: dict[str, Any] | None = None,
        images: dict[str, str] | None = None,
    ) -> None:
        """Switch viewer context and merge incoming fields over the current ones."""
        self.role = role
        self.mode = mode
        if form_data:
            self.form_data.update(form_data)
        if images:
            self.images.update(images)
