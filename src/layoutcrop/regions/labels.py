"""DocLayNet label taxonomy used by the layout detector."""

from enum import Enum
from typing import FrozenSet


class LayoutLabel(Enum):
    """Layout classes in model output order.

    The value is the class index emitted by the detector, so the member
    order here must match the order the model was trained with.
    """
    CAPTION = 0
    FOOTNOTE = 1
    FORMULA = 2
    LIST_ITEM = 3
    PAGE_FOOTER = 4
    PAGE_HEADER = 5
    PICTURE = 6
    SECTION_HEADER = 7
    TABLE = 8
    TEXT = 9
    TITLE = 10

    @property
    def display_name(self) -> str:
        """Name as spelled by DocLayNet, e.g. ``List-item``."""
        return _DISPLAY_NAMES[self]

    @classmethod
    def from_class_id(cls, class_id: int) -> "LayoutLabel":
        try:
            return cls(class_id)
        except ValueError as exc:
            raise ValueError(
                f"Class id {class_id} is outside the {NUM_CLASSES}-label taxonomy"
            ) from exc

    @classmethod
    def from_name(cls, name: str) -> "LayoutLabel":
        """Look up a label by display name or enum name, case-insensitively."""
        key = name.strip().lower()
        for label in cls:
            if key in (label.display_name.lower(), label.name.lower()):
                return label
        raise ValueError(f"Unknown layout label: {name!r}")


_DISPLAY_NAMES = {
    LayoutLabel.CAPTION: "Caption",
    LayoutLabel.FOOTNOTE: "Footnote",
    LayoutLabel.FORMULA: "Formula",
    LayoutLabel.LIST_ITEM: "List-item",
    LayoutLabel.PAGE_FOOTER: "Page-footer",
    LayoutLabel.PAGE_HEADER: "Page-header",
    LayoutLabel.PICTURE: "Picture",
    LayoutLabel.SECTION_HEADER: "Section-header",
    LayoutLabel.TABLE: "Table",
    LayoutLabel.TEXT: "Text",
    LayoutLabel.TITLE: "Title",
}

NUM_CLASSES = len(LayoutLabel)

DEFAULT_RETAINED_LABELS: FrozenSet[LayoutLabel] = frozenset(
    {LayoutLabel.PICTURE, LayoutLabel.TABLE}
)
