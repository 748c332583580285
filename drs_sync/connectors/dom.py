"""Plain descriptions of DOM structures read from the browser."""
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass
class ElementInfo:
    """
    Snapshot of one element's identifying attributes.

    ``handle`` is the driver's opaque reference used to act on the element;
    everything else is plain data so heuristics can be tested without a
    browser.
    """

    tag: str = ''
    type: str = ''
    name: str = ''
    id: str = ''
    placeholder: str = ''
    text: str = ''
    value: str = ''
    aria_label: str = ''
    role: str = ''
    visible: bool = True
    handle: Optional[Any] = field(default=None, repr=False, compare=False)

    @property
    def caption(self) -> str:
        """Human-visible label: text, else value, else aria-label."""
        return self.text or self.value or self.aria_label


@dataclass
class TableSnapshot:
    """
    Raw text of one <table>.

    ``header_cells`` holds the explicit header row (<thead> or a row made
    only of <th>), empty when the table has none. ``rows`` holds every other
    row's cell text, untrimmed.
    """

    header_cells: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)
