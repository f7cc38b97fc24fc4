"""Three-level catalog navigation.

Raw input is parsed once into a `Command` for the current level; the
`Navigator` then applies it to `NavigationState` and returns an `Action` for
the session to carry out. The navigator itself performs no I/O.

Software lists are paginated, but item numbers are always positions in the
full list: item k is shown as k on whichever page it appears.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, TypeVar, Union

if TYPE_CHECKING:
    from winstall.catalog import SoftwareRecord
    from winstall.protocols import CatalogRepository

T = TypeVar("T")


class Level(Enum):
    """Navigation level."""

    MAIN = "main"
    SUBCATEGORY = "subcategory"
    SOFTWARE = "software"


@dataclass
class NavigationState:
    """Where the user currently is."""

    level: Level = Level.MAIN
    category: str | None = None
    subcategory: str | None = None
    page_index: int = 0


# Commands


@dataclass(frozen=True)
class SelectIndex:
    index: int


@dataclass(frozen=True)
class SelectMany:
    indices: tuple[int, ...]


@dataclass(frozen=True)
class SelectAll:
    pass


@dataclass(frozen=True)
class Back:
    pass


@dataclass(frozen=True)
class Up:
    """Return straight to the main menu."""

    pass


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class GoToPage:
    page: int


@dataclass(frozen=True)
class NextPage:
    pass


@dataclass(frozen=True)
class PreviousPage:
    pass


@dataclass(frozen=True)
class ShowInventory:
    pass


@dataclass(frozen=True)
class Search:
    pass


@dataclass(frozen=True)
class Export:
    pass


@dataclass(frozen=True)
class Invalid:
    reason: str


Command = Union[
    SelectIndex,
    SelectMany,
    SelectAll,
    Back,
    Up,
    Quit,
    GoToPage,
    NextPage,
    PreviousPage,
    ShowInventory,
    Search,
    Export,
    Invalid,
]


# Actions


@dataclass(frozen=True)
class Redraw:
    pass


@dataclass(frozen=True)
class Error:
    message: str


@dataclass(frozen=True)
class InstallRequest:
    records: tuple[SoftwareRecord, ...]


@dataclass(frozen=True)
class ShowInventoryRequest:
    pass


@dataclass(frozen=True)
class SearchRequest:
    pass


@dataclass(frozen=True)
class ExportRequest:
    pass


@dataclass(frozen=True)
class QuitRequest:
    pass


Action = Union[
    Redraw,
    Error,
    InstallRequest,
    ShowInventoryRequest,
    SearchRequest,
    ExportRequest,
    QuitRequest,
]


_NUMBER = re.compile(r"^\d+$")
_INDEX_LIST = re.compile(r"^\d+(?:[\s,]+\d+)*$")
_GO_TO_PAGE = re.compile(r"^(?:g|page)\s*(\d+)$")

_MAIN_KEYS: dict[str, Command] = {
    "i": ShowInventory(),
    "s": Search(),
    "e": Export(),
}
_SUBCATEGORY_KEYS: dict[str, Command] = {
    "b": Back(),
    "back": Back(),
    "m": Up(),
    "main": Up(),
}
_SOFTWARE_KEYS: dict[str, Command] = {
    **_SUBCATEGORY_KEYS,
    "n": NextPage(),
    "next": NextPage(),
    "p": PreviousPage(),
    "prev": PreviousPage(),
    "previous": PreviousPage(),
    "all": SelectAll(),
}


def parse_indices(text: str) -> list[int] | None:
    """Parse "1,3 5" style input.

    Returns:
        The numbers in typed order, or None if the text is not such a list.
    """
    text = text.strip()
    if not _INDEX_LIST.match(text):
        return None
    return [int(token) for token in re.split(r"[\s,]+", text)]


def select_indices(indices: Iterable[int], count: int) -> list[int]:
    """Keep 1-based indices within 1..count, dropping repeats, in typed order."""
    seen: set[int] = set()
    valid = []
    for index in indices:
        if 1 <= index <= count and index not in seen:
            seen.add(index)
            valid.append(index)
    return valid


def parse_command(raw: str, level: Level) -> Command:
    """Translate raw input into a command for the given level.

    Args:
        raw: Text the user typed.
        level: Current navigation level.

    Returns:
        The command; `Invalid` for anything not meaningful at this level.
    """
    text = raw.strip()
    key = text.lower()
    if not text:
        return Invalid("Please enter a choice")
    if key in ("q", "quit"):
        return Quit()

    if level is Level.MAIN:
        if _NUMBER.match(key):
            return SelectIndex(int(key))
        if key in _MAIN_KEYS:
            return _MAIN_KEYS[key]

    elif level is Level.SUBCATEGORY:
        if _NUMBER.match(key):
            return SelectIndex(int(key))
        if key in _SUBCATEGORY_KEYS:
            return _SUBCATEGORY_KEYS[key]

    else:
        if key in _SOFTWARE_KEYS:
            return _SOFTWARE_KEYS[key]
        page = _GO_TO_PAGE.match(key)
        if page:
            return GoToPage(int(page.group(1)))
        indices = parse_indices(key)
        if indices is not None:
            return SelectMany(tuple(indices))

    return Invalid(f"Unrecognized input '{text}'")


def page_count(total: int, page_size: int) -> int:
    """Number of pages for `total` items; an empty list still has one page."""
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return max(1, math.ceil(total / page_size))


def page_slice(items: Sequence[T], page_index: int, page_size: int) -> list[tuple[int, T]]:
    """Items on one page, paired with their 1-based index in the full list."""
    start = page_index * page_size
    return [(start + offset + 1, item) for offset, item in enumerate(items[start : start + page_size])]


class Navigator:
    """Applies commands to the navigation state.

    Attributes:
        catalog: Catalog being browsed.
        page_size: Software items per page.
        state: Current navigation state.
    """

    def __init__(self, catalog: CatalogRepository, page_size: int = 10) -> None:
        self.catalog = catalog
        self.page_size = page_size
        self.state = NavigationState()

    # Views of the current level

    def categories(self) -> list[str]:
        return self.catalog.categories()

    def subcategories(self) -> list[str]:
        if self.state.category is None:
            return []
        return self.catalog.subcategories(self.state.category)

    def software(self) -> list[SoftwareRecord]:
        if self.state.category is None or self.state.subcategory is None:
            return []
        return self.catalog.software(self.state.category, self.state.subcategory)

    def page_count(self) -> int:
        return page_count(len(self.software()), self.page_size)

    def current_page(self) -> list[tuple[int, SoftwareRecord]]:
        """Records on the current page with their stable 1-based indices."""
        return page_slice(self.software(), self.state.page_index, self.page_size)

    # Transitions

    def handle(self, command: Command) -> Action:
        """Apply a command.

        Args:
            command: Parsed command.

        Returns:
            What the session should do next. Rejected commands leave the
            state unchanged and return `Error`.
        """
        if isinstance(command, Invalid):
            return Error(command.reason)
        if isinstance(command, Quit):
            return QuitRequest()

        level = self.state.level
        if level is Level.MAIN:
            return self._handle_main(command)
        if level is Level.SUBCATEGORY:
            return self._handle_subcategory(command)
        return self._handle_software(command)

    def _handle_main(self, command: Command) -> Action:
        if isinstance(command, SelectIndex):
            categories = self.categories()
            if not categories:
                return Error("The catalog has no categories")
            if not 1 <= command.index <= len(categories):
                return Error(f"Choose a category between 1 and {len(categories)}")
            self.state = NavigationState(Level.SUBCATEGORY, category=categories[command.index - 1])
            return Redraw()
        if isinstance(command, ShowInventory):
            return ShowInventoryRequest()
        if isinstance(command, Search):
            return SearchRequest()
        if isinstance(command, Export):
            return ExportRequest()
        return Error("Not available in the main menu")

    def _handle_subcategory(self, command: Command) -> Action:
        if isinstance(command, SelectIndex):
            subcategories = self.subcategories()
            if not subcategories:
                return Error(f"{self.state.category} has no subcategories")
            if not 1 <= command.index <= len(subcategories):
                return Error(f"Choose a subcategory between 1 and {len(subcategories)}")
            self.state = NavigationState(
                Level.SOFTWARE,
                category=self.state.category,
                subcategory=subcategories[command.index - 1],
            )
            return Redraw()
        if isinstance(command, (Back, Up)):
            self.state = NavigationState()
            return Redraw()
        return Error("Not available in the subcategory menu")

    def _handle_software(self, command: Command) -> Action:
        state = self.state
        pages = self.page_count()

        if isinstance(command, NextPage):
            if state.page_index + 1 >= pages:
                return Error("Already on the last page")
            state.page_index += 1
            return Redraw()
        if isinstance(command, PreviousPage):
            if state.page_index == 0:
                return Error("Already on the first page")
            state.page_index -= 1
            return Redraw()
        if isinstance(command, GoToPage):
            if not 1 <= command.page <= pages:
                return Error(f"Page must be between 1 and {pages}")
            state.page_index = command.page - 1
            return Redraw()

        if isinstance(command, SelectAll):
            records = self.software()
            if not records:
                return Error("Nothing to install in this list")
            return InstallRequest(tuple(records))
        if isinstance(command, SelectMany):
            records = self.software()
            chosen = select_indices(command.indices, len(records))
            if not chosen:
                return Error(f"Choose items between 1 and {len(records)}")
            return InstallRequest(tuple(records[index - 1] for index in chosen))

        if isinstance(command, Back):
            self.state = NavigationState(Level.SUBCATEGORY, category=state.category)
            return Redraw()
        if isinstance(command, Up):
            self.state = NavigationState()
            return Redraw()
        return Error("Not available in the software list")
