from typing import List, NamedTuple, Optional

from .deck import Deck

COLUMNS = 4
ROWS = 3


class MatchedTriple(NamedTuple):
    column: int
    value: int


class Hand:
    """A player's card grid plus that player's map of face-up cells.

    Both grids are lists of columns and always share the same shape;
    ``remove_column`` shrinks them together.
    """

    def __init__(self, columns: List[List[int]], known: Optional[List[List[bool]]] = None, rows: int = ROWS):
        self.columns = columns
        self.known = known if known is not None else [[False] * len(column) for column in columns]
        self.rows = rows

    @classmethod
    def layout(cls, deck: Deck, columns: int = COLUMNS, rows: int = ROWS) -> 'Hand':
        cards = deck.take(columns * rows)
        grid = [cards[index * rows:(index + 1) * rows] for index in range(columns)]
        return cls(grid, rows=rows)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def has_cell(self, column: int, row: int) -> bool:
        return 0 <= column < len(self.columns) and 0 <= row < len(self.columns[column])

    def card_at(self, column: int, row: int) -> int:
        return self.columns[column][row]

    def is_known(self, column: int, row: int) -> bool:
        return self.known[column][row]

    def reveal(self, column: int, row: int) -> bool:
        """Mark a cell known. Returns False if it already was."""
        if self.known[column][row]:
            return False
        self.known[column][row] = True
        return True

    def reveal_all(self) -> None:
        self.known = [[True] * len(column) for column in self.columns]

    def swap(self, column: int, row: int, card: int) -> int:
        """Put ``card`` face up at the cell and return the previous occupant."""
        replaced = self.columns[column][row]
        self.columns[column][row] = card
        self.known[column][row] = True
        return replaced

    def revealed_cards(self) -> List[int]:
        return [
            card
            for column, known_column in zip(self.columns, self.known)
            for card, known in zip(column, known_column)
            if known
        ]

    def revealed_count(self) -> int:
        return sum(known for known_column in self.known for known in known_column)

    def revealed_sum(self) -> int:
        return sum(self.revealed_cards())

    def highest_revealed_value(self) -> Optional[int]:
        revealed = self.revealed_cards()
        return max(revealed) if revealed else None

    def has_two_or_more_known(self) -> bool:
        return self.revealed_count() >= 2

    def is_fully_known(self) -> bool:
        return all(all(known_column) for known_column in self.known)

    def matched_triples(self) -> List[MatchedTriple]:
        triples = []
        for index, (column, known_column) in enumerate(zip(self.columns, self.known)):
            if len(column) == self.rows and all(known_column) and len(set(column)) == 1:
                triples.append(MatchedTriple(index, column[0]))
        return triples

    def remove_column(self, index: int) -> List[int]:
        """Drop a column from both grids and return its cards."""
        removed = self.columns.pop(index)
        self.known.pop(index)
        return removed

    def cards(self) -> List[int]:
        return [card for column in self.columns for card in column]
