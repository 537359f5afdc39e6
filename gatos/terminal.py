"""A text-mode screen buffer of character and attribute byte pairs."""

import enum


class Color(enum.IntEnum):
    BLACK = 0
    BLUE = 1
    GREEN = 2
    CYAN = 3
    RED = 4
    MAGENTA = 5
    BROWN = 6
    LIGHT_GREY = 7
    DARK_GREY = 8
    LIGHT_BLUE = 9
    LIGHT_GREEN = 10
    LIGHT_CYAN = 11
    LIGHT_RED = 12
    LIGHT_MAGENTA = 13
    LIGHT_BROWN = 14
    WHITE = 15


def formatted_color(fg, bg):
    """Combine foreground and background into one attribute byte."""
    return ((bg << 4) | (fg & 0x0F)) & 0xFF


def background(fmt):
    return (fmt >> 4) & 0x0F


def foreground(fmt):
    return fmt & 0x0F


class TerminalBuffer:
    """Screen cells stored as a character byte followed by its attribute byte.

    A format of ``None`` leaves the attribute bytes untouched.
    """

    def __init__(self, rows, columns, tab_size):
        if rows <= 0 or columns <= 0 or tab_size <= 0:
            raise ValueError("rows, columns and tab size must be positive")
        self.rows = rows
        self.columns = columns
        self.tab_size = tab_size
        self.data = bytearray(rows * columns * 2)
        self.clear_all(None)

    @property
    def _row_bytes(self):
        return 2 * self.columns

    def row_of(self, offset):
        return (offset // 2) // self.columns

    def column_of(self, offset):
        return (offset // 2) % self.columns

    def offset_of(self, row, column):
        """Return the byte offset of a cell, raising IndexError off screen."""
        if not (0 <= row < self.rows and 0 <= column < self.columns):
            raise IndexError(f"cell ({row}, {column}) is off screen")
        return row * self._row_bytes + column * 2

    def scroll(self):
        """Move every row up by one and blank the last row."""
        for row in range(1, self.rows):
            self.copy_row(row, row - 1)
        self.clear_row(self.rows - 1, None)

    def copy_row(self, source, target):
        size = self._row_bytes
        start = source * size
        self.data[target * size:(target + 1) * size] = self.data[start:start + size]

    def clear_row(self, row, fmt=None):
        start = row * self._row_bytes
        end = start + self._row_bytes
        self.data[start:end:2] = b" " * self.columns
        if fmt is not None:
            self.data[start + 1:end:2] = bytes([fmt & 0xFF]) * self.columns

    def clear_rows(self, first, last):
        """Blank rows ``first`` through ``last`` inclusive."""
        for row in range(first, last + 1):
            self.clear_row(row, None)

    def clear_all(self, fmt=None):
        for row in range(self.rows):
            self.clear_row(row, fmt)

    def format_range(self, start, end, fmt):
        """Set the attribute of every cell whose character lies in [start, end)."""
        if fmt is None:
            return
        if start % 2:
            start += 1
        for offset in range(start, end, 2):
            self.data[offset + 1] = fmt & 0xFF

    def put_special(self, offset, char, fmt):
        """Apply a newline, tab or backspace at ``offset``; return the offset change."""
        if char == "\n":
            fill = (self.columns - self.column_of(offset)) * 2
            self.format_range(offset, offset + fill, fmt)
            return fill
        if char == "\t":
            fill = (self.tab_size - self.column_of(offset) % self.tab_size) * 2
            self.format_range(offset, offset + fill, fmt)
            return fill
        if char == "\b":
            offset -= 2
            self.data[offset] = ord(" ")
            if fmt is not None:
                self.data[offset + 1] = fmt & 0xFF
            return -2
        return 0