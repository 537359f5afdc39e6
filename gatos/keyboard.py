"""Scan-code translation for a PC keyboard."""

import enum

_LOWER = (
    "\x00\x1b1234567890-=\b"
    "\tqwertyuiop[]\n"
    "\x00asdfghjkl;'`\x00"
    "\\zxcvbnm,./\x00"
    "*\x00 "
)

_UPPER = (
    "\x00\x1b!@#$%^&*()_+\b"
    "\tQWERTYUIOP{}\n"
    "\x00ASDFGHJKL:\"~\x00"
    "|ZXCVBNM<>?\x00"
    "*\x00 "
)

_BREAK_BIT = 0x80
_ESCAPE_CODE = 0xE0
_F1 = 0x3B
_F10 = 0x44
_F1_RELEASE = 0xBB
_F10_RELEASE = 0xC4


class KeyFlags(enum.IntFlag):
    NONE = 0
    UCASE = enum.auto()
    CTRL = enum.auto()
    ALT = enum.auto()
    ESCAPE = enum.auto()
    DEL = enum.auto()
    FN = enum.auto()


_MODIFIERS = {
    0x2A: (KeyFlags.UCASE, True),
    0xAA: (KeyFlags.UCASE, False),
    0x36: (KeyFlags.UCASE, True),
    0xB6: (KeyFlags.UCASE, False),
    0x1D: (KeyFlags.CTRL, True),
    0x9D: (KeyFlags.CTRL, False),
    0x38: (KeyFlags.ALT, True),
    0xB8: (KeyFlags.ALT, False),
    _ESCAPE_CODE: (KeyFlags.ESCAPE, True),
}


class Keyboard:
    """Tracks modifier state and turns scan codes into characters."""

    def __init__(self, on_key=None, on_special=None):
        self.flags = KeyFlags.NONE
        self.function_keys = 0
        self._on_key = on_key
        self._on_special = on_special

    def handle_scan_code(self, scan_code):
        """Process one scan code, reporting any character pressed."""
        if self.check_special_key(scan_code):
            return
        if scan_code & _BREAK_BIT:
            return
        char = self.translate(scan_code & ~_BREAK_BIT)
        if self._on_key is not None:
            self._on_key(char)

    def check_special_key(self, scan_code):
        """Update modifier state; return whether the code was a special key."""
        if self.flags & KeyFlags.ESCAPE:
            if scan_code == 0x53:
                self.flags |= KeyFlags.DEL
            elif scan_code == 0xD3:
                self.flags &= ~KeyFlags.DEL
            self.flags &= ~KeyFlags.ESCAPE
            return True

        if scan_code in _MODIFIERS:
            flag, pressed = _MODIFIERS[scan_code]
            if pressed:
                self.flags |= flag
            else:
                self.flags &= ~flag
        elif _F1 <= scan_code <= _F10:
            self.flags |= KeyFlags.FN
            self.function_keys |= 1 << (scan_code - _F1)
        elif _F1_RELEASE <= scan_code <= _F10_RELEASE:
            self.flags &= ~KeyFlags.FN
            self.function_keys = 0
        else:
            return False

        if self._on_special is not None:
            self._on_special()
        return True

    def translate(self, scan_code):
        """Return the character for a make code under the current shift state."""
        table = _UPPER if self.flags & KeyFlags.UCASE else _LOWER
        if 0 <= scan_code < len(table):
            return table[scan_code]
        return "\x00"