import pytest

from gatos.keyboard import KeyFlags, Keyboard


@pytest.fixture
def recorded():
    keys = []
    specials = []
    keyboard = Keyboard(on_key=keys.append, on_special=lambda: specials.append(True))
    return keyboard, keys, specials


def test_letter_press_reports_lowercase(recorded):
    keyboard, keys, _ = recorded
    keyboard.handle_scan_code(0x10)
    assert keys == ["q"]


def test_shift_switches_case(recorded):
    keyboard, keys, specials = recorded
    keyboard.handle_scan_code(0x2A)
    assert keyboard.flags & KeyFlags.UCASE
    keyboard.handle_scan_code(0x10)
    keyboard.handle_scan_code(0xAA)
    keyboard.handle_scan_code(0x10)
    assert keys == ["Q", "q"]
    assert len(specials) == 2


def test_break_codes_report_nothing(recorded):
    keyboard, keys, _ = recorded
    keyboard.handle_scan_code(0x10 | 0x80)
    assert keys == []


def test_translate_matches_between_cases_for_space():
    keyboard = Keyboard()
    lower = keyboard.translate(0x39)
    keyboard.check_special_key(0x36)
    assert keyboard.translate(0x39) == lower == " "


def test_letters_upper_match_lower():
    keyboard = Keyboard()
    lowers = [keyboard.translate(code) for code in range(0x10, 0x1A)]
    keyboard.check_special_key(0x2A)
    uppers = [keyboard.translate(code) for code in range(0x10, 0x1A)]
    assert [c.upper() for c in lowers] == uppers


def test_function_keys_set_and_clear(recorded):
    keyboard, keys, specials = recorded
    keyboard.handle_scan_code(0x3B)
    keyboard.handle_scan_code(0x3C)
    assert keyboard.flags & KeyFlags.FN
    assert keyboard.function_keys == 0b11
    keyboard.handle_scan_code(0xBB)
    assert not keyboard.flags & KeyFlags.FN
    assert keyboard.function_keys == 0
    assert keys == []
    assert len(specials) == 3


def test_escape_sequence_toggles_delete(recorded):
    keyboard, keys, specials = recorded
    keyboard.handle_scan_code(0xE0)
    keyboard.handle_scan_code(0x53)
    assert keyboard.flags & KeyFlags.DEL
    assert not keyboard.flags & KeyFlags.ESCAPE
    keyboard.handle_scan_code(0xE0)
    keyboard.handle_scan_code(0xD3)
    assert not keyboard.flags & KeyFlags.DEL
    assert keys == []
    assert len(specials) == 2


def test_ctrl_and_alt_flags():
    keyboard = Keyboard()
    assert keyboard.check_special_key(0x1D) is True
    assert keyboard.check_special_key(0x38) is True
    assert keyboard.flags == KeyFlags.CTRL | KeyFlags.ALT
    keyboard.check_special_key(0x9D)
    keyboard.check_special_key(0xB8)
    assert keyboard.flags == KeyFlags.NONE


def test_plain_key_is_not_special():
    assert Keyboard().check_special_key(0x10) is False