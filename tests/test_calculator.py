import sys, pathlib
sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))

import logging

import pytest

from scientific_calculator import (
    AngleMode, CalculatorConfig, Operator, ScientificCalculator
)

def type_digits(calc, digits):
    for d in digits:
        calc.input_digit(d)

def test_initial_state():
    calc = ScientificCalculator()
    assert calc.display == "0"
    assert calc.memory == 0
    assert calc.pending_operator is None
    assert calc.fresh
    assert calc.angle_mode == AngleMode.DEG
    assert not calc.shift
    assert len(calc.history) == 0

def test_first_digit_replaces_then_appends():
    calc = ScientificCalculator()
    type_digits(calc, "12")
    assert calc.display == "12"
    assert not calc.fresh

    calc.apply_scientific('abs')
    calc.input_digit('7')
    assert calc.display == "7"

def test_leading_zero_replaced():
    calc = ScientificCalculator()
    type_digits(calc, "05")
    assert calc.display == "5"

def test_decimal_point_replaces_lone_zero():
    calc = ScientificCalculator()
    type_digits(calc, "0.5")
    assert calc.display == ".5"
    calc.apply_scientific('x²')
    assert calc.display == "0.25"

def test_second_decimal_point_is_appended():
    calc = ScientificCalculator()
    type_digits(calc, "1.2.3")
    assert calc.display == "1.2.3"
    calc.apply_binary_operator('+')
    calc.input_digit('1')
    calc.calculate()
    assert calc.display == "2.2"

def test_add_round_trip():
    calc = ScientificCalculator()
    calc.input_digit('3')
    calc.apply_binary_operator('+')
    assert calc.memory == 3
    assert calc.pending_operator == Operator.ADD

    calc.input_digit('5')
    calc.calculate()

    assert calc.display == "8"
    assert calc.memory == 3
    assert calc.pending_operator is None
    assert calc.fresh
    assert len(calc.history) == 1
    entry = calc.history.entries[0]
    assert (entry.expression, entry.result) == ("3 + 5", "8")

def test_calculate_without_pending_is_noop():
    calc = ScientificCalculator()
    type_digits(calc, "42")
    calc.calculate()
    assert calc.display == "42"
    assert calc.memory == 0
    assert len(calc.history) == 0

def test_operators_chain_left_to_right():
    calc = ScientificCalculator()
    calc.input_digit('2')
    calc.apply_binary_operator('+')
    calc.input_digit('3')
    calc.apply_binary_operator('*')
    assert calc.display == "5"
    assert calc.memory == 5
    calc.input_digit('4')
    calc.calculate()

    assert calc.display == "20"
    assert [e.expression for e in calc.history] == ["5 * 4", "2 + 3"]

def test_power_operator():
    calc = ScientificCalculator()
    calc.input_digit('2')
    calc.apply_binary_operator(Operator.POWER)
    type_digits(calc, "10")
    calc.calculate()
    assert calc.display == "1024"
    assert calc.history.entries[0].expression == "2 pow 10"

def test_division_by_zero_shows_error(caplog):
    calc = ScientificCalculator()
    calc.input_digit('1')
    calc.apply_binary_operator('/')
    calc.input_digit('0')
    with caplog.at_level(logging.WARNING, logger="scientific_calculator"):
        calc.calculate()
    assert calc.display == "Error"
    entry = calc.history.entries[0]
    assert (entry.expression, entry.result) == ("1 / 0", "Infinity")
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "1 / 0" in warnings[0].getMessage()

def test_zero_over_zero_records_nan():
    calc = ScientificCalculator()
    calc.input_digit('0')
    calc.apply_binary_operator('/')
    calc.input_digit('0')
    calc.calculate()
    assert calc.display == "Error"
    assert calc.history.entries[0].result == "NaN"

@pytest.mark.parametrize("display,tag,expected", [
    ("5", 'fact', "120"),
    ("0", 'fact', "1"),
    ("-3", 'fact', "Error"),
    ("-1", 'sqrt', "Error"),
    ("100", 'log', "2"),
    ("3", 'x²', "9"),
    ("4", '1/x', "0.25"),
])
def test_apply_scientific(display, tag, expected):
    calc = ScientificCalculator()
    calc.state.display = display
    calc.apply_scientific(tag)
    assert calc.display == expected
    assert calc.fresh
    entry = calc.history.entries[0]
    assert entry.expression == f"{tag}({display})"
    assert entry.result == expected

def test_constants_ignore_display():
    calc = ScientificCalculator()
    calc.state.display = "Error"
    calc.apply_scientific('π')
    assert calc.display == "3.141592653589793"
    assert calc.history.entries[0].expression == "π(Error)"

def test_sin_in_both_angle_modes():
    calc = ScientificCalculator()
    type_digits(calc, "90")
    calc.apply_scientific('sin')
    assert calc.display == "1"

    assert calc.toggle_angle_mode() == AngleMode.RAD
    type_digits(calc, "90")
    calc.apply_scientific('sin')
    assert float(calc.display) == pytest.approx(0.8939966636)

    assert calc.toggle_angle_mode() == AngleMode.DEG

def test_sticky_shift():
    calc = ScientificCalculator()
    assert calc.shift_label('sin') == "sin"
    calc.toggle_shift()
    assert calc.shift_label('sin') == "asin"
    assert calc.shift_label('log') == "log"

    calc.input_digit('1')
    calc.press_scientific('sin')
    assert float(calc.display) == pytest.approx(90)
    assert calc.shift

    calc.input_digit('1')
    calc.press_scientific('tan')
    assert float(calc.display) == pytest.approx(45)
    assert calc.history.entries[0].expression == "atan(1)"

    calc.toggle_shift()
    calc.input_digit('0')
    calc.press_scientific('cos')
    assert calc.display == "1"

def test_one_shot_shift():
    calc = ScientificCalculator(CalculatorConfig(shift_sticky=False))
    calc.toggle_shift()
    calc.input_digit('1')
    calc.press_scientific('sin')
    assert float(calc.display) == pytest.approx(90)
    assert not calc.shift

def test_memory_operations():
    calc = ScientificCalculator()
    calc.input_digit('5')
    calc.memory_add()
    assert not calc.fresh
    calc.memory_add()
    assert calc.memory == 10
    assert calc.memory_label == "M: 10"

    calc.memory_recall()
    calc.input_digit('3')
    calc.memory_subtract()
    assert calc.memory == 7

    calc.memory_recall()
    assert calc.display == "7"
    assert calc.fresh

    calc.memory_clear()
    assert calc.memory == 0
    assert calc.memory_label == ""

def test_memory_add_keeps_entry_mode_continuing():
    calc = ScientificCalculator()
    calc.input_digit('5')
    calc.memory_add()
    calc.input_digit('3')
    assert calc.display == "53"
    calc.memory_subtract()
    assert calc.memory == 5 - 53

def test_clear_all_resets_but_keeps_history():
    calc = ScientificCalculator()
    calc.input_digit('9')
    calc.apply_scientific('sqrt')
    calc.apply_binary_operator('-')
    calc.input_digit('4')
    calc.memory_add()
    calc.toggle_angle_mode()

    calc.clear_all()

    assert calc.display == "0"
    assert calc.memory == 0
    assert calc.pending_operator is None
    assert calc.fresh
    assert len(calc.history) == 1
    assert calc.angle_mode == AngleMode.RAD

    calc.clear_history()
    assert len(calc.history) == 0

def test_recovers_after_error():
    calc = ScientificCalculator()
    calc.state.display = "-1"
    calc.apply_scientific('ln')
    assert calc.display == "Error"
    calc.input_digit('2')
    assert calc.display == "2"

def test_history_limit_from_config():
    calc = ScientificCalculator(CalculatorConfig(history_limit=3))
    for _ in range(5):
        calc.apply_scientific('e')
    assert len(calc.history) == 3

def test_invalid_config_rejected():
    with pytest.raises(ValueError):
        ScientificCalculator(CalculatorConfig(history_limit=0))
    with pytest.raises(ValueError):
        ScientificCalculator(CalculatorConfig(angle_mode="DEG"))

def test_invalid_events_raise_without_changing_state():
    calc = ScientificCalculator()
    calc.input_digit('4')
    with pytest.raises(ValueError):
        calc.input_digit('x')
    with pytest.raises(ValueError):
        calc.apply_binary_operator('%')
    with pytest.raises(ValueError):
        calc.apply_scientific('sinh')
    assert calc.display == "4"
    assert calc.pending_operator is None

def test_snapshot():
    calc = ScientificCalculator()
    calc.input_digit('3')
    calc.memory_add()
    calc.apply_binary_operator('*')
    state = calc.snapshot()
    assert state.display == "3"
    assert state.memory_label == "M: 3"
    assert state.angle_mode == "DEG"
    assert state.pending_operator == "*"
    assert state.fresh
    assert state.history == []
