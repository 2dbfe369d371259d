#!/usr/bin/env python3
"""
Scientific Calculator Engine
Key-driven state machine with scientific functions, memory and history
"""

import logging
import math
import re
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterator, List, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

Number = Union[int, float]

ERROR_DISPLAY = "Error"
DEFAULT_HISTORY_LIMIT = 10

# ==========================================
# DATA MODELS
# ==========================================

class AngleMode(Enum):
    DEG = "DEG"
    RAD = "RAD"


class Operator(Enum):
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    POWER = "pow"


class ScientificFunction(Enum):
    SIN = "sin"
    COS = "cos"
    TAN = "tan"
    ASIN = "asin"
    ACOS = "acos"
    ATAN = "atan"
    LOG = "log"
    LN = "ln"
    EXP = "exp"
    SQRT = "sqrt"
    CBRT = "cbrt"
    SQUARE = "x²"
    CUBE = "x³"
    RECIPROCAL = "1/x"
    ABS = "abs"
    FACTORIAL = "fact"
    PI = "π"
    E = "e"

    @property
    def is_constant(self) -> bool:
        return self in (ScientificFunction.PI, ScientificFunction.E)


# Alternate function bound to a key while SHIFT is active
SHIFT_ALTERNATES = {
    ScientificFunction.SIN: ScientificFunction.ASIN,
    ScientificFunction.COS: ScientificFunction.ACOS,
    ScientificFunction.TAN: ScientificFunction.ATAN,
}


@dataclass
class CalculatorConfig:
    """Engine settings"""
    history_limit: int = DEFAULT_HISTORY_LIMIT
    angle_mode: AngleMode = AngleMode.DEG
    shift_sticky: bool = True

    def validate(self) -> None:
        if not isinstance(self.angle_mode, AngleMode):
            raise ValueError(f"angle_mode must be an AngleMode, got {self.angle_mode!r}")
        if not isinstance(self.history_limit, int) or not 1 <= self.history_limit <= 1000:
            raise ValueError(f"history_limit must be between 1 and 1000: {self.history_limit}")


@dataclass(frozen=True)
class HistoryEntry:
    """One completed calculation"""
    expression: str
    result: str
    timestamp: datetime = field(default_factory=datetime.now)

    def time_label(self) -> str:
        """Local time of day, e.g. 14:05:09"""
        return self.timestamp.strftime("%X")

    def to_dict(self) -> dict:
        return {
            'expression': self.expression,
            'result': self.result,
            'timestamp': self.timestamp.isoformat(),
            'time': self.time_label(),
        }


@dataclass
class DisplayState:
    """Everything a front end needs to render the calculator"""
    display: str
    memory: float
    memory_label: str
    angle_mode: str
    shift: bool
    pending_operator: Optional[str]
    fresh: bool
    history: List[dict]

# ==========================================
# NUMBER FORMATTING
# ==========================================

_NUMERIC_PREFIX = re.compile(
    r'^\s*([+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?))'
)


def parse_display(text: str) -> float:
    """Parse the longest numeric prefix of the display text.

    Text without one (``"Error"``, ``"."``) gives NaN, so a bad display
    propagates into the next computation instead of raising.
    """
    match = _NUMERIC_PREFIX.match(text)
    if not match:
        return math.nan
    return float(match.group(1).replace('Infinity', 'inf'))


def format_number(value: Number) -> str:
    """Shortest round-trip text for a number.

    Integral values print without a fractional part and very large or
    very small magnitudes switch to exponent notation (``1e+21``,
    ``1.5e-7``).
    """
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = ''.join(str(d) for d in digit_tuple).rstrip('0')
    exponent += len(digit_tuple) - len(digits)
    k = len(digits)
    n = exponent + k  # position of the decimal point relative to digits

    if k <= n <= 21:
        text = digits + '0' * (n - k)
    elif 0 < n <= 21:
        text = digits[:n] + '.' + digits[n:]
    elif -6 < n <= 0:
        text = '0.' + '0' * (-n) + digits
    else:
        e = n - 1
        mantissa = digits if k == 1 else digits[0] + '.' + digits[1:]
        text = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"

    return '-' + text if value < 0 else text


def is_valid_result(value: float) -> bool:
    return math.isfinite(value)

# ==========================================
# INPUT VALIDATION
# ==========================================

class InputValidator:
    """Validation of key events coming from a front end"""

    DIGITS = frozenset('0123456789.')

    @staticmethod
    def validate_digit(digit: str) -> str:
        if not isinstance(digit, str) or digit not in InputValidator.DIGITS:
            raise ValueError(f"Invalid digit: {digit!r}")
        return digit

    @staticmethod
    def validate_operator(op: Union[str, Operator]) -> Operator:
        if isinstance(op, Operator):
            return op
        try:
            return Operator(op)
        except ValueError:
            raise ValueError(f"Unknown operator: {op!r}") from None

    @staticmethod
    def validate_function(tag: Union[str, ScientificFunction]) -> ScientificFunction:
        if isinstance(tag, ScientificFunction):
            return tag
        try:
            return ScientificFunction(tag)
        except ValueError:
            raise ValueError(f"Unknown scientific function: {tag!r}") from None

# ==========================================
# SCIENTIFIC FUNCTIONS
# ==========================================

def factorial(n: float) -> float:
    """Iterative factorial over 2..n.

    Defined for non-negative integers. Negative input gives NaN and a
    fractional input stops at the last integer not above it.
    """
    if n < 0:
        return math.nan
    if n == 0:
        return 1.0

    result = 1.0
    i = 2
    while i <= n:
        result *= i
        if math.isinf(result):
            break
        i += 1
    return result


def evaluate_function(func: ScientificFunction, x: float,
                      angle_mode: AngleMode = AngleMode.DEG) -> float:
    """Apply a scientific function to x.

    Domain errors come back as NaN and overflow as infinity; nothing is
    raised for bad numeric input.
    """
    degrees = angle_mode == AngleMode.DEG
    x = np.float64(x)

    with np.errstate(all='ignore'):
        if func == ScientificFunction.SIN:
            result = np.sin(x * np.pi / 180 if degrees else x)
        elif func == ScientificFunction.COS:
            result = np.cos(x * np.pi / 180 if degrees else x)
        elif func == ScientificFunction.TAN:
            result = np.tan(x * np.pi / 180 if degrees else x)
        elif func == ScientificFunction.ASIN:
            result = np.arcsin(x) * 180 / np.pi if degrees else np.arcsin(x)
        elif func == ScientificFunction.ACOS:
            result = np.arccos(x) * 180 / np.pi if degrees else np.arccos(x)
        elif func == ScientificFunction.ATAN:
            result = np.arctan(x) * 180 / np.pi if degrees else np.arctan(x)
        elif func == ScientificFunction.LOG:
            result = np.log10(x)
        elif func == ScientificFunction.LN:
            result = np.log(x)
        elif func == ScientificFunction.EXP:
            result = np.exp(x)
        elif func == ScientificFunction.SQRT:
            result = np.sqrt(x)
        elif func == ScientificFunction.CBRT:
            result = np.cbrt(x)
        elif func == ScientificFunction.SQUARE:
            result = np.power(x, 2)
        elif func == ScientificFunction.CUBE:
            result = np.power(x, 3)
        elif func == ScientificFunction.RECIPROCAL:
            result = np.float64(1.0) / x
        elif func == ScientificFunction.ABS:
            result = np.abs(x)
        elif func == ScientificFunction.FACTORIAL:
            result = factorial(float(x))
        elif func == ScientificFunction.PI:
            result = np.pi
        elif func == ScientificFunction.E:
            result = np.e
        else:
            raise ValueError(f"Unsupported function: {func}")

    return float(result)


def apply_operator(op: Operator, left: float, right: float) -> float:
    """Binary arithmetic with IEEE-754 results (1/0 is inf, 0/0 is NaN)"""
    a, b = np.float64(left), np.float64(right)

    with np.errstate(all='ignore'):
        if op == Operator.ADD:
            result = a + b
        elif op == Operator.SUBTRACT:
            result = a - b
        elif op == Operator.MULTIPLY:
            result = a * b
        elif op == Operator.DIVIDE:
            result = a / b
        elif op == Operator.POWER:
            result = np.power(a, b)
        else:
            raise ValueError(f"Unsupported operator: {op}")

    return float(result)

# ==========================================
# MEMORY AND HISTORY
# ==========================================

class MemoryRegister:
    """Single numeric accumulator (MC / MR / M+ / M-)"""

    def __init__(self):
        self.value = 0.0

    def clear(self):
        """Reset the register to zero"""
        self.value = 0.0

    def recall(self) -> float:
        """Current register value"""
        return self.value

    def accumulate(self, delta: float):
        """Add delta to the register (M- passes a negative delta)"""
        self.value += delta

    def store(self, value: float):
        """Replace the register value"""
        self.value = value


class HistoryBuffer:
    """Bounded calculation log, most recent first"""

    def __init__(self, max_size: int = DEFAULT_HISTORY_LIMIT):
        self.max_size = max_size
        self._entries = deque(maxlen=max_size)

    def record(self, expression: str, result: str) -> HistoryEntry:
        """Prepend a timestamped entry, dropping the oldest past capacity"""
        entry = HistoryEntry(expression=expression, result=result)
        # appendleft on a bounded deque drops the oldest entry from the right
        self._entries.appendleft(entry)
        return entry

    def clear(self):
        """Remove every entry"""
        self._entries.clear()

    @property
    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))

# ==========================================
# CALCULATOR STATE MACHINE
# ==========================================

@dataclass
class CalculatorState:
    """Mutable state owned by one ScientificCalculator"""
    display: str = "0"
    pending_operator: Optional[Operator] = None
    fresh: bool = True
    angle_mode: AngleMode = AngleMode.DEG
    shift: bool = False


class ScientificCalculator:
    """Key-event driven calculator engine.

    Every operation runs to completion and leaves the display either a
    finite number or ``"Error"``. Invalid numeric results never raise;
    only malformed key events (unknown digit, operator or function)
    raise ``ValueError``.
    """

    def __init__(self, config: Optional[CalculatorConfig] = None):
        self.config = config or CalculatorConfig()
        self.config.validate()

        self.state = CalculatorState(angle_mode=self.config.angle_mode)
        self.memory_register = MemoryRegister()
        self.history = HistoryBuffer(self.config.history_limit)

    # ---- observable state ------------------------------------------

    @property
    def display(self) -> str:
        return self.state.display

    @property
    def memory(self) -> float:
        return self.memory_register.value

    @property
    def memory_label(self) -> str:
        if self.memory == 0:
            return ""
        return f"M: {format_number(self.memory)}"

    @property
    def angle_mode(self) -> AngleMode:
        return self.state.angle_mode

    @property
    def shift(self) -> bool:
        return self.state.shift

    @property
    def pending_operator(self) -> Optional[Operator]:
        return self.state.pending_operator

    @property
    def fresh(self) -> bool:
        return self.state.fresh

    def snapshot(self) -> DisplayState:
        pending = self.state.pending_operator
        return DisplayState(
            display=self.state.display,
            memory=self.memory,
            memory_label=self.memory_label,
            angle_mode=self.state.angle_mode.value,
            shift=self.state.shift,
            pending_operator=pending.value if pending else None,
            fresh=self.state.fresh,
            history=[entry.to_dict() for entry in self.history],
        )

    # ---- entry -------------------------------------------------------

    def input_digit(self, digit: str):
        digit = InputValidator.validate_digit(digit)
        state = self.state

        if state.fresh:
            state.display = digit
            state.fresh = False
        elif state.display == "0":
            state.display = digit
        else:
            # A second '.' is appended as typed; parsing uses the numeric prefix
            state.display += digit

        logger.debug(f"Digit {digit} -> display {state.display}")

    def apply_binary_operator(self, op: Union[str, Operator]):
        op = InputValidator.validate_operator(op)

        self.calculate()
        self.memory_register.store(parse_display(self.state.display))
        self.state.pending_operator = op
        self.state.fresh = True

        logger.debug(f"Operator {op.value} pending, left operand {format_number(self.memory)}")

    def calculate(self):
        state = self.state
        op = state.pending_operator
        if op is None:
            return

        prev = self.memory_register.value
        current = parse_display(state.display)
        result = apply_operator(op, prev, current)

        expression = f"{format_number(prev)} {op.value} {format_number(current)}"
        state.display = self._display_text(result, expression)
        state.fresh = True
        state.pending_operator = None

        # History keeps the raw result text (Infinity, NaN); the display shows Error
        self.history.record(expression, format_number(result))
        logger.info(f"Calculated {expression} = {state.display}")

    def apply_scientific(self, tag: Union[str, ScientificFunction]):
        func = InputValidator.validate_function(tag)
        state = self.state

        previous = state.display
        x = 0.0 if func.is_constant else parse_display(previous)
        result = evaluate_function(func, x, state.angle_mode)

        expression = f"{func.value}({previous})"
        state.display = self._display_text(result, expression)
        state.fresh = True

        self.history.record(expression, state.display)
        logger.debug(f"Applied {expression} -> {state.display}")

    def press_scientific(self, tag: Union[str, ScientificFunction]):
        """Scientific key press with the SHIFT alternate resolved"""
        func = InputValidator.validate_function(tag)

        if self.state.shift and func in SHIFT_ALTERNATES:
            func = SHIFT_ALTERNATES[func]
            if not self.config.shift_sticky:
                self.state.shift = False

        self.apply_scientific(func)

    def shift_label(self, tag: Union[str, ScientificFunction]) -> str:
        """Label a scientific key shows under the current SHIFT state"""
        func = InputValidator.validate_function(tag)
        if self.state.shift and func in SHIFT_ALTERNATES:
            return SHIFT_ALTERNATES[func].value
        return func.value

    # ---- clearing and modes -------------------------------------------

    def clear_all(self):
        """Reset display, memory and pending operator; history is kept"""
        self.state.display = "0"
        self.state.pending_operator = None
        self.state.fresh = True
        self.memory_register.clear()
        logger.info("Calculator cleared")

    def clear_history(self):
        """Empty the history log"""
        self.history.clear()
        logger.info("History cleared")

    def toggle_angle_mode(self) -> AngleMode:
        """Switch between DEG and RAD"""
        if self.state.angle_mode == AngleMode.DEG:
            self.state.angle_mode = AngleMode.RAD
        else:
            self.state.angle_mode = AngleMode.DEG
        logger.info(f"Angle mode set to {self.state.angle_mode.value}")
        return self.state.angle_mode

    def toggle_shift(self) -> bool:
        """Switch SHIFT on or off"""
        self.state.shift = not self.state.shift
        return self.state.shift

    # ---- memory ----------------------------------------------------------

    def memory_clear(self):
        """MC"""
        self.memory_register.clear()

    def memory_recall(self):
        """MR: show the memory value and start a fresh number"""
        value = self.memory_register.recall()
        self.state.display = format_number(value) if is_valid_result(value) else ERROR_DISPLAY
        self.state.fresh = True

    def memory_add(self):
        """M+: add the display value to memory; entry mode is unchanged"""
        self.memory_register.accumulate(parse_display(self.state.display))

    def memory_subtract(self):
        """M-: subtract the display value from memory"""
        self.memory_register.accumulate(-parse_display(self.state.display))

    # ---- helpers ---------------------------------------------------------

    @staticmethod
    def _display_text(result: float, expression: str) -> str:
        if not is_valid_result(result):
            logger.warning(f"Invalid numeric result for {expression}: {format_number(result)}")
            return ERROR_DISPLAY
        return format_number(result)

# ==========================================
# KEY DISPATCH
# ==========================================

OPERATOR_KEYS = {
    '+': Operator.ADD,
    '-': Operator.SUBTRACT,
    '*': Operator.MULTIPLY,
    '/': Operator.DIVIDE,
    '^': Operator.POWER,
}

FUNCTION_ALIASES = {
    'pi': ScientificFunction.PI,
    'x2': ScientificFunction.SQUARE,
    'sq': ScientificFunction.SQUARE,
    'x3': ScientificFunction.CUBE,
    'cube': ScientificFunction.CUBE,
    'inv': ScientificFunction.RECIPROCAL,
    'n!': ScientificFunction.FACTORIAL,
}

COMMAND_KEYS = {
    'enter': 'calculate',
    '=': 'calculate',
    'escape': 'clear_all',
    'esc': 'clear_all',
    'mc': 'memory_clear',
    'mr': 'memory_recall',
    'm+': 'memory_add',
    'm-': 'memory_subtract',
    'shift': 'toggle_shift',
    'mode': 'toggle_angle_mode',
    'ch': 'clear_history',
}


class KeyDispatcher:
    """Maps terminal keys onto calculator operations"""

    def __init__(self, calculator: ScientificCalculator):
        self.calculator = calculator

    @staticmethod
    def resolve(key: str):
        """Return (method name, argument) for a key, or raise ValueError"""
        if not key:
            raise ValueError("Empty key")

        if key in InputValidator.DIGITS:
            return 'input_digit', key
        if key in OPERATOR_KEYS:
            return 'apply_binary_operator', OPERATOR_KEYS[key]

        name = key.lower()
        if name in COMMAND_KEYS:
            return COMMAND_KEYS[name], None
        if name in FUNCTION_ALIASES:
            return 'press_scientific', FUNCTION_ALIASES[name]
        try:
            return 'press_scientific', ScientificFunction(name)
        except ValueError:
            pass

        raise ValueError(f"Unknown key: {key!r}")

    def handle_key(self, key: str):
        method, argument = self.resolve(key)
        handler = getattr(self.calculator, method)
        if argument is None:
            handler()
        else:
            handler(argument)

    def split_line(self, line: str) -> List[str]:
        """Split a typed line into keys.

        Whitespace separated names are single keys; anything else is
        read one character at a time. An empty line is the Enter key.
        """
        tokens = line.split()
        if not tokens:
            return ['enter']

        keys = []
        for token in tokens:
            if token in OPERATOR_KEYS or token in InputValidator.DIGITS:
                keys.append(token)
                continue
            try:
                self.resolve(token)
                keys.append(token)
            except ValueError:
                keys.extend(token)
        return keys

    def feed_line(self, line: str) -> DisplayState:
        """Validate every key of the line, then apply them in order"""
        keys = self.split_line(line)
        for key in keys:
            self.resolve(key)

        for key in keys:
            self.handle_key(key)

        return self.calculator.snapshot()


def keys_help() -> Dict[str, str]:
    """Key reference for the terminal front end"""
    return {
        '0-9 .': 'enter digits',
        '+ - * / ^': 'operators (^ is power)',
        '= or empty line': 'calculate (Enter)',
        'esc': 'clear all (Escape)',
        'mc mr m+ m-': 'memory clear / recall / add / subtract',
        'shift': 'toggle sin/cos/tan <-> asin/acos/atan',
        'mode': 'toggle DEG/RAD',
        'ch': 'clear history',
        'functions': ' '.join(f.value for f in ScientificFunction),
        'aliases': ' '.join(sorted(FUNCTION_ALIASES)),
    }
