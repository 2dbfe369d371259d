#!/usr/bin/env python3
"""
Interactive Scientific Calculator
Terminal front end for the key-driven calculator engine
"""

import logging
from datetime import datetime
from pathlib import Path

from scientific_calculator import (
    CalculatorConfig,
    DisplayState,
    KeyDispatcher,
    ScientificCalculator,
    keys_help,
)

# Setup logging
log_dir = Path("logs")
log_dir.mkdir(exist_ok=True)

console_handler = logging.StreamHandler()
console_handler.setLevel(logging.WARNING)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_dir / f'calculator_{datetime.now().strftime("%Y%m%d")}.log'),
        console_handler
    ]
)
logger = logging.getLogger(__name__)


def render(state: DisplayState) -> str:
    """One status line: mode, shift, memory, pending operator and display"""
    parts = [f"[{state.angle_mode}]"]
    if state.shift:
        parts.append("SHIFT")
    if state.memory_label:
        parts.append(state.memory_label)
    if state.pending_operator:
        parts.append(f"({state.pending_operator})")
    return "  ".join(parts) + f"  |  {state.display}"


def show_history(state: DisplayState):
    if not state.history:
        print("No calculations yet")
        return

    print("\nRecent calculations:")
    for entry in state.history:
        print(f"  {entry['time']}  {entry['expression']} = {entry['result']}")


def show_help():
    print("\nKeys:")
    for keys, description in keys_help().items():
        print(f"  {keys:<18} {description}")
    print("\nCommands: help, history, quit")


def main():
    calc = ScientificCalculator(CalculatorConfig())
    dispatcher = KeyDispatcher(calc)
    logger.info("Calculator started")

    print("=" * 60)
    print("SCIENTIFIC CALCULATOR")
    print("=" * 60)
    print()
    print("Type keys separated by spaces or run together, e.g. '3 + 5 ='")
    print("or '90 sin'. An empty line is Enter. Type 'help' for all keys.")
    print("=" * 60)
    print()
    print(render(calc.snapshot()))

    while True:
        try:
            user_input = input("calc> ").strip()
            command = user_input.lower()

            if command == 'quit':
                print("Goodbye!")
                break
            elif command == 'help':
                show_help()
                print()
                continue
            elif command == 'history':
                show_history(calc.snapshot())
                print()
                continue

            state = dispatcher.feed_line(user_input)
            print(render(state))

        except ValueError as e:
            print(f"Error: {e}")
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break
        except Exception as e:
            logger.error(f"Unexpected error in main loop: {e}")
            print(f"ERROR: {e}")
            print("System recovered, continuing...")

    logger.info("Calculator shutdown complete")


if __name__ == "__main__":
    main()
