"""Built-in digitizer plugin commands (``du digitization ...``)."""

from apictl.plugins.digitizer.plugin import DigitizeCommand, DigitizeResultCommand

__all__ = ["DigitizeCommand", "DigitizeResultCommand"]
