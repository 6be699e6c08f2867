"""Parameter binding -- raw argument strings to typed execution parameters.

See :class:`~apictl.binding.binder.ParameterBinder`.
"""

from apictl.binding.binder import ParameterBinder, coerce, parse_raw_args

__all__ = ["ParameterBinder", "coerce", "parse_raw_args"]
