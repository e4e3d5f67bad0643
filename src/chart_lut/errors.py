# src/chart_lut/errors.py


class CalibrationError(ValueError):
    """Base class for every error raised by the calibration engine."""


class EmptyInputError(CalibrationError):
    """A statistic was requested over zero samples."""


class InsufficientSamplesError(CalibrationError):
    """Reference/camera patch sets are empty or do not align index-for-index."""


class InvalidSizeError(CalibrationError):
    """LUT lattice size below 2 (the node step 1/(size-1) needs size > 1)."""


class UnknownStrategyError(CalibrationError):
    """Interpolation strategy name is not registered."""


class MissingRangeDataError(CalibrationError):
    """The range-aware strategy was requested without a range mapping."""


class InvalidColorError(CalibrationError):
    """A patch color is non-finite, the wrong shape, or outside [0, 1]."""
