"""
Post-processing applied to rendered samples before they are written.
"""

import numpy as np
from scipy import signal


# Corner frequency of the DC blocking filter.
DC_CUTOFF_HZ = 5.0


def _validate_filter_params(input_signal: np.ndarray, cutoff_freq: float, sample_rate: int) -> None:
    """Validate common parameters for filter functions."""
    if not isinstance(input_signal, np.ndarray):
        raise TypeError("Input signal must be a numpy array")
    if sample_rate <= 0:
        raise ValueError(f"Sample rate must be positive, got {sample_rate}")
    if cutoff_freq <= 0:
        raise ValueError(f"Cutoff frequency must be positive, got {cutoff_freq}")
    if cutoff_freq >= sample_rate / 2:
        raise ValueError(f"Cutoff frequency {cutoff_freq}Hz must be less than Nyquist frequency {sample_rate/2}Hz")


def remove_dc(input_signal: np.ndarray, sample_rate: int, cutoff_freq: float = DC_CUTOFF_HZ) -> np.ndarray:
    """
    Remove DC offset with a first-order Butterworth highpass.

    FM feedback and asymmetric modulation leave a constant offset in some
    voices. The filter is causal, so the attack is not smeared backwards.

    Args:
        input_signal: Mono audio signal
        sample_rate: Sample rate in Hz
        cutoff_freq: Highpass corner in Hz

    Returns:
        numpy.ndarray: Filtered signal (same length as input)

    Example:
        >>> import numpy as np
        >>> offset = np.full(48000, 0.5)
        >>> bool(abs(remove_dc(offset, 48000)[-1]) < 0.01)
        True
    """
    _validate_filter_params(input_signal, cutoff_freq, sample_rate)
    if len(input_signal) == 0:
        return input_signal.copy()

    b, a = signal.butter(1, cutoff_freq / (sample_rate / 2), btype="high")
    return signal.lfilter(b, a, input_signal)


def peak_level(input_signal: np.ndarray) -> float:
    """Peak absolute sample value (0.0 for an empty signal)."""
    if len(input_signal) == 0:
        return 0.0
    return float(np.max(np.abs(input_signal)))
