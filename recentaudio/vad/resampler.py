"""PCM normalization and sample rate conversion for the speech classifier."""

import logging
from typing import Union

import numpy as np
from scipy import signal

from ..models.audio import AudioConfig, BitDepth

logger = logging.getLogger(__name__)


MIN_SAMPLE_RATE = 8000

# Linear interpolation is safe for upsampling and mild downsampling. Below this
# ratio the input is low-pass filtered first so aliasing does not confuse the VAD.
LINEAR_VS_SINC_RATIO = 0.6
ANTI_ALIAS_TAPS = 49

BytesLike = Union[bytes, bytearray, memoryview]


def pcm_to_float(pcm: BytesLike, bit_depth: BitDepth) -> np.ndarray:
    """Decode PCM bytes into float32 samples in [-1.0, 1.0).

    A trailing partial sample is dropped. The caller's buffer is never written.
    """
    view = memoryview(pcm).cast("B")
    width = bit_depth.bytes_per_sample
    usable = len(view) - len(view) % width
    if usable != len(view):
        logger.debug(f"Dropping {len(view) - usable} trailing byte(s) of a partial sample")

    if bit_depth is BitDepth.PCM_16BIT:
        samples = np.frombuffer(view[:usable], dtype="<i2")
        return samples.astype(np.float32) / np.float32(32768.0)
    samples = np.frombuffer(view[:usable], dtype=np.uint8)
    return (samples.astype(np.float32) - np.float32(128.0)) / np.float32(128.0)


def float_to_pcm(samples: np.ndarray, bit_depth: BitDepth) -> bytes:
    """Encode float samples as PCM bytes, rounding and clipping to the format's range."""
    samples = np.asarray(samples, dtype=np.float64)
    if bit_depth is BitDepth.PCM_16BIT:
        scaled = np.clip(np.rint(samples * 32768.0), -32768, 32767)
        return scaled.astype("<i2").tobytes()
    scaled = np.clip(np.rint(samples * 128.0) + 128, 0, 255)
    return scaled.astype(np.uint8).tobytes()


def resampled_length(num_samples: int, from_rate: int, to_rate: int) -> int:
    """Number of samples produced by resampling num_samples from from_rate to to_rate."""
    # round-half-up in integer arithmetic
    return (2 * num_samples * to_rate + from_rate) // (2 * from_rate)


def _anti_alias(samples: np.ndarray, ratio: float) -> np.ndarray:
    taps = signal.firwin(ANTI_ALIAS_TAPS, ratio, window="hann")
    filtered = signal.convolve(samples.astype(np.float64), taps, mode="same", method="direct")
    return filtered


def resample_float(samples: np.ndarray, from_rate: int, to_rate: int) -> np.ndarray:
    """Resample float samples with linear interpolation.

    Output sample j is interpolated at source position j * from_rate / to_rate.
    Strong downsampling (ratio below LINEAR_VS_SINC_RATIO) is preceded by a
    windowed-sinc low-pass filter at the new Nyquist frequency.
    """
    if from_rate <= 0 or to_rate <= 0:
        raise ValueError(f"Sample rates must be positive, got {from_rate} -> {to_rate}")
    if from_rate < MIN_SAMPLE_RATE:
        logger.warning(f"Sample rate {from_rate}Hz is below {MIN_SAMPLE_RATE}Hz, "
                       f"speech detection quality will be degraded")

    samples = np.asarray(samples, dtype=np.float32)
    n = len(samples)
    if from_rate == to_rate or n == 0:
        return samples.copy()

    out_len = resampled_length(n, from_rate, to_rate)
    if out_len == 0:
        return np.zeros(0, dtype=np.float32)

    ratio = to_rate / from_rate
    source = _anti_alias(samples, ratio) if ratio < LINEAR_VS_SINC_RATIO else samples.astype(np.float64)

    positions = np.arange(out_len, dtype=np.float64) * (from_rate / to_rate)
    resampled = np.interp(positions, np.arange(n, dtype=np.float64), source)
    return resampled.astype(np.float32)


def resample(pcm: BytesLike, from_config: AudioConfig, to_sample_rate_hz: int,
             to_bit_depth: BitDepth) -> bytes:
    """Convert PCM bytes to another sample rate and bit depth.

    Args:
        pcm: Raw PCM in from_config's format
        from_config: Format of pcm
        to_sample_rate_hz: Target sample rate
        to_bit_depth: Target PCM format

    Returns:
        PCM bytes holding round(samples * to_rate / from_rate) samples
    """
    samples = pcm_to_float(pcm, from_config.bit_depth)
    resampled = resample_float(samples, from_config.sample_rate_hz, to_sample_rate_hz)
    return float_to_pcm(resampled, to_bit_depth)
