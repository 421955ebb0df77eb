# integral_batch/integral_image.py
"""
Summed-area tables (integral images) for single and multi-channel rasters
"""
import numpy as np

from .image_io import split_channels

# Accumulator type, wide enough that large 8/16-bit images never overflow
ACCUMULATOR_DTYPE = np.float64


def compute_single_channel(channel):
    """
    Compute the integral image of one channel

    Args:
        channel: 2D array (rows, cols) of non-negative samples

    Returns:
        float64 array of the same shape where cell (i, j) holds the sum of
        every sample (i', j') with i' <= i and j' <= j
    """
    channel = np.asarray(channel)
    if channel.ndim != 2:
        raise ValueError(f"Single channel integral image requires a 2D array, got shape {channel.shape}")

    # Running sums down the columns, then along the rows. Accumulating in
    # float64 from the first pass keeps uint8 inputs from wrapping.
    return np.cumsum(np.cumsum(channel, axis=0, dtype=ACCUMULATOR_DTYPE), axis=1)


def compute_multi_channel(image):
    """
    Compute one integral image per channel

    Args:
        image: decoded image, either 2D (one channel) or 3D (rows, cols, channels)

    Returns:
        dict channel index -> integral image, in channel order
    """
    integrals = {}
    for index, channel in enumerate(split_channels(image)):
        integrals[index] = compute_single_channel(channel)
    return integrals


class IntegralImage:
    """O(1) rectangle sums over one channel's summed-area table"""

    def __init__(self, channel):
        self.integral = compute_single_channel(channel)
        self.height, self.width = self.integral.shape

    def total(self):
        """Sum of the whole channel (bottom-right cell)"""
        if self.height == 0 or self.width == 0:
            return 0.0
        return float(self.integral[-1, -1])

    def rectangle_sum(self, x1, y1, x2, y2):
        """
        Calculate sum in rectangle [x1, x2) x [y1, y2) in O(1)

        Coordinates are clipped to the image. Returns 0 if the clipped
        rectangle is empty.
        """
        x1 = max(0, min(x1, self.width))
        x2 = max(0, min(x2, self.width))
        y1 = max(0, min(y1, self.height))
        y2 = max(0, min(y2, self.height))

        if x1 >= x2 or y1 >= y2:
            return 0.0

        # Standard formula: D - B - C + A, with the rows/cols before the
        # window contributing nothing when the window touches the border
        total = self.integral[y2 - 1, x2 - 1]
        if y1 > 0:
            total -= self.integral[y1 - 1, x2 - 1]
        if x1 > 0:
            total -= self.integral[y2 - 1, x1 - 1]
        if x1 > 0 and y1 > 0:
            total += self.integral[y1 - 1, x1 - 1]

        return float(total)

    def window_density(self, x1, y1, x2, y2):
        """Helper: density = sum / area"""
        area = (x2 - x1) * (y2 - y1)
        if area <= 0:
            return 0.0
        return self.rectangle_sum(x1, y1, x2, y2) / area
