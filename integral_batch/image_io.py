# integral_batch/image_io.py
"""
Image decoding and integral image serialization
"""
import cv2
import numpy as np
from matplotlib.figure import Figure

OUTPUT_SUFFIX = '.integral'


class ImageDecodeError(ValueError):
    """The file exists but OpenCV could not decode any pixels from it"""


def load_image(path):
    """
    Decode an image unchanged (bit depth and alpha preserved)

    Returns:
        2D array for single channel images, 3D (rows, cols, channels) otherwise
    """
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None or image.size == 0:
        raise ImageDecodeError(f"Can't read image {path}")
    return image


def split_channels(image):
    """Split an image into a list of 2D channels, in channel order"""
    image = np.asarray(image)
    if image.ndim == 2:
        return [image]
    if image.ndim != 3:
        raise ValueError(f"Expected a 2D or 3D image, got shape {image.shape}")
    if image.shape[2] == 0:
        return []
    if image.shape[0] == 0 or image.shape[1] == 0:
        # cv2.split rejects empty matrices
        return [image[:, :, c] for c in range(image.shape[2])]
    return list(cv2.split(np.ascontiguousarray(image)))


def output_path_for(image_path, suffix=OUTPUT_SUFFIX):
    return f"{image_path}{suffix}"


def save_integral(integrals, save_path):
    """
    Write integral images as text

    One line per row, cells as fixed one-decimal floats separated by spaces,
    a blank line after each channel, channels in ascending index order.
    """
    with open(save_path, 'w') as f:
        for index in sorted(integrals):
            np.savetxt(f, integrals[index], fmt='%.1f', delimiter=' ')
            f.write('\n')

    print(f"✓ Saved integral image to: {save_path}")
    return save_path


def save_integral_plot(integrals, save_path):
    """
    Save a heat map of each channel's integral image side by side

    Uses a standalone Figure rather than pyplot so worker threads can call it.
    Returns None (and writes nothing) when no channel has any pixels.
    """
    channels = [(index, integrals[index]) for index in sorted(integrals) if integrals[index].size]
    if not channels:
        return None

    fig = Figure(figsize=(4 * len(channels), 4))
    axes = fig.subplots(1, len(channels), squeeze=False)[0]

    for ax, (index, grid) in zip(axes, channels):
        im = ax.imshow(grid, cmap='viridis')
        ax.set_title(f"Channel {index}")
        ax.axis('off')
        fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04)

    fig.tight_layout()
    fig.savefig(save_path, dpi=100)
    print(f"✓ Saved visualization to: {save_path}")
    return save_path
