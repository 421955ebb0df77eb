# integral_batch/__init__.py
from .integral_image import IntegralImage, compute_multi_channel, compute_single_channel
from .thread_counter import GateReleaseError, ThreadCounter
from .image_io import ImageDecodeError
from .dispatcher import WorkDispatcher, WorkUnit, process_image

__all__ = [
    'IntegralImage',
    'compute_single_channel',
    'compute_multi_channel',
    'ThreadCounter',
    'GateReleaseError',
    'ImageDecodeError',
    'WorkDispatcher',
    'WorkUnit',
    'process_image',
]
