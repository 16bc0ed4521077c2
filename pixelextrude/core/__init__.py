"""
Core processing modules for PixelExtrude
"""

from .pixel_buffer import PixelBuffer
from .image_loader import ImageDecodeError, load_image
from .mask_builder import build_mask, count_foreground, grayscale
from .resampler import resample_mask, resampled_shape
from .size_estimator import estimate_max_px
from .extruder import count_triangles, extrude_mask, extrude_rows
from .stl_writer import StlFormatError, decode_binary_stl, encode_binary_stl, write_binary_stl
from .model import TriangleModel
from .options import ConversionOptions
from .pipeline import ConversionResult, EmptyResultError, convert, convert_file

__all__ = [
    # Input
    'PixelBuffer',
    'ImageDecodeError',
    'load_image',
    # Masking
    'build_mask',
    'count_foreground',
    'grayscale',
    'resample_mask',
    'resampled_shape',
    'estimate_max_px',
    # Extrusion
    'count_triangles',
    'extrude_mask',
    'extrude_rows',
    'TriangleModel',
    # STL
    'StlFormatError',
    'decode_binary_stl',
    'encode_binary_stl',
    'write_binary_stl',
    # Pipeline
    'ConversionOptions',
    'ConversionResult',
    'EmptyResultError',
    'convert',
    'convert_file',
]
