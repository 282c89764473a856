"""Load images from disk as grayscale sample grids."""

import numpy as np
from PIL import Image as PILImage
from scipy import ndimage
from skimage.color import rgb2gray
from skimage.util import img_as_ubyte

from .image import Image


def load_grayscale_image(image_path, coarsen_factor=1, scale=1.0):
    """Load an image file, optionally coarsen it, and return an 8-bit grayscale Image."""
    img = PILImage.open(image_path).convert('RGB')
    img_array = np.array(img)
    if coarsen_factor != 1:
        img_array = ndimage.zoom(
            img_array.astype(float), (1 / coarsen_factor, 1 / coarsen_factor, 1), order=1
        ).clip(0, 255).astype(np.uint8)
    gray = img_as_ubyte(rgb2gray(img_array))
    return Image.from_array(gray, scale=scale)
