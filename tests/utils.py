import os
import cv2
import numpy as np

WHITE_RANGE = {"White": ((0, 0, 200), (180, 40, 255))}


def create_square_image(width=200, height=200, top_left=(50, 50), size=40, color=(255, 255, 255)):
    """Black image with one filled square of the given size and color."""
    img = np.zeros((height, width, 3), dtype=np.uint8)
    x, y = top_left
    cv2.rectangle(img, (x, y), (x + size - 1, y + size - 1), color, -1)
    return img


def create_noise_image(width=160, height=120, seed=0, channels=1):
    """Uniform random noise, reproducible for a given seed."""
    rng = np.random.default_rng(seed)
    shape = (height, width) if channels == 1 else (height, width, channels)
    return rng.integers(0, 256, size=shape, dtype=np.uint8)


def create_test_image(filename, image=None):
    """Writes an image (a white square on black by default) to filename."""
    if image is None:
        image = create_square_image()
    cv2.imwrite(filename, image)
    return filename


def create_dummy_text_file(filename, content="dummy content"):
    """Creates a dummy text file."""
    with open(filename, 'w') as f:
        f.write(content)
    return filename
