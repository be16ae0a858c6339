"""
Flip and box blur kernels.

Each kernel exists in three forms that must agree pixel for pixel:
  - OpenCL C source, built by the PyOpenCL backend
  - a pure per-pixel Python function, run task-by-task by the host backend
  - a whole-array NumPy reference, used for verification
"""

import numpy as np

# OpenCL Kernel Code
kernel_code = """
// Horizontal mirror: one work-item per output pixel
__kernel void flipHorizontal(__global const uchar* input,
                             __global uchar* output,
                             const int width,
                             const int height) {

    int x = get_group_id(0) * get_local_size(0) + get_local_id(0);
    int y = get_group_id(1) * get_local_size(1) + get_local_id(1);

    // Work-groups on the last row/column overhang the image
    if (x >= width || y >= height) return;

    output[y * width + x] = input[y * width + (width - 1 - x)];
}

// Box blur: truncated mean over the in-bounds part of a k x k window
__kernel void boxBlur(__global const uchar* input,
                      __global uchar* output,
                      const int rows,
                      const int cols,
                      const int windowSize) {

    int col = get_group_id(0) * get_local_size(0) + get_local_id(0);
    int row = get_group_id(1) * get_local_size(1) + get_local_id(1);

    if (row >= rows || col >= cols) return;

    int radius = windowSize / 2;
    int sum = 0;
    int count = 0;

    for (int i = -radius; i <= radius; i++) {
        for (int j = -radius; j <= radius; j++) {
            int r = row + i;
            int c = col + j;
            // Clipped mean: out-of-bounds samples count for nothing
            if (r >= 0 && r < rows && c >= 0 && c < cols) {
                sum += input[r * cols + c];
                count++;
            }
        }
    }

    output[row * cols + col] = (uchar)(sum / count);
}
"""

FLIP_KERNEL = "flipHorizontal"
BLUR_KERNEL = "boxBlur"


def flip_value(x, y, src, width):
    """Mirrored sample for output pixel (x, y)."""
    return src[y * width + (width - 1 - x)]


def blur_value(row, col, src, rows, cols, window):
    """Clipped-mean sample for output pixel (row, col)."""
    radius = window // 2
    total = 0
    count = 0
    for r in range(max(row - radius, 0), min(row + radius, rows - 1) + 1):
        base = r * cols
        for c in range(max(col - radius, 0), min(col + radius, cols - 1) + 1):
            total += src[base + c]
            count += 1
    return total // count


def flip_task(x, y, src, dst, width, height):
    if x >= width or y >= height:
        return
    dst[y * width + x] = flip_value(x, y, src, width)


def blur_task(x, y, src, dst, rows, cols, window):
    if y >= rows or x >= cols:
        return
    dst[y * cols + x] = blur_value(y, x, src, rows, cols, window)


# Kernel name -> per-work-item task, same argument order as the OpenCL kernels
HOST_TASKS = {
    FLIP_KERNEL: flip_task,
    BLUR_KERNEL: blur_task,
}


def reference_flip(image):
    """Mirror a (height, width) array left to right."""
    return np.ascontiguousarray(np.asarray(image)[:, ::-1])


def _window_sums(values, window):
    # Summed-area table over a zero-padded copy; one lookup per output pixel
    height, width = values.shape
    padded = np.pad(values, window // 2)
    table = np.zeros((padded.shape[0] + 1, padded.shape[1] + 1), dtype=np.int64)
    table[1:, 1:] = padded.cumsum(axis=0).cumsum(axis=1)
    return (table[window:window + height, window:window + width]
            - table[:height, window:window + width]
            - table[window:window + height, :width]
            + table[:height, :width])


def reference_blur(image, window):
    """Clipped box blur of a (height, width) uint8 array."""
    image = np.asarray(image)
    sums = _window_sums(image.astype(np.int64), window)
    counts = _window_sums(np.ones(image.shape, dtype=np.int64), window)
    return (sums // counts).astype(np.uint8)
