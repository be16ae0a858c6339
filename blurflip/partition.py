"""
Work partitioning of a width x height raster into fixed-size work-groups.

Dimension 0 is x (column), dimension 1 is y (row), matching the OpenCL
NDRange passed to both kernels.
"""

from dataclasses import dataclass

import numpy as np

BLOCK = (16, 16)


# Rounds up the size to be a multiple of the group_size
def round_up(global_size, group_size):
    r = global_size % group_size
    if r == 0:
        return global_size
    return global_size + group_size - r


@dataclass(frozen=True)
class Partition:
    width: int
    height: int
    block: tuple = BLOCK

    @property
    def local_size(self):
        return tuple(self.block)

    @property
    def grid(self):
        """Number of work-groups along x and y."""
        return ((self.width + self.block[0] - 1) // self.block[0],
                (self.height + self.block[1] - 1) // self.block[1])

    @property
    def global_size(self):
        return (round_up(self.width, self.block[0]),
                round_up(self.height, self.block[1]))

    def groups(self):
        """Yield every work-group id (gx, gy)."""
        grid_x, grid_y = self.grid
        for gy in range(grid_y):
            for gx in range(grid_x):
                yield gx, gy

    def tasks(self, group):
        """Yield the global (x, y) of every work-item in a group, overhang included."""
        gx, gy = group
        bx, by = self.block
        for ly in range(by):
            for lx in range(bx):
                yield gx * bx + lx, gy * by + ly

    def in_bounds(self, x, y):
        return 0 <= x < self.width and 0 <= y < self.height

    def coverage(self):
        """Count how many in-bounds tasks land on each pixel; shape (height, width)."""
        counts = np.zeros((self.height, self.width), dtype=np.int32)
        for group in self.groups():
            for x, y in self.tasks(group):
                if self.in_bounds(x, y):
                    counts[y, x] += 1
        return counts


def compute_partition(width, height, block=BLOCK):
    return Partition(int(width), int(height), tuple(block))
